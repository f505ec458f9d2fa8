from __future__ import annotations
import base64
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from gist.util import b64u_encode, b64u_decode, sha256_hex


def ed25519_from_seed_b64(seed_b64: str) -> Ed25519PrivateKey:
    seed = base64.b64decode(seed_b64)
    if len(seed) != 32:
        raise ValueError("GIST_CHECKPOINT_SIGNING_KEY_B64 must be a 32 byte seed (base64)")
    return Ed25519PrivateKey.from_private_bytes(seed)


def key_id(pub: Ed25519PublicKey) -> str:
    # stable across restarts, derived from the key itself
    return sha256_hex(pub.public_bytes_raw())[:32]


def public_jwk(pub: Ed25519PublicKey) -> dict:
    return {"kty": "OKP", "crv": "Ed25519", "kid": key_id(pub), "x": b64u_encode(pub.public_bytes_raw())}


def sign_b64u(priv: Ed25519PrivateKey, msg: bytes) -> str:
    return b64u_encode(priv.sign(msg))


def verify_sig(pub: Ed25519PublicKey, msg: bytes, sig_b64u: str) -> bool:
    try:
        pub.verify(b64u_decode(sig_b64u), msg)
        return True
    except (InvalidSignature, ValueError):
        return False
