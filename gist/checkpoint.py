import datetime as dt
from typing import Optional
from sqlalchemy.orm import Session
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from gist.crypto import ed25519_from_seed_b64, key_id, sign_b64u, verify_sig
from gist.history import RootHistory
from gist.util import canonical_json_bytes

SIGNED_FIELDS = ("root", "history_length", "created_at_block", "created_at_time", "issued_at", "kid")


def make_checkpoint(db: Session, seed_b64: str) -> Optional[dict]:
    """Signed statement of the current gist root. None before the first transition."""
    roots = RootHistory(db)
    last = roots.latest()
    if last is None:
        return None
    priv = ed25519_from_seed_b64(seed_b64)
    body = {
        "root": last.root,
        "history_length": int(last.position) + 1,
        "created_at_block": int(last.created_at_block),
        "created_at_time": int(last.created_at_time),
        "issued_at": dt.datetime.now(dt.timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "kid": key_id(priv.public_key()),
    }
    body["signature_b64u"] = sign_b64u(priv, canonical_json_bytes(body))
    return body


def verify_checkpoint(checkpoint: dict, pub: Ed25519PublicKey) -> bool:
    body = {k: checkpoint[k] for k in SIGNED_FIELDS}
    return verify_sig(pub, canonical_json_bytes(body), checkpoint.get("signature_b64u", ""))
