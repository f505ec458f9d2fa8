from __future__ import annotations
import hashlib
from functools import lru_cache
from typing import Protocol, Sequence

import poseidon
from py_ecc.bn128 import curve_order

# BN254 scalar field, the field the transition circuit works over
FIELD_MODULUS = curve_order


class HashEngine(Protocol):
    name: str

    def hash(self, elements: Sequence[int]) -> int: ...


def _check_arity(elements: Sequence[int]) -> None:
    if not 1 <= len(elements) <= 3:
        raise ValueError("hash arity must be 1, 2 or 3")


def _encode(x: int) -> bytes:
    if x < 0:
        raise ValueError("hash inputs must be non-negative")
    raw = x.to_bytes(max(32, (x.bit_length() + 7) // 8), "big")
    return len(raw).to_bytes(2, "big") + raw


class Sha256FieldHasher:
    """SHA-256 over length-prefixed big-endian elements, reduced into the field."""

    name = "sha256"

    def hash(self, elements: Sequence[int]) -> int:
        _check_arity(elements)
        h = hashlib.sha256()
        h.update(bytes([len(elements)]))
        for x in elements:
            h.update(_encode(int(x)))
        return int.from_bytes(h.digest(), "big") % FIELD_MODULUS


@lru_cache(maxsize=None)
def poseidon_permutation(width: int) -> poseidon.Poseidon:
    # x^5 S-box, 128-bit security; round constants and MDS matrix are derived
    # by the library for each state width
    return poseidon.Poseidon(FIELD_MODULUS, 128, 5, width - 1, width)


class PoseidonHasher:
    """Poseidon sponge over the BN254 scalar field.

    The state is ``[0, *elements]``, one capacity element plus one lane per
    input, so the 1, 2 and 3 input forms run on widths 2, 3 and 4.
    """

    name = "poseidon"

    def hash(self, elements: Sequence[int]) -> int:
        _check_arity(elements)
        xs = [int(x) for x in elements]
        for x in xs:
            if not 0 <= x < FIELD_MODULUS:
                raise ValueError("poseidon inputs must be field elements")
        return int(poseidon_permutation(len(xs) + 1).run_hash([0] + xs))


_ENGINES = {
    Sha256FieldHasher.name: Sha256FieldHasher,
    PoseidonHasher.name: PoseidonHasher,
}


def get_hasher(name: str) -> HashEngine:
    try:
        return _ENGINES[name]()
    except KeyError:
        raise RuntimeError(f"unknown hash engine: {name}") from None
