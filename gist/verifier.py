"""Transition proof verifiers.

The proof system is external; the registry only needs a predicate over the
public inputs ``[id, old_state, new_state, is_old_state_genesis]`` and the
Groth16 proof points.
"""
from __future__ import annotations
import importlib
from dataclasses import dataclass
from typing import List, Protocol, Sequence


@dataclass
class Groth16Proof:
    a: List[int]
    b: List[List[int]]
    c: List[int]


class Verifier(Protocol):
    def verify(self, public_inputs: Sequence[int], proof: Groth16Proof) -> bool: ...


class AllowAllVerifier:
    """Accepts every proof. For local development and tests only."""

    def verify(self, public_inputs, proof) -> bool:
        return True


class DenyAllVerifier:
    def verify(self, public_inputs, proof) -> bool:
        return False


_BUILTIN = {
    "allow_all": AllowAllVerifier,
    "deny_all": DenyAllVerifier,
}


def load_verifier(ref: str) -> Verifier:
    """Resolve ``allow_all``, ``deny_all`` or ``package.module:attr``.

    ``attr`` may be a verifier instance or a zero-argument factory.
    """
    if ref in _BUILTIN:
        return _BUILTIN[ref]()
    mod_name, sep, attr = ref.partition(":")
    if not sep or not attr:
        raise RuntimeError(f"bad verifier ref: {ref!r}")
    obj = getattr(importlib.import_module(mod_name), attr)
    if isinstance(obj, type) or (callable(obj) and not hasattr(obj, "verify")):
        obj = obj()
    if not callable(getattr(obj, "verify", None)):
        raise RuntimeError(f"{ref} does not provide a verify() method")
    return obj
