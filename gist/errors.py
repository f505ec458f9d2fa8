"""Error taxonomy of the registry.

Every failure is a rejected operation: the caller gets a stable ``code`` and
the HTTP status it maps to, and the attempted mutation has no effect.
"""
from __future__ import annotations


class GistError(Exception):
    code = "gist_error"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


# input validation
class ZeroId(GistError):
    code = "zero_id"


class ZeroNewState(GistError):
    code = "zero_new_state"


class DepthExceeded(GistError):
    code = "depth_exceeded"


class NonMonotonicClock(GistError):
    code = "non_monotonic_clock"


class NotFieldElement(GistError):
    code = "not_field_element"


# consistency violations
class StateAlreadyExists(GistError):
    code = "state_already_exists"
    status_code = 409


class GenesisButIdentityExists(GistError):
    code = "genesis_but_identity_exists"
    status_code = 409


class OldStateNotGenesisButNoIdentity(GistError):
    code = "old_state_not_genesis_but_no_identity"
    status_code = 409


class OldStateMismatch(GistError):
    code = "old_state_mismatch"
    status_code = 409


class DuplicateAdjacentValue(GistError):
    code = "duplicate_adjacent_value"
    status_code = 409


# cryptographic rejection
class InvalidTransitionProof(GistError):
    code = "invalid_transition_proof"
    status_code = 422


# query errors
class NotFound(GistError):
    code = "not_found"
    status_code = 404


class UnknownRoot(GistError):
    code = "unknown_root"
    status_code = 404


class OutOfBounds(GistError):
    code = "out_of_bounds"
