from functools import lru_cache
from fastapi import Depends
from sqlalchemy.orm import Session

from gist.config import settings
from gist.db import get_db
from gist.hashing import HashEngine, get_hasher as _get_hasher
from gist.proofs import GistProofService
from gist.registry import StateRegistry
from gist.verifier import Verifier, load_verifier


@lru_cache
def get_hasher() -> HashEngine:
    return _get_hasher(settings.hash_engine)


@lru_cache
def get_verifier() -> Verifier:
    return load_verifier(settings.verifier)


def get_registry(
    db: Session = Depends(get_db),
    hasher: HashEngine = Depends(get_hasher),
    verifier: Verifier = Depends(get_verifier),
) -> StateRegistry:
    return StateRegistry(db, hasher, settings.smt_depth, verifier, settings.history_page_limit)


def get_proofs(registry: StateRegistry = Depends(get_registry)) -> GistProofService:
    return GistProofService(registry)
