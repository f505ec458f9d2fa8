import logging
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from gist.config import settings
from gist.models import Base

logger = logging.getLogger(__name__)

_engine = None
SessionLocal = None


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        kw = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, or every session sees its own empty database.
            # Sessions then also see each other's uncommitted writes.
            kw["poolclass"] = StaticPool
            if settings.env != "test":
                logger.warning("in-memory sqlite shares one connection between sessions; use it for tests only")
        return kw
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 30}


def init_db(url: str | None = None):
    global _engine, SessionLocal
    if _engine is not None:
        return
    url = url or settings.database_url
    _engine = create_engine(url, **_engine_kwargs(url))
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    Base.metadata.create_all(bind=_engine)

    # Lightweight sanity query
    with _engine.connect() as c:
        c.execute(text("SELECT 1"))


def get_db():
    if SessionLocal is None:
        init_db()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
