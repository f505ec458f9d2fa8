import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from gist.config import settings
from gist.routers.public import router as public_router
from gist.routers.state import router as state_router
from gist.routers.tree import router as tree_router, jwks_router
from gist.routers.admin import router as admin_router
from gist.db import init_db
from gist.errors import GistError
from gist.middleware import RequestIdMiddleware

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("gist")

app = FastAPI(
    title="GIST State Registry",
    version="1.0.0",
    docs_url="/docs",
    redoc_url=None,
)

app.add_middleware(RequestIdMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(public_router)
app.include_router(state_router)
app.include_router(tree_router)
app.include_router(jwks_router)
app.include_router(admin_router)


@app.exception_handler(GistError)
async def _gist_error(request: Request, exc: GistError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.code, "message": exc.message})


@app.on_event("startup")
def _startup():
    init_db()
    # pin tree parameters on first start, refuse to run on a mismatch later
    from gist.db import SessionLocal
    from gist.deps import get_hasher
    from gist.registry import StateRegistry

    db = SessionLocal()
    try:
        StateRegistry(db, get_hasher(), settings.smt_depth).head()
        db.commit()
    finally:
        db.close()
    logger.info("gist registry ready depth=%s hash_engine=%s verifier=%s",
                settings.smt_depth, settings.hash_engine, settings.verifier)
