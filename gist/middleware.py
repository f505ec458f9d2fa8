from __future__ import annotations
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from gist.metrics import REQS, LAT


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = rid
        start = time.time()
        resp = await call_next(request)
        dur = time.time() - start
        # label by route template, not the concrete path
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        LAT.labels(path=path, method=request.method).observe(dur)
        REQS.labels(path=path, method=request.method, status=str(resp.status_code)).inc()
        resp.headers["x-request-id"] = rid
        return resp
