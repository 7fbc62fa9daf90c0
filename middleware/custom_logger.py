from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from typing import Any, Dict
import json, os, threading, time, uuid
from datetime import datetime, timezone
from config import LOG_DIR

LOG_FILE = os.path.join(LOG_DIR, "app.log")
os.makedirs(LOG_DIR, exist_ok=True)

class JsonLineWriter:
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
    def write(self, record: Dict[str, Any]) -> None:
        record["_ts"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        line = json.dumps(record, separators=(",", ":"), ensure_ascii=False, default=str) + "\n"
        # background click writers and dashboard workers log from other threads
        with self._lock, open(self.path, "a", encoding="utf-8") as f:
            f.write(line)

_writer = JsonLineWriter(LOG_FILE)

class Audit:
    def event(self, kind: str, **fields: Any) -> None:
        _writer.write({"kind": kind, **fields})

audit = Audit()

class StructuredAuditMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)
    async def dispatch(self, request, call_next):
        cid = str(uuid.uuid4())
        t0 = time.perf_counter()
        audit.event(
            "http_request",
            cid=cid,
            method=request.method,
            path=request.url.path,
            query=str(request.url.query),
            client=getattr(request.client, "host", None),
            country=request.headers.get("cf-ipcountry"),
        )
        try:
            response = await call_next(request)
        except Exception as e:
            latency_ms = round((time.perf_counter() - t0) * 1000, 2)
            audit.event("http_exception", cid=cid, path=request.url.path, error=repr(e), latency_ms=latency_ms)
            raise
        latency_ms = round((time.perf_counter() - t0) * 1000, 2)
        audit.event(
            "http_response",
            cid=cid,
            status=response.status_code,
            latency_ms=latency_ms,
        )
        response.headers["x-request-id"] = cid
        return response
