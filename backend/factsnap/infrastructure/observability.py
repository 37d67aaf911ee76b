"""Structured Logging — JSON formatter, request context and access log.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (question_id, user_id, error_code, ...) surfaced when present
    - Every record emitted while a request is in flight carries its request_id,
      including records from background tasks spawned by that request
    - One access log line per request: INFO below 500, ERROR otherwise

Design Decisions:
    - request_id lives in a ContextVar; asyncio tasks copy the context at
      creation, so detached work inherits the id of the request that spawned it
    - Caller-supplied X-Request-Id is reused so ids line up with upstream proxies
"""

import json
import logging
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

_EXTRA_KEYS = (
    "request_id", "question_id", "poll_id", "response_id", "user_id",
    "error_code", "task_name", "method", "path", "status_code", "duration_ms",
    "attempt", "count", "input_tokens", "output_tokens",
)


class RequestContextFilter(logging.Filter):
    """Stamp the in-flight request id onto records that lack one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update({
            key: val for key in _EXTRA_KEYS
            if (val := getattr(record, key, None)) is not None
        })
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure the root logger once on startup."""
    handler = logging.StreamHandler()
    handler.addFilter(RequestContextFilter())
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(request_id)s]: %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))


async def log_requests(request: Request, call_next):
    """HTTP middleware: bind a request id and write the access log line."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        log = logger.error if status_code >= 500 else logger.info
        log(
            f"{request.method} {request.url.path} -> {status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round((time.perf_counter() - start) * 1000, 1),
            },
        )
        request_id_var.reset(token)
