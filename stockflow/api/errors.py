"""
Exception handlers - map domain errors to JSON responses
"""
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stockflow.core.exceptions import IntegrityFailure, WMSError

logger = logging.getLogger(__name__)


def _new_trace_id() -> str:
    return f"t_{uuid.uuid4().hex[:12]}"


def error_body(code: str, message: str, details=None) -> dict:
    return {"error": code, "message": message, "details": details or {}}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(IntegrityFailure)
    async def _integrity_exc(req: Request, exc: IntegrityFailure):
        # Full context goes to the log only; callers get an opaque failure
        trace_id = _new_trace_id()
        logger.error(
            "INTEGRITY_FAILURE[%s] %s %s: %s %s",
            trace_id, req.method, req.url.path, exc.message, exc.details,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, "Internal error, the operation was not applied", {"trace_id": trace_id}),
        )

    @app.exception_handler(WMSError)
    async def _wms_exc(req: Request, exc: WMSError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {req.method} {req.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(Exception)
    async def _unhandled_exc(req: Request, exc: Exception):
        trace_id = _new_trace_id()
        logger.exception("UNHANDLED_EXC[%s]: %s", trace_id, exc)
        return JSONResponse(
            status_code=500,
            content=error_body("INTERNAL_ERROR", "Internal error, please retry later", {"trace_id": trace_id}),
        )
