from __future__ import annotations

import logging
import time

from flask import Flask, g, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError
from .responses import failure

logger = logging.getLogger(__name__)

# High-frequency device traffic; logging every call drowns out everything else.
_QUIET_SUFFIXES = ("/heartbeat", "/face-recognition/scan")


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def client_ip() -> str | None:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        if e.status_code >= 500:
            logger.warning("%s %s -> %s: %s", request.method, request.path, e.status_code, e.message)
        return failure(e.message, e.status_code, errors=e.errors or None)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        messages = {
            404: "Route not found",
            405: "Method not allowed",
            413: "File too large",
        }
        return failure(messages.get(e.code or 500, e.description or e.name), e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        detail = str(e) if app.config.get("DEBUG") else None
        return failure("Internal server error", 500, error=detail)


def register_request_logging(app: Flask) -> None:
    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        if request.path.endswith(_QUIET_SUFFIXES):
            return response
        started = g.get("request_started")
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        logger.info(
            "%s %s %s -> %s (%.1f ms)",
            client_ip(),
            request.method,
            request.path,
            response.status_code,
            elapsed_ms,
        )
        return response
