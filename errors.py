"""
Exception types shared by the service clients and the handlers that turn
every failure into the ``{"success": false, "error": ...}`` JSON body.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config

logger = logging.getLogger(__name__)

_MISSING_ERROR_TYPES = {"missing", "string_too_short", "too_short", "bool_type"}


class ExternalServiceError(RuntimeError):
    """A third-party API call failed or returned something unusable."""

    def __init__(self, service: str, message: str, status_code: int = status.HTTP_503_SERVICE_UNAVAILABLE):
        super().__init__(message)
        self.service = service
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return f"{self.service} error: {self.message}"


class RenderThrottled(ExternalServiceError):
    """The rendering backend asked us to slow down."""

    def __init__(self, kind: str, message: str, retry_after: int, details: Optional[str] = None):
        super().__init__("Remotion Lambda", message, status.HTTP_429_TOO_MANY_REQUESTS)
        self.kind = kind
        self.retry_after = retry_after
        self.details = details


def error_body(message: str, **extra: Any) -> Dict[str, Any]:
    return {"success": False, "error": message, **extra}


def upstream_request(service: str, method: str, url: str,
                     session: Optional[requests.Session] = None, **kwargs) -> requests.Response:
    """
    Perform an HTTP call to a third-party API. Upstream error statuses are
    passed through, connection failures become 503.
    """
    kwargs.setdefault("timeout", config.HTTP_TIMEOUT)
    try:
        response = (session or requests).request(method, url, **kwargs)
    except requests.RequestException as e:
        raise ExternalServiceError(service, f"Network error: {e}")
    if response.status_code >= 400:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        message = response.text
        if isinstance(payload, dict):
            detail = payload.get("error") or payload.get("message") or payload.get("detail")
            if isinstance(detail, dict):
                detail = detail.get("message")
            message = detail or message
        raise ExternalServiceError(service, f"({response.status_code}) {message}", response.status_code)
    return response


def describe_validation_errors(errors: List[Dict[str, Any]]) -> str:
    missing = []
    messages = []
    problems = []
    for err in errors:
        field = str(err["loc"][-1]) if err.get("loc") else "body"
        if err.get("type") in _MISSING_ERROR_TYPES:
            if field not in missing:
                missing.append(field)
        elif err.get("type") == "value_error" and err.get("ctx", {}).get("error"):
            messages.append(str(err["ctx"]["error"]))
        else:
            problems.append(f"{field}: {err.get('msg')}")
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    if messages:
        return ", ".join(messages)
    return f"Validation error: {', '.join(problems)}"


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = describe_validation_errors(exc.errors())
        logger.warning("Validation error on %s: %s", request.url.path, message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(message))

    @app.exception_handler(RenderThrottled)
    async def throttled_handler(request: Request, exc: RenderThrottled):
        logger.warning("Render backend throttled (%s) on %s", exc.kind, request.url.path)
        extra = {"type": exc.kind, "retryAfter": exc.retry_after}
        if exc.details:
            extra["details"] = exc.details
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, **extra),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(ExternalServiceError)
    async def external_error_handler(request: Request, exc: ExternalServiceError):
        logger.error("%s on %s", exc, request.url.path)
        return JSONResponse(status_code=exc.status_code, content=error_body(str(exc)))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(f"An unexpected error occurred: {exc}"),
        )
