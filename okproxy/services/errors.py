"""
Proxy errors and the error-reporting collaborator.

Handlers never write an error response themselves: every failure is passed to
an ErrorHandler, which owns the status code and body sent to the client.
"""
from __future__ import annotations

from typing import Protocol

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.requests import ClientDisconnect

from okproxy.logging import get_logger

logger = get_logger(__name__)


class ProxyError(Exception):
    """Base class for errors raised while preparing a forward."""


class ProxyURLNotSetError(ProxyError):
    """No upstream target is configured for the request."""


class PayloadDecodeError(ProxyError):
    """The request body is not a valid proxy payload."""


class InvalidProxyURLError(ProxyError):
    """The configured upstream target cannot be parsed as an http(s) URL."""


class ErrorHandler(Protocol):
    """Capability invoked at most once per request when forwarding fails."""

    async def server_error_handler(self, request: Request, error: Exception) -> Response:
        ...


class ServerErrorHandler:
    """
    Default error collaborator.

    Logs the failure and answers with a FastAPI-style `{"detail": ...}` body.
    """

    def _status_code(self, error: Exception) -> int:
        if isinstance(error, (PayloadDecodeError, ClientDisconnect)):
            return 400
        if isinstance(error, InvalidProxyURLError):
            return 502
        return 500

    async def server_error_handler(self, request: Request, error: Exception) -> Response:
        status_code = self._status_code(error)
        detail = str(error) or error.__class__.__name__
        logger.warning(f"{request.method} {request.url.path} failed ({status_code}): {detail}")
        return JSONResponse(status_code=status_code, content={"detail": detail})
