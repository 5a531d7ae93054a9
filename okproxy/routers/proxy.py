"""
Proxy router - exposes the path-mode and payload-mode handlers.
"""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, Response

from okproxy.config import get_config
from okproxy.logging import get_logger
from okproxy.services.handlers import RequestHandler
from okproxy.state import app_state

logger = get_logger(__name__)

router = APIRouter(tags=["proxy"])

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def _require(handler: RequestHandler | None) -> RequestHandler:
    if handler is None:
        logger.error("Proxy handlers not initialized")
        raise HTTPException(status_code=500, detail="Internal server error")
    return handler


async def path_proxy(request: Request) -> Response:
    """Forward to the configured target, minus the route prefix."""
    return await _require(app_state.path_handler)(request)


async def payload_proxy(request: Request) -> Response:
    """Forward to the target named in the JSON body's proxyURL field."""
    return await _require(app_state.payload_handler)(request)


_config = get_config()
router.add_api_route(_config.okproxy_path_prefix, path_proxy, methods=PROXY_METHODS, include_in_schema=False)
router.add_api_route(
    _config.okproxy_path_prefix.rstrip("/") + "/{path:path}",
    path_proxy,
    methods=PROXY_METHODS,
    include_in_schema=False
)
router.add_api_route(_config.okproxy_payload_path, payload_proxy, methods=PROXY_METHODS, include_in_schema=False)
