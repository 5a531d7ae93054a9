"""
Request handlers - route-prefix and payload based forwarding to the proxy target.
"""
from __future__ import annotations

from typing import Awaitable, Callable, Optional

import httpx
from fastapi import Request, Response
from starlette.requests import ClientDisconnect

from okproxy.services.errors import ErrorHandler, PayloadDecodeError, ProxyURLNotSetError
from okproxy.services.request import ProxyRequest
from okproxy.services.target import ProxyReverser, ProxyTarget

RequestHandler = Callable[[Request], Awaitable[Response]]


class OKProxy:
    """Builds request handlers that forward to a single proxy target."""

    def __init__(self, proxy: ProxyReverser):
        self.proxy = proxy

    def path_request_proxy_handler(self, path: str, error_handler: ErrorHandler) -> RequestHandler:
        """
        Create a handler proxying to the stored target.

        `path` is trimmed from the start of the request path before
        forwarding, e.g. with path="/forward", /forward/api -> /api.
        """
        async def handler(request: Request) -> Response:
            target = self.proxy.get_proxy_url()
            if not target:
                return await error_handler.server_error_handler(
                    request, ProxyURLNotSetError("ProxyURL needs to be set for PathRequestProxyHandler")
                )

            proxy_request = ProxyRequest.from_request(request)
            proxy_request.strip_prefix(path)

            return await self.proxy.serve_reverse_proxy(request, proxy_request, error_handler, target)

        return handler

    def payload_request_proxy_handler(self, error_handler: ErrorHandler) -> RequestHandler:
        """
        Create a handler proxying to the URL in the proxyURL field of a JSON body.

        The decoded URL also replaces the stored target. The body is still
        forwarded upstream unchanged.
        """
        async def handler(request: Request) -> Response:
            try:
                target = await self.proxy.decode_url_from_body(request)
            except (ClientDisconnect, PayloadDecodeError) as e:
                return await error_handler.server_error_handler(request, e)

            if not target:
                return await error_handler.server_error_handler(
                    request, ProxyURLNotSetError("ProxyURL needs to be set in request body at proxyURL field")
                )

            proxy_request = ProxyRequest.from_request(request)
            return await self.proxy.serve_reverse_proxy(request, proxy_request, error_handler, target)

        return handler


def new(url: str = "", client: Optional[httpx.AsyncClient] = None) -> OKProxy:
    """
    Create an OKProxy whose target starts as `url` (possibly empty).

    Args:
        url: Initial upstream base URL
        client: Shared HTTP client for upstream requests; when omitted each
            forward uses its own short-lived client
    """
    return OKProxy(ProxyTarget(url, client=client))
