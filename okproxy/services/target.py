"""
Proxy target - holds the upstream URL, decodes it from payload bodies and
forwards rewritten requests to it.
"""
from __future__ import annotations

import threading
from typing import Optional, Protocol

import httpx
from fastapi import Request, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from okproxy.services.errors import ErrorHandler, InvalidProxyURLError, PayloadDecodeError
from okproxy.services.request import ProxyRequest
from okproxy.services.reverse_proxy import ReverseProxy


class ProxyPayload(BaseModel):
    """Body accepted by payload-mode requests."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    proxy_url: str = Field(default="", alias="proxyURL")


class ProxyReverser(Protocol):
    """What the request handlers need from a proxy target."""

    def set_proxy_url(self, url: str) -> None:
        ...

    def get_proxy_url(self) -> str:
        ...

    async def serve_reverse_proxy(
        self,
        request: Request,
        proxy_request: ProxyRequest,
        error_handler: ErrorHandler,
        target: Optional[str] = None
    ) -> Response:
        ...

    async def decode_url_from_body(self, request: Request) -> str:
        ...


def parse_proxy_url(value: str) -> httpx.URL:
    """
    Parse an upstream base URL.

    Raises:
        InvalidProxyURLError: If the value is not an absolute http(s) URL
    """
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        raise InvalidProxyURLError(f"Invalid proxy URL {value!r}: {e}") from e
    if url.scheme not in ("http", "https"):
        raise InvalidProxyURLError(f"Invalid proxy URL {value!r}: scheme must be http or https")
    if not url.host:
        raise InvalidProxyURLError(f"Invalid proxy URL {value!r}: missing host")
    return url


class ProxyTarget:
    """
    Thread-safe holder of the upstream URL.

    Reads and writes are atomic. Callers that need a consistent target for a
    whole request take one snapshot and pass it to `serve_reverse_proxy`.
    """

    def __init__(self, url: str = "", client: Optional[httpx.AsyncClient] = None):
        self._url = url
        self._lock = threading.Lock()
        self._client = client

    def set_proxy_url(self, url: str) -> None:
        with self._lock:
            self._url = url

    def get_proxy_url(self) -> str:
        with self._lock:
            return self._url

    async def serve_reverse_proxy(
        self,
        request: Request,
        proxy_request: ProxyRequest,
        error_handler: ErrorHandler,
        target: Optional[str] = None
    ) -> Response:
        """
        Point `proxy_request` at the target and proxy it.

        Args:
            request: The inbound request, passed to the error handler on failure
            proxy_request: The outbound request, rewritten in place
            error_handler: Collaborator invoked if the target cannot be parsed
            target: Target snapshot; defaults to the stored URL

        Returns:
            The upstream response, or the error handler's response
        """
        try:
            url = parse_proxy_url(self.get_proxy_url() if target is None else target)
        except InvalidProxyURLError as e:
            return await error_handler.server_error_handler(request, e)

        upstream_host = url.netloc.decode("ascii")
        proxy_request.url_host = upstream_host
        proxy_request.scheme = url.scheme
        proxy_request.headers["X-Forwarded-Host"] = proxy_request.headers.get("host", "")
        proxy_request.host = upstream_host

        return await ReverseProxy(url, client=self._client).serve(proxy_request)

    async def decode_url_from_body(self, request: Request) -> str:
        """
        Read the request body and store the proxyURL field it carries.

        The body stays cached on the request, so later readers see the same
        bytes. A missing field stores an empty URL.

        Raises:
            ClientDisconnect: If the body could not be read
            PayloadDecodeError: If the body is not a JSON object of the expected shape
        """
        body = await request.body()
        try:
            payload = ProxyPayload.model_validate_json(body)
        except ValidationError as e:
            raise PayloadDecodeError(f"Invalid proxy payload: {e.errors()[0]['msg']}") from e

        self.set_proxy_url(payload.proxy_url)
        return payload.proxy_url
