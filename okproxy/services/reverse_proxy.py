"""
Single-host reverse proxy - relays a ProxyRequest to one upstream base URL
and streams the upstream response back to the client.
"""
from __future__ import annotations

from typing import AsyncIterator, List, Optional, Tuple

import httpx
from fastapi import Response
from fastapi.responses import StreamingResponse

from okproxy.logging import get_logger
from okproxy.services.request import ProxyRequest

logger = get_logger(__name__)

# Hop-by-hop headers that should not be forwarded in either direction
HOP_BY_HOP_HEADERS = frozenset({
    "connection", "keep-alive", "proxy-connection", "proxy-authenticate",
    "proxy-authorization", "te", "trailer", "trailers", "transfer-encoding",
    "upgrade"
})


def single_joining_slash(a: str, b: str) -> str:
    """Join two URL paths with exactly one slash between them."""
    a_slash = a.endswith("/")
    b_slash = b.startswith("/")
    if a_slash and b_slash:
        return a + b[1:]
    if not a_slash and not b_slash:
        return a + "/" + b
    return a + b


def _hop_by_hop_names(headers: httpx.Headers) -> frozenset:
    """Hop-by-hop header names, including any listed in `Connection`."""
    listed = set()
    for value in headers.get_list("connection"):
        listed.update(token.strip().lower() for token in value.split(",") if token.strip())
    return HOP_BY_HOP_HEADERS | listed


def remove_hop_by_hop_headers(headers: httpx.Headers) -> httpx.Headers:
    """Return a copy of `headers` without hop-by-hop entries."""
    skip = _hop_by_hop_names(headers)
    return httpx.Headers([(k, v) for k, v in headers.multi_items() if k.lower() not in skip])


class ReverseProxy:
    """
    Reverse proxy for a single upstream target.

    Requests keep their own path and query, appended to those of the target.
    When no client is given, one is created per request and closed once the
    response body has been relayed or the client has gone away.
    """

    def __init__(self, target: httpx.URL, client: Optional[httpx.AsyncClient] = None):
        self.target = target
        self._client = client

    def outbound_url(self, proxy_request: ProxyRequest) -> httpx.URL:
        """
        Build the upstream URL for a request.

        Scheme and host come from the rewritten request, falling back to the
        target. Paths are joined in their percent-encoded form.
        """
        scheme = proxy_request.scheme or self.target.scheme
        url_host = proxy_request.url_host or self.target.netloc.decode("ascii")
        target_path, _, target_query = self.target.raw_path.decode("ascii").partition("?")
        path = single_joining_slash(target_path, proxy_request.path)
        if target_query and proxy_request.query:
            query = f"{target_query}&{proxy_request.query}"
        else:
            query = target_query + proxy_request.query
        url = f"{scheme}://{url_host}{path}"
        if query:
            url = f"{url}?{query}"
        return httpx.URL(url)

    def outbound_headers(self, proxy_request: ProxyRequest) -> httpx.Headers:
        """Request headers as sent upstream."""
        headers = remove_hop_by_hop_headers(proxy_request.headers)
        if proxy_request.host:
            headers["Host"] = proxy_request.host
        else:
            headers.pop("host", None)
        if proxy_request.client_host:
            prior = ", ".join(headers.get_list("x-forwarded-for"))
            headers["X-Forwarded-For"] = (
                f"{prior}, {proxy_request.client_host}" if prior else proxy_request.client_host
            )
        return headers

    async def serve(self, proxy_request: ProxyRequest) -> Response:
        """Forward the request and relay the upstream response."""
        url = self.outbound_url(proxy_request)
        client = self._client or httpx.AsyncClient()
        owns_client = self._client is None

        # Built directly rather than via client.build_request so the client's
        # default headers (User-Agent, Accept, ...) are not added.
        upstream_request = httpx.Request(
            proxy_request.method,
            url,
            headers=self.outbound_headers(proxy_request),
            content=proxy_request.content,
            extensions={"timeout": client.timeout.as_dict()},
        )
        logger.debug(f"Forwarding {proxy_request.method} {proxy_request.path} -> {url}")

        try:
            upstream = await client.send(upstream_request, stream=True)
        except httpx.TimeoutException:
            logger.error(f"Timeout forwarding to {url}")
            if owns_client:
                await client.aclose()
            return Response(status_code=504)
        except httpx.RequestError as e:
            logger.error(f"Proxy error forwarding to {url}: {e}")
            if owns_client:
                await client.aclose()
            return Response(status_code=502)

        async def relay() -> AsyncIterator[bytes]:
            try:
                async for chunk in upstream.aiter_raw():
                    yield chunk
            finally:
                await upstream.aclose()
                if owns_client:
                    await client.aclose()

        response = StreamingResponse(relay(), status_code=upstream.status_code)
        response.raw_headers = self._response_headers(upstream.headers)
        return response

    def _response_headers(self, headers: httpx.Headers) -> List[Tuple[bytes, bytes]]:
        """Filter hop-by-hop headers from the upstream response."""
        skip = _hop_by_hop_names(headers)
        return [(k.lower(), v) for k, v in headers.raw if k.decode("latin-1").lower() not in skip]
