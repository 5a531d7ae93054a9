"""
Shared test fixtures and helpers.
"""
from __future__ import annotations

from typing import Dict, List, Optional
from urllib.parse import unquote

import pytest
from fastapi import Request, Response
from fastapi.responses import JSONResponse

from okproxy.services.errors import ErrorHandler
from okproxy.services.request import ProxyRequest


def make_request(
    method: str = "GET",
    path: str = "/",
    body: bytes = b"",
    host: Optional[str] = "example.com",
    headers: Optional[Dict[str, str]] = None,
    query: str = "",
    disconnect: bool = False,
) -> Request:
    """Build a Starlette request directly from an ASGI scope."""
    raw_headers = []
    if host is not None:
        raw_headers.append((b"host", host.encode()))
    if body:
        raw_headers.append((b"content-length", str(len(body)).encode()))
    for key, value in (headers or {}).items():
        raw_headers.append((key.lower().encode(), value.encode()))

    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": unquote(path),
        "raw_path": path.encode(),
        "query_string": query.encode(),
        "root_path": "",
        "headers": raw_headers,
        "client": ("203.0.113.7", 51000),
        "server": ("example.com", 80),
    }
    messages = [] if disconnect else [{"type": "http.request", "body": body, "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return Request(scope, receive)


async def read_content(proxy_request: ProxyRequest) -> bytes:
    """Drain the outbound body stream."""
    if proxy_request.content is None:
        return b""
    return b"".join([chunk async for chunk in proxy_request.content])


class MockErrorHandler:
    """Error handler recording every call."""

    def __init__(self):
        self.errors: List[Exception] = []

    @property
    def called(self) -> bool:
        return bool(self.errors)

    async def server_error_handler(self, request: Request, error: Exception) -> Response:
        self.errors.append(error)
        return JSONResponse(status_code=500, content={"detail": str(error)})


class MockReverseProxy:
    """In-memory proxy target recording which operations ran."""

    def __init__(self, url: str = ""):
        self.url = url
        self.calls: List[str] = []
        self.served: List[ProxyRequest] = []
        self.targets: List[Optional[str]] = []

    def set_proxy_url(self, url: str) -> None:
        self.url = url

    def get_proxy_url(self) -> str:
        return self.url

    async def serve_reverse_proxy(
        self,
        request: Request,
        proxy_request: ProxyRequest,
        error_handler: ErrorHandler,
        target: Optional[str] = None
    ) -> Response:
        self.calls.append("serve_reverse_proxy")
        self.served.append(proxy_request)
        self.targets.append(target)
        return Response(status_code=200, content=b"forwarded")

    async def decode_url_from_body(self, request: Request) -> str:
        self.calls.append("decode_url_from_body")
        await request.body()
        return self.url


@pytest.fixture
def error_handler() -> MockErrorHandler:
    """A fresh recording error handler."""
    return MockErrorHandler()
