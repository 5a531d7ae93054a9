"""
Application state - shared state initialized at startup.
"""
from __future__ import annotations

import httpx

from okproxy.services.errors import ErrorHandler
from okproxy.services.handlers import OKProxy, RequestHandler


class AppState:
    """
    Application state container.
    Initialized at startup via lifespan, read by the proxy routes.
    """

    def __init__(self):
        self.okproxy: OKProxy | None = None
        self.error_handler: ErrorHandler | None = None
        self.path_handler: RequestHandler | None = None
        self.payload_handler: RequestHandler | None = None
        self.http_client: httpx.AsyncClient | None = None


app_state = AppState()
