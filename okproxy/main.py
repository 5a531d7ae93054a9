"""
OKProxy - HTTP request forwarding service

Entry point for the FastAPI application.
"""
from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from dotenv import load_dotenv

from okproxy.logging import get_logger
from okproxy.state import app_state
from okproxy.routers import internal, proxy
from okproxy.services.errors import ServerErrorHandler
from okproxy.services.handlers import new
from okproxy.config import get_config

load_dotenv()

logger = get_logger(__name__)


def _init_http_client() -> None:
    """Initialize shared HTTP client for upstream requests."""
    app_state.http_client = httpx.AsyncClient(timeout=get_config().okproxy_timeout)
    logger.info("HTTP client initialized")


def _init_proxy() -> None:
    """Build the proxy target and both request handlers."""
    config = get_config()
    app_state.okproxy = new(config.okproxy_url, client=app_state.http_client)
    app_state.error_handler = ServerErrorHandler()
    app_state.path_handler = app_state.okproxy.path_request_proxy_handler(
        config.okproxy_path_prefix, app_state.error_handler
    )
    app_state.payload_handler = app_state.okproxy.payload_request_proxy_handler(app_state.error_handler)
    if config.okproxy_url:
        logger.info(f"Proxy target set to {config.okproxy_url}")
    else:
        logger.info("No proxy target configured; path mode disabled until a payload request sets one")


async def _shutdown_http_client() -> None:
    """Close the shared HTTP client."""
    if app_state.http_client:
        await app_state.http_client.aclose()
        logger.info("HTTP client closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    _init_http_client()
    _init_proxy()

    yield

    await _shutdown_http_client()

app = FastAPI(
    title="OKProxy",
    description="HTTP request forwarding service",
    lifespan=lifespan
)

app.include_router(internal.router)
app.include_router(proxy.router)
