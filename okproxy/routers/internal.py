"""
Internal router - health checks.
"""
from fastapi import APIRouter
from pydantic import BaseModel, Field

from okproxy.state import app_state

router = APIRouter(tags=["internal"])


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(example="healthy")
    target_configured: bool = Field(example=True, description="Whether an upstream target is set")


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    configured = app_state.okproxy is not None and bool(app_state.okproxy.proxy.get_proxy_url())
    return HealthResponse(status="healthy", target_configured=configured)
