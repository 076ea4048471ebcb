"""Health check endpoint — no auth required."""

from __future__ import annotations

from fastapi import APIRouter, Request

from edutrack import __version__
from edutrack.api.models.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    settings = request.app.state.settings
    return HealthResponse(
        status="ok",
        version=__version__,
        environment=settings.edutrack_env,
    )
