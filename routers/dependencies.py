from __future__ import annotations

from fastapi import HTTPException, Request
from slowapi.util import get_remote_address

from app.core.config import Settings
from services.enhancer import EnhancementService
from services.usage_gate import UsageGate


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_id(request: Request) -> str | None:
    """Return the user id set by the upstream auth layer, or None for guests."""
    header = request.app.state.settings.user_id_header
    user_id = request.headers.get(header, "").strip()
    return user_id or None


def get_guest_key(request: Request) -> str:
    return get_remote_address(request)


def get_usage_gate(request: Request) -> UsageGate:
    return request.app.state.usage_gate


def get_enhancement_service(request: Request) -> EnhancementService:
    service = request.app.state.enhancement_service
    if service is None:
        raise HTTPException(status_code=500, detail="OpenAI API key is not configured.")
    return service
