from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.core.config import Settings
from routers.dependencies import get_app_settings, get_guest_key, get_usage_gate, get_user_id
from schemas.usage import UsageResetRequest, UsageResponse
from services.usage_gate import UsageGate, UsageStatus

router = APIRouter(tags=["usage"])


def _to_response(status: UsageStatus) -> UsageResponse:
    return UsageResponse(
        can_make_request=status.can_make_request,
        remaining_messages=status.remaining_messages,
        requires_auth=status.requires_auth,
        requires_payment=status.requires_payment,
    )


@router.get("/usage", response_model=UsageResponse)
async def check_usage(
    usage_gate: UsageGate = Depends(get_usage_gate),
    user_id: str | None = Depends(get_user_id),
    guest_key: str = Depends(get_guest_key),
) -> UsageResponse:
    return _to_response(await usage_gate.check_usage(user_id, guest_key))


@router.post("/usage/reset", response_model=UsageResponse)
async def reset_usage(
    payload: UsageResetRequest,
    usage_gate: UsageGate = Depends(get_usage_gate),
    user_id: str | None = Depends(get_user_id),
    settings: Settings = Depends(get_app_settings),
) -> UsageResponse:
    is_admin = user_id is not None and user_id == settings.admin_user_id
    if not is_admin and user_id != payload.user_id:
        raise HTTPException(status_code=403, detail="Unauthorized to reset usage")
    return _to_response(await usage_gate.reset_usage(payload.user_id))
