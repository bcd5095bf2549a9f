from __future__ import annotations

from pydantic import Field

from schemas.enhancement import CamelModel


class UsageResponse(CamelModel):
    can_make_request: bool
    remaining_messages: int
    requires_auth: bool
    requires_payment: bool


class UsageResetRequest(CamelModel):
    user_id: str = Field(min_length=1, max_length=64)
