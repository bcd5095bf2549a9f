from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from routers.dependencies import get_enhancement_service, get_guest_key, get_user_id
from schemas.enhancement import EnhanceRequest, EnhanceResponse, TargetWordsRequest, TargetWordsResponse
from services.enhancement_types import EnhancementRequest, ErrorCode
from services.enhancer import EnhancementService
from services.target_calculator import body_word_count, compute_target

logger = logging.getLogger(__name__)

router = APIRouter(tags=["enhance"])

ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.validation_error: 400,
    ErrorCode.login_required: 401,
    ErrorCode.payment_required: 402,
    ErrorCode.usage_limit_reached: 429,
    ErrorCode.backend_error: 500,
}


@router.post("/enhance", response_model=EnhanceResponse, response_model_exclude_none=True)
async def enhance(
    payload: EnhanceRequest,
    service: EnhancementService = Depends(get_enhancement_service),
    user_id: str | None = Depends(get_user_id),
    guest_key: str = Depends(get_guest_key),
) -> EnhanceResponse:
    result = await service.enhance(
        EnhancementRequest(
            content=payload.content,
            tone=payload.tone,
            target_words=payload.target_words,
            input_type=payload.input_type,
            enforce_exact_word_count=payload.enforce_exact_word_count,
        ),
        user_id=user_id,
        guest_key=guest_key,
    )
    if result.error_code is not None:
        raise HTTPException(status_code=ERROR_STATUS[result.error_code], detail=result.error)

    return EnhanceResponse(
        enhanced_content=result.enhanced_content,
        word_count=result.word_count,
        target_words=result.target_words,
        warning=result.warning,
    )


@router.post("/target-words", response_model=TargetWordsResponse)
async def target_words(payload: TargetWordsRequest) -> TargetWordsResponse:
    return TargetWordsResponse(
        target_words=compute_target(payload.content, payload.length_mode, payload.input_type),
        current_words=body_word_count(payload.content, payload.input_type),
        length_mode=payload.length_mode,
    )
