from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from services.enhancement_types import InputType, LengthMode


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EnhanceRequest(CamelModel):
    content: str
    tone: str = Field(default="", max_length=500)
    target_words: int
    input_type: InputType = InputType.email
    enforce_exact_word_count: bool = False


class EnhanceResponse(CamelModel):
    enhanced_content: str
    word_count: int
    target_words: int
    warning: str | None = None


class TargetWordsRequest(CamelModel):
    content: str = Field(min_length=1)
    length_mode: LengthMode = LengthMode.same
    input_type: InputType = InputType.email


class TargetWordsResponse(CamelModel):
    target_words: int
    current_words: int
    length_mode: LengthMode
