from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Protocol

import httpx
from openai import AsyncOpenAI

from services.enhancement_types import BackendError, EmptyResponseError, EnhancementRequest
from services.prompt_builder import ChatMessage
from services.text_structure import extract_parts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationCall:
    messages: list[ChatMessage]
    max_output_tokens: int
    temperature: float
    source: EnhancementRequest


class GenerationBackend(Protocol):
    async def generate(self, call: GenerationCall) -> str: ...


class OpenAIGenerationBackend:
    """Rewrite text with the OpenAI responses API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        timeout_seconds: float = 30.0,
        max_retries: int = 1,
    ) -> None:
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=httpx.Timeout(timeout_seconds, connect=5.0),
            max_retries=max_retries,
        )
        self._model = model

    async def generate(self, call: GenerationCall) -> str:
        try:
            response = await self._client.responses.create(
                model=self._model,
                input=call.messages,
                temperature=call.temperature,
                max_output_tokens=call.max_output_tokens,
            )
        except Exception as exc:  # noqa: BLE001 - surface OpenAI errors as backend failures
            raise BackendError("OpenAI request failed.") from exc

        content = getattr(response, "output_text", None)
        if not content or not content.strip():
            raise EmptyResponseError("OpenAI returned empty response.")
        return content


FILLER_WORDS = (
    "effectively",
    "efficiently",
    "specifically",
    "particularly",
    "notably",
    "significantly",
    "consequently",
    "furthermore",
    "additionally",
    "moreover",
    "therefore",
    "accordingly",
)

DEFAULT_SUBJECT = "Update on our recent discussion"
DEFAULT_GREETING = "Hello,"
DEFAULT_SIGNATURE = "Best regards,"

_SENTENCE_END = re.compile(r"[.!?]")


class OfflineGenerationBackend:
    """Deterministic stand-in used in test mode; never calls a remote API.

    The body is cut or padded with filler words so it always lands on the
    requested word count. Emails keep the subject, greeting and signature of
    the source and get defaults for the ones that are missing.
    """

    async def generate(self, call: GenerationCall) -> str:
        request = call.source
        logger.info(
            "Offline generation of %s words for %s",
            request.target_words,
            request.input_type.value,
        )
        if not request.is_structured:
            return self._fit_body(request.content, request.target_words)

        parsed = extract_parts(request.content)
        subject = parsed.subject or self._subject_from(parsed.body or request.content)
        greeting = parsed.greeting or DEFAULT_GREETING
        signature = parsed.signature or DEFAULT_SIGNATURE
        body = self._fit_body(parsed.body, request.target_words)
        return f"Subject: {subject}\n\n{greeting}\n\n{body}\n\n{signature}"

    @staticmethod
    def _subject_from(text: str) -> str:
        first_sentence = _SENTENCE_END.split(text, maxsplit=1)[0].strip()
        keywords = [word for word in first_sentence.split() if len(word) > 3][:3]
        if not keywords:
            return DEFAULT_SUBJECT
        return f"{' '.join(keywords)} - Update"

    @staticmethod
    def _fit_body(text: str, target_words: int) -> str:
        words = text.split()
        if len(words) >= target_words:
            return " ".join(words[:target_words])
        missing = target_words - len(words)
        fillers = [FILLER_WORDS[index % len(FILLER_WORDS)] for index in range(missing)]
        return " ".join([*words, *fillers])
