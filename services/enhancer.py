from __future__ import annotations

import asyncio
import logging
import math
import uuid
from dataclasses import dataclass
from enum import Enum

from services.enhancement_types import (
    AuthRequiredError,
    BackendError,
    EmptyResponseError,
    EnhancementError,
    EnhancementRequest,
    EnhancementResult,
    EnhancementValidationError,
    PaymentRequiredError,
    QuotaError,
    UsageLimitError,
)
from services.generation_backend import GenerationBackend, GenerationCall
from services.prompt_builder import ChatMessage, build_correction_prompt, build_prompt
from services.target_calculator import round_half_up
from services.text_structure import clean_generated_text, count_words, estimate_tokens, extract_parts
from services.usage_gate import DEFAULT_GUEST_KEY, UsageGate, UsageStatus

logger = logging.getLogger(__name__)

FIRST_ATTEMPT_TEMPERATURE = 0.7
CORRECTION_TEMPERATURE = 0.5


class EnhancementState(str, Enum):
    validating = "validating"
    quota_check = "quota_check"
    generating = "generating"
    parsing = "parsing"
    evaluating = "evaluating"
    retrying = "retrying"
    accepted = "accepted"
    accepted_with_warning = "accepted_with_warning"
    failed = "failed"


@dataclass(frozen=True)
class EnhancementLimits:
    max_input_tokens: int = 16000
    tokens_per_word: float = 1.3
    output_token_floor: int = 2000
    output_token_ceiling: int = 8000
    output_expansion_factor: float = 2.5
    tolerance_ratio: float = 0.05
    tolerance_floor_words: int = 5
    generation_timeout_seconds: float = 45.0

    def output_budget(self, target_words: int) -> int:
        wanted = math.ceil(target_words * self.tokens_per_word * self.output_expansion_factor)
        return min(self.output_token_ceiling, max(self.output_token_floor, wanted))

    def tolerance(self, target_words: int, exact: bool) -> int:
        if exact:
            return 0
        return max(self.tolerance_floor_words, round_half_up(target_words * self.tolerance_ratio))


def word_count_warning(actual_words: int, target_words: int, exact: bool) -> str:
    if exact:
        return f"The AI generated {actual_words} words instead of maintaining the exact {target_words} words."
    return f"The AI generated {actual_words} words instead of the requested {target_words} words."


def quota_error_for(status: UsageStatus) -> QuotaError:
    if status.requires_auth:
        return AuthRequiredError()
    if status.requires_payment:
        return PaymentRequiredError()
    return UsageLimitError()


@dataclass
class _Run:
    request: EnhancementRequest
    request_id: str
    attempts: int = 0

    def transition(self, state: EnhancementState, detail: str = "", *args: object) -> None:
        if detail:
            logger.debug("[%s] %s: " + detail, self.request_id, state.value, *args)
        else:
            logger.debug("[%s] %s", self.request_id, state.value)


class EnhancementService:
    """Rewrite text to a target body word count.

    One request runs validation, a quota pre-check, a generation call and a
    word-count evaluation. Strict requests that miss their target get exactly
    one correction call; any remaining mismatch is returned as a warning, never
    as an error. Usage is recorded only for accepted results.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        usage_gate: UsageGate,
        limits: EnhancementLimits | None = None,
    ) -> None:
        self._backend = backend
        self._usage_gate = usage_gate
        self._limits = limits or EnhancementLimits()

    async def enhance(
        self,
        request: EnhancementRequest,
        user_id: str | None = None,
        guest_key: str = DEFAULT_GUEST_KEY,
    ) -> EnhancementResult:
        run = _Run(request=request, request_id=uuid.uuid4().hex[:12])
        try:
            return await self._run(run, user_id, guest_key)
        except EnhancementError as exc:
            logger.info("[%s] Enhancement failed (%s): %s", run.request_id, exc.code.value, exc)
            run.transition(EnhancementState.failed)
            return EnhancementResult.failure(exc, target_words=request.target_words, attempts=run.attempts)
        except Exception:  # noqa: BLE001 - nothing internal may leak to the caller
            logger.exception("[%s] Unexpected enhancement failure", run.request_id)
            run.transition(EnhancementState.failed)
            return EnhancementResult.failure(
                BackendError(), target_words=request.target_words, attempts=run.attempts
            )

    async def _run(self, run: _Run, user_id: str | None, guest_key: str) -> EnhancementResult:
        request = run.request
        run.transition(EnhancementState.validating)
        self._validate(request)

        run.transition(EnhancementState.quota_check)
        status = await self._usage_gate.check_usage(user_id, guest_key)
        if not status.can_make_request:
            raise quota_error_for(status)

        parsed_original = extract_parts(request.content) if request.is_structured else None
        messages = build_prompt(request, parsed_original)
        exact = request.enforce_exact_word_count
        tolerance = self._limits.tolerance(request.target_words, exact)

        output = await self._generate(run, messages, FIRST_ATTEMPT_TEMPERATURE)
        word_count = self._body_word_count(run, output)
        run.transition(
            EnhancementState.evaluating,
            "%s words (target %s, tolerance %s)",
            word_count,
            request.target_words,
            tolerance,
        )

        if exact and abs(word_count - request.target_words) > tolerance:
            run.transition(EnhancementState.retrying)
            correction = build_correction_prompt(messages, output, word_count, request.target_words)
            output = await self._generate(run, correction, CORRECTION_TEMPERATURE)
            word_count = self._body_word_count(run, output)
            run.transition(
                EnhancementState.evaluating,
                "%s words after correction (target %s)",
                word_count,
                request.target_words,
            )

        warning = None
        if abs(word_count - request.target_words) > tolerance:
            warning = word_count_warning(word_count, request.target_words, exact)
            logger.warning(
                "[%s] Word count outside tolerance: requested %s, got %s",
                run.request_id,
                request.target_words,
                word_count,
            )

        record = await self._usage_gate.record_usage(user_id, guest_key)
        if not record.consumed:
            raise quota_error_for(record.status)

        final_state = EnhancementState.accepted_with_warning if warning else EnhancementState.accepted
        run.transition(final_state, "after %s attempt(s)", run.attempts)
        return EnhancementResult(
            enhanced_content=output,
            word_count=word_count,
            target_words=request.target_words,
            warning=warning,
            attempts=run.attempts,
        )

    def _validate(self, request: EnhancementRequest) -> None:
        if not request.content or not request.content.strip():
            raise EnhancementValidationError("Content is required")
        if request.target_words < 1:
            raise EnhancementValidationError("Invalid target word count")
        estimated_tokens = estimate_tokens(request.content, self._limits.tokens_per_word)
        if estimated_tokens > self._limits.max_input_tokens:
            raise EnhancementValidationError(
                f"Input too long. Maximum {self._limits.max_input_tokens} tokens allowed."
            )

    async def _generate(self, run: _Run, messages: list[ChatMessage], temperature: float) -> str:
        run.attempts += 1
        run.transition(EnhancementState.generating, "attempt %s", run.attempts)
        call = GenerationCall(
            messages=messages,
            max_output_tokens=self._limits.output_budget(run.request.target_words),
            temperature=temperature,
            source=run.request,
        )
        try:
            raw = await asyncio.wait_for(
                self._backend.generate(call),
                timeout=self._limits.generation_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise BackendError("Generation backend timed out.") from exc
        except BackendError:
            raise
        except Exception as exc:  # noqa: BLE001 - backend failures are reported generically
            raise BackendError("Generation backend failed.") from exc

        output = clean_generated_text(raw)
        if not output:
            raise EmptyResponseError("Generation backend returned no text.")
        return output

    @staticmethod
    def _body_word_count(run: _Run, output: str) -> int:
        run.transition(EnhancementState.parsing)
        if run.request.is_structured:
            return count_words(extract_parts(output).body)
        return count_words(output)
