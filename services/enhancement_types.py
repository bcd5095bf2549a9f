from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class InputType(str, Enum):
    email = "email"
    message = "message"
    text = "text"
    subject = "subject"


# Input types whose content carries a subject, greeting and signature around the body.
STRUCTURED_INPUT_TYPES = frozenset({InputType.email})


class LengthMode(str, Enum):
    shorter = "shorter"
    same = "same"
    longer = "longer"


class ErrorCode(str, Enum):
    validation_error = "validation_error"
    login_required = "login_required"
    payment_required = "payment_required"
    usage_limit_reached = "usage_limit_reached"
    backend_error = "backend_error"


class EnhancementError(RuntimeError):
    """Base class for failures surfaced to callers of the enhancement pipeline."""

    code = ErrorCode.backend_error
    public_message = "Failed to enhance content. Please try again later."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class EnhancementValidationError(EnhancementError):
    """Raised when the request is malformed or too large."""

    code = ErrorCode.validation_error
    public_message = "Invalid enhancement request."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message)
        # Validation messages describe the caller's own input, so they are safe to return.
        self.public_message = str(self)


class QuotaError(EnhancementError):
    """Raised when the usage gate refuses the request."""

    code = ErrorCode.usage_limit_reached
    public_message = "Usage limit reached"


class AuthRequiredError(QuotaError):
    """Raised when a guest has exhausted the anonymous allowance."""

    code = ErrorCode.login_required
    public_message = "login_required"


class PaymentRequiredError(QuotaError):
    """Raised when a signed-in user has exhausted the free allowance."""

    code = ErrorCode.payment_required
    public_message = "payment_required"


class UsageLimitError(QuotaError):
    """Raised when the allowance is spent and neither login nor payment would lift it."""


class BackendError(EnhancementError):
    """Raised when the generation backend fails, times out or is misconfigured."""


class EmptyResponseError(BackendError):
    """Raised when the generation backend returns no usable text."""


@dataclass(frozen=True)
class EnhancementRequest:
    content: str
    tone: str
    target_words: int
    input_type: InputType = InputType.email
    enforce_exact_word_count: bool = False

    @property
    def is_structured(self) -> bool:
        return self.input_type in STRUCTURED_INPUT_TYPES


@dataclass(frozen=True)
class EnhancementResult:
    enhanced_content: str = ""
    word_count: int = 0
    target_words: int = 0
    warning: str | None = None
    error: str | None = None
    error_code: ErrorCode | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, exc: EnhancementError, target_words: int = 0, attempts: int = 0) -> EnhancementResult:
        return cls(
            target_words=target_words,
            error=exc.public_message,
            error_code=exc.code,
            attempts=attempts,
        )
