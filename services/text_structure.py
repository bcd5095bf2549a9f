"""Word counting and structural parsing of free-form messages.

``count_words`` is the only definition of a word used by the service: target
computation, prompt instructions and acceptance checks all rely on it.

``extract_parts`` splits a message into subject, greeting, body and signature
with an ordered list of heuristic rules. It never raises; when nothing is
detected the whole input is treated as the body.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TOKENS_PER_WORD = 1.3
GREETING_MAX_CHARS = 60

_LINE_BREAKS = re.compile(r"[\r\n]+")
_WHITESPACE = re.compile(r"\s+")

SUBJECT_PATTERN = re.compile(r"^Subject:\s*(.+?)(?=\n\n|\n[A-Za-z])", re.IGNORECASE | re.DOTALL)
GREETING_PATTERN = re.compile(r"^(hi|hello|dear|good\s*day|greetings|hey)", re.IGNORECASE)


def count_words(text: str | None) -> int:
    if not text or not isinstance(text, str):
        return 0
    normalized = _WHITESPACE.sub(" ", _LINE_BREAKS.sub(" ", text.strip()))
    return len([word for word in normalized.split(" ") if word])


def estimate_tokens(text: str, tokens_per_word: float = TOKENS_PER_WORD) -> int:
    return math.ceil(count_words(text) * tokens_per_word)


@dataclass(frozen=True)
class ParsedMessage:
    subject: str = ""
    greeting: str = ""
    body: str = ""
    signature: str = ""

    @property
    def has_structure(self) -> bool:
        return bool(self.subject or self.greeting or self.signature)

    def reassemble(self) -> str:
        """Join the zones back into message text with blank-line separators."""
        parts = []
        if self.subject:
            parts.append(f"Subject: {self.subject}")
        parts.extend(part for part in (self.greeting, self.body, self.signature) if part)
        return "\n\n".join(parts)


@dataclass(frozen=True)
class SignatureRule:
    name: str
    pattern: re.Pattern[str]


# Tried in order; the first rule that matches anywhere wins.
SIGNATURE_RULES: tuple[SignatureRule, ...] = (
    SignatureRule(
        name="closing_word",
        pattern=re.compile(
            r"\n\s*(regards|sincerely|thank you|best|cheers|yours|truly|thanks|warm regards)",
            re.IGNORECASE,
        ),
    ),
    SignatureRule(name="double_dash", pattern=re.compile(r"\n\s*--\s*\n")),
    SignatureRule(name="dash_rule", pattern=re.compile(r"\n\s*-{2,}\s*\n")),
)


def detect_subject(text: str) -> tuple[str, str] | None:
    """Return ``(subject, remainder)`` for a leading ``Subject:`` line."""
    match = SUBJECT_PATTERN.match(text)
    if not match or not match.group(1):
        return None
    return match.group(1).strip(), text[match.end():].strip()


def detect_greeting(text: str) -> tuple[str, str] | None:
    """Return ``(greeting, remainder)`` when the first non-empty line is a short salutation."""
    first_line = next((line.strip() for line in text.split("\n") if line.strip()), "")
    if not first_line:
        return None
    if not GREETING_PATTERN.match(first_line) or len(first_line) >= GREETING_MAX_CHARS:
        return None
    index = text.find(first_line)
    if index == -1:
        return None
    return first_line, text[index + len(first_line):].strip()


def detect_signature(text: str) -> tuple[str, str] | None:
    """Return ``(body, signature)`` split at the first matching closing rule."""
    for rule in SIGNATURE_RULES:
        match = rule.pattern.search(text)
        if not match:
            continue
        if match.start() <= 0:
            return None
        logger.debug("Signature detected by rule %s at offset %s", rule.name, match.start())
        return text[: match.start()].strip(), text[match.start():].strip()
    return None


def extract_parts(text: str | None) -> ParsedMessage:
    if not text or not isinstance(text, str):
        return ParsedMessage(body=text if isinstance(text, str) else "")

    remaining = text
    subject = greeting = signature = ""

    detected_subject = detect_subject(remaining)
    if detected_subject:
        subject, remaining = detected_subject

    detected_greeting = detect_greeting(remaining)
    if detected_greeting:
        greeting, remaining = detected_greeting

    detected_signature = detect_signature(remaining)
    if detected_signature:
        remaining, signature = detected_signature

    return ParsedMessage(
        subject=subject,
        greeting=greeting,
        body=remaining.strip(),
        signature=signature,
    )


_MARKDOWN_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"`(.*?)`"), r"\1"),
    (re.compile(r"_{2,}"), ""),
    (re.compile(r"#{1,6}\s"), ""),
    (re.compile(r"\[(.*?)\]\(.*?\)"), r"\1"),
)


def clean_generated_text(text: str | None) -> str:
    """Strip markdown decoration that language models add to plain-text replies."""
    if not text:
        return ""
    cleaned = text
    for pattern, replacement in _MARKDOWN_RULES:
        cleaned = pattern.sub(replacement, cleaned)
    return cleaned.strip()
