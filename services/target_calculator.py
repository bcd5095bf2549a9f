from __future__ import annotations

import logging
import math

from services.enhancement_types import STRUCTURED_INPUT_TYPES, InputType, LengthMode
from services.text_structure import count_words, extract_parts

logger = logging.getLogger(__name__)

LENGTH_FACTORS: dict[LengthMode, float] = {
    LengthMode.shorter: 0.75,
    LengthMode.same: 1.0,
    LengthMode.longer: 1.5,
}

# Applied only to inputs longer than SMALL_INPUT_WORDS.
MIN_TARGET_WORDS: dict[LengthMode, int] = {
    LengthMode.shorter: 25,
    LengthMode.same: 50,
    LengthMode.longer: 150,
}

SMALL_INPUT_WORDS = 20
SMALL_INPUT_MIN_TARGET = 10
TARGET_STEP = 5


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def body_word_count(content: str, input_type: InputType) -> int:
    if input_type in STRUCTURED_INPUT_TYPES:
        return count_words(extract_parts(content).body)
    return count_words(content)


def compute_target(content: str, length_mode: LengthMode, input_type: InputType) -> int:
    current_words = body_word_count(content, input_type)
    if length_mode is LengthMode.same:
        return current_words

    factor = LENGTH_FACTORS[length_mode]
    target = round_half_up(current_words * factor)

    if current_words > SMALL_INPUT_WORDS:
        target = max(target, MIN_TARGET_WORDS[length_mode])
    else:
        target = max(target, SMALL_INPUT_MIN_TARGET)

    target = round_half_up(target / TARGET_STEP) * TARGET_STEP
    logger.debug(
        "Target word count %s (%s of %s words, mode=%s)",
        target,
        factor,
        current_words,
        length_mode.value,
    )
    return target
