from __future__ import annotations

from services.enhancement_types import EnhancementRequest, InputType
from services.text_structure import ParsedMessage

ChatMessage = dict[str, str]

SYSTEM_PROMPT_TEMPLATE = """
You are a writing assistant that rewrites text to {precision} the requested word count.

Word count requirement:
The main body of your output MUST contain {precision} {target_words} words - {range_note}.

Word counting rules:
1. Words are separated by spaces
2. Hyphenated terms like "state-of-the-art" count as ONE word
3. Contractions like "don't" count as ONE word
4. Acronyms like "AI" or "USA" count as ONE word
5. Numbers like "2024" count as ONE word
{scope_rule}

Task:
Rewrite the {input_type} supplied by the user.
- Writing style: {tone}
- Keep the original meaning and intent while improving clarity and impact
- Return plain text only, without markdown or commentary
{structure_section}
Output format:
{output_format}

Verification:
1. Write your response
2. Count the body words by splitting on spaces
3. If the body is not {verification_target}, adjust and recount
4. Only answer when the body has {precision} {target_words} words
{strict_section}""".strip()

STRUCTURE_TEMPLATE = """
Email structure:
- Subject: {subject}
- Greeting: {greeting}
- Body: main content with {precision} {target_words} words
- Signature: {signature}
"""

STRICT_TEMPLATE = """
CRITICAL REQUIREMENT: The body MUST contain EXACTLY {target_words} words, excluding the subject, greeting and signature. This is a hard constraint, not a guideline. The exact count matters more than preserving every detail of the original text.
"""

USER_PROMPT_TEMPLATE = """
Please rewrite this {input_type} with {precision} {target_words} words in the main body.

Content to rewrite:
{content}
""".strip()

CORRECTION_TEMPLATE = """
You previously generated text with {actual_words} words in the main body, but I need EXACTLY {target_words} words.

Count words by splitting on spaces. Each space-separated token is ONE word.

Examples of counting:
- "Hello world" = 2 words
- "state-of-the-art technology" = 3 words
- "don't worry about it" = 4 words
- "AI in 2024" = 3 words

Previous output:
{previous_output}

Rewrite it so the main body has EXACTLY {target_words} words. The exact count is critical.
""".strip()

_OUTPUT_FORMATS = {
    InputType.email: "Subject: <subject line>\n\n<greeting>\n\n<body>\n\n<signature>",
    InputType.subject: "<a single subject line>",
}


def _precision(request: EnhancementRequest) -> str:
    return "EXACTLY" if request.enforce_exact_word_count else "approximately"


def _structure_section(request: EnhancementRequest, parsed_original: ParsedMessage | None) -> str:
    if not request.is_structured:
        return ""
    original = parsed_original or ParsedMessage()
    return STRUCTURE_TEMPLATE.format(
        subject=f'keep "{original.subject}"' if original.subject else "create an appropriate subject line",
        greeting=f'keep "{original.greeting}"' if original.greeting else "include an appropriate greeting",
        signature=(
            f'keep "{original.signature}"' if original.signature else "include an appropriate signature"
        ),
        precision=_precision(request),
        target_words=request.target_words,
    )


def build_prompt(request: EnhancementRequest, parsed_original: ParsedMessage | None = None) -> list[ChatMessage]:
    """Build the system/user message pair for a first enhancement attempt."""
    precision = _precision(request)
    if request.enforce_exact_word_count:
        range_note = "no more, no less"
        verification_target = f"EXACTLY {request.target_words} words"
        strict_section = STRICT_TEMPLATE.format(target_words=request.target_words)
    else:
        range_note = "aim for within 5% of this target"
        verification_target = f"within 5% of {request.target_words} words"
        strict_section = ""

    if request.is_structured:
        scope_rule = (
            "6. Only the body is counted: the subject line, greeting and signature are NOT "
            "part of the word count"
        )
    else:
        scope_rule = "6. Every word of your output is counted"

    system_prompt = SYSTEM_PROMPT_TEMPLATE.format(
        precision=precision,
        target_words=request.target_words,
        range_note=range_note,
        scope_rule=scope_rule,
        input_type=request.input_type.value,
        tone=request.tone if request.tone.strip() else "unchanged",
        structure_section=_structure_section(request, parsed_original),
        output_format=_OUTPUT_FORMATS.get(request.input_type, "<body>"),
        verification_target=verification_target,
        strict_section=strict_section,
    )
    user_prompt = USER_PROMPT_TEMPLATE.format(
        input_type=request.input_type.value,
        precision=precision,
        target_words=request.target_words,
        content=request.content.strip(),
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def build_correction_prompt(
    messages: list[ChatMessage],
    previous_output: str,
    actual_words: int,
    target_words: int,
) -> list[ChatMessage]:
    """Continue the first conversation with a request to fix the word count.

    The original system prompt is kept so the correction is judged against the
    same structure and tone instructions as the first attempt.
    """
    correction = CORRECTION_TEMPLATE.format(
        actual_words=actual_words,
        target_words=target_words,
        previous_output=previous_output,
    )
    return [
        *messages,
        {"role": "assistant", "content": previous_output},
        {"role": "user", "content": correction},
    ]
