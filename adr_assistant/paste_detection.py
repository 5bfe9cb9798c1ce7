"""Detection of prompts pasted back in place of an AI response.

A common mistake is copying the generated prompt into the response box
instead of the chat tool's reply. A response counts as a prompt on an
exact or containing match against the stored prompt, the marker
comment every bundled template carries, or several of the section headers
that only prompts use.
"""

import re
from dataclasses import dataclass
from typing import Optional

PROMPT_MARKER = "<!-- adr-assistant:prompt"

PROMPT_HEADERS = (
    "your task",
    "instructions",
    "required output format",
    "decision inputs",
    "draft under review",
)

# Level-two headings whose whole text is one of PROMPT_HEADERS.
_HEADER_LINE = re.compile(
    r"^##[ \t]+(" + "|".join(re.escape(h) for h in PROMPT_HEADERS) + r")[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)

MIN_HEADER_MATCHES = 2

RULE_EXACT = "exact_match"
RULE_CONTAINS = "contains_prompt"
RULE_MARKER = "prompt_marker"
RULE_HEADERS = "prompt_headers"

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class PromptPasteCheck:
    """Outcome of a prompt-paste check."""

    is_prompt: bool
    reason: str = ""
    rule: Optional[str] = None


NOT_A_PROMPT = PromptPasteCheck(is_prompt=False)


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return _WHITESPACE.sub(" ", text or "").strip()


def count_prompt_headers(text: str) -> int:
    """Number of distinct prompt section headings in ``text``."""
    found = {match.group(1).lower() for match in _HEADER_LINE.finditer(text or "")}
    return len(found)


def detect_prompt_paste(response: str, stored_prompt: Optional[str] = None) -> PromptPasteCheck:
    """Check whether ``response`` is a copy of a generated prompt.

    Args:
        response: Text the user submitted as the AI response
        stored_prompt: Prompt previously generated for the same phase

    Returns:
        PromptPasteCheck naming the rule that matched, if any
    """
    normalized = normalize_whitespace(response)
    if not normalized:
        return NOT_A_PROMPT

    prompt = normalize_whitespace(stored_prompt or "")
    if prompt:
        if normalized == prompt:
            return PromptPasteCheck(
                is_prompt=True,
                reason="The response is identical to the generated prompt",
                rule=RULE_EXACT,
            )
        if prompt in normalized:
            return PromptPasteCheck(
                is_prompt=True,
                reason="The response contains the entire generated prompt",
                rule=RULE_CONTAINS,
            )

    if PROMPT_MARKER in response:
        return PromptPasteCheck(
            is_prompt=True,
            reason="The response contains the prompt marker comment",
            rule=RULE_MARKER,
        )

    headers = count_prompt_headers(response)
    if headers >= MIN_HEADER_MATCHES:
        return PromptPasteCheck(
            is_prompt=True,
            reason=f"The response contains {headers} prompt instruction headers",
            rule=RULE_HEADERS,
        )

    return NOT_A_PROMPT
