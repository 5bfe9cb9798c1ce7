"""Title extraction from AI-generated Markdown.

The final-phase response is free text from a third-party chat tool, so the
title is searched in tiers: the first level-1 heading, then a bold headline
placed directly under a generic heading, then any bold span that looks like a
headline rather than a sentence.
"""

import re
from typing import Optional

GENERIC_HEADINGS = frozenset(
    {
        "press release",
        "architecture decision record",
        "adr",
        "untitled",
        "title",
    }
)

MIN_HEADLINE_LENGTH = 10
MAX_HEADLINE_LENGTH = 150

_H1 = re.compile(r"^#[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$", re.MULTILINE)
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_WHITESPACE = re.compile(r"\s+")


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def is_generic_heading(text: str) -> bool:
    """Whether a heading is boilerplate rather than a real title."""
    return _normalize(text).lower() in GENERIC_HEADINGS


def is_placeholder(text: str) -> bool:
    """Whether text still contains an unfilled template variable."""
    return "{" in text or "}" in text


def _looks_like_headline(text: str) -> bool:
    return (
        MIN_HEADLINE_LENGTH < len(text) < MAX_HEADLINE_LENGTH
        and not text.endswith(".")
        and not is_placeholder(text)
    )


def _bold_after(markdown: str, position: int) -> Optional[str]:
    """Bold span that is the first non-blank text at ``position``."""
    match = re.match(r"\s*\*\*(.+?)\*\*", markdown[position:])
    if not match:
        return None
    candidate = _normalize(match.group(1))
    if not candidate or is_placeholder(candidate):
        return None
    return candidate


def extract_title_from_markdown(markdown: Optional[str]) -> Optional[str]:
    """Extract a document title from Markdown.

    Args:
        markdown: Document text, typically the phase 3 response

    Returns:
        The extracted title, or None when no usable title is present
    """
    if not markdown:
        return None

    heading = _H1.search(markdown)
    if heading:
        title = _normalize(heading.group(1))
        if title and not is_generic_heading(title) and not is_placeholder(title):
            return title
        if is_generic_heading(title):
            headline = _bold_after(markdown, heading.end())
            if headline:
                return headline

    for match in _BOLD.finditer(markdown):
        candidate = _normalize(match.group(1))
        if _looks_like_headline(candidate):
            return candidate

    return None
