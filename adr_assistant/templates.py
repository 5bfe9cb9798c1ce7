"""Prompt template rendering and loading.

Two placeholder syntaxes exist across template families: ``{{NAME}}`` (the
bundled templates) and ``{name}`` (the legacy family). A family couples the
syntax with its naming style so that a template is always rendered with the
matching renderer; rendering a template with the wrong syntax silently leaves
its placeholders unfilled.
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import aiofiles

from adr_assistant.exceptions import TemplateNotFoundError
from adr_assistant.logger import get_logger
from adr_assistant.phase_config import PHASES, get_phase_config

logger = get_logger(__name__)

BUNDLED_PROMPTS_DIR = Path(__file__).parent / "prompts"


class PlaceholderSyntax(str, Enum):
    """Placeholder delimiter styles."""

    DOUBLE_BRACE = "double_brace"
    SINGLE_BRACE = "single_brace"


_PATTERNS = {
    PlaceholderSyntax.DOUBLE_BRACE: re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}"),
    # Lookarounds keep {{NAME}} tokens out of the single-brace family.
    PlaceholderSyntax.SINGLE_BRACE: re.compile(r"(?<!\{)\{([A-Za-z_][A-Za-z0-9_]*)\}(?!\})"),
}


def _humanize(name: str) -> str:
    words = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", name).replace("_", " ").split()
    return " ".join(word.capitalize() for word in words)


def default_fallback(name: str) -> str:
    """Bracketed text used when a variable has no value."""
    return f"[{_humanize(name)} not provided]"


def find_placeholders(
    template: str, syntax: PlaceholderSyntax = PlaceholderSyntax.DOUBLE_BRACE
) -> List[str]:
    """Names of the placeholders in a template, in order of first appearance."""
    seen: Dict[str, None] = {}
    for match in _PATTERNS[syntax].finditer(template or ""):
        seen.setdefault(match.group(1), None)
    return list(seen)


def render(
    template: str,
    variables: Mapping[str, Optional[str]],
    syntax: PlaceholderSyntax = PlaceholderSyntax.DOUBLE_BRACE,
    fallbacks: Optional[Mapping[str, str]] = None,
) -> str:
    """Substitute ``variables`` into ``template``.

    Placeholders whose name is not in ``variables`` are left untouched. A
    variable that is present but empty is replaced by its fallback text
    (``fallbacks[name]`` or a generic ``[Name not provided]``).
    """
    if not template:
        return ""
    fallbacks = fallbacks or {}

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        value = variables[name]
        if value is None or str(value).strip() == "":
            return fallbacks.get(name, default_fallback(name))
        return str(value)

    return _PATTERNS[syntax].sub(substitute, template)


def _lower_camel(name: str) -> str:
    head, *rest = name.lower().split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass(frozen=True)
class TemplateFamily:
    """A placeholder syntax plus the naming style its templates use."""

    name: str
    syntax: PlaceholderSyntax
    camel_case_names: bool = False

    def template_name(self, canonical: str) -> str:
        """Map a canonical ``UPPER_SNAKE`` variable name to this family's name."""
        return _lower_camel(canonical) if self.camel_case_names else canonical

    def render(
        self,
        template: str,
        variables: Mapping[str, Optional[str]],
        fallbacks: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Render with canonical variable names translated to this family."""
        translated = {self.template_name(k): v for k, v in variables.items()}
        translated_fallbacks = {
            self.template_name(k): v for k, v in (fallbacks or {}).items()
        }
        return render(template, translated, self.syntax, translated_fallbacks)

    def placeholders(self, template: str) -> List[str]:
        return find_placeholders(template, self.syntax)


STANDARD_FAMILY = TemplateFamily("standard", PlaceholderSyntax.DOUBLE_BRACE)
LEGACY_FAMILY = TemplateFamily(
    "legacy", PlaceholderSyntax.SINGLE_BRACE, camel_case_names=True
)

TEMPLATE_FAMILIES = {
    STANDARD_FAMILY.name: STANDARD_FAMILY,
    LEGACY_FAMILY.name: LEGACY_FAMILY,
}


def get_template_family(name: str) -> TemplateFamily:
    """Look up a template family by name."""
    try:
        return TEMPLATE_FAMILIES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown template family {name!r}; expected one of {sorted(TEMPLATE_FAMILIES)}"
        )


class PromptTemplateLoader:
    """Loads and caches the per-phase prompt templates."""

    def __init__(
        self,
        templates_dir: Optional[str] = None,
        family: TemplateFamily = STANDARD_FAMILY,
    ):
        """Initialize the loader.

        Args:
            templates_dir: Directory containing phase1.md..phase3.md. Defaults
                to the templates bundled with the package.
            family: Template family the files are written in.
        """
        self.templates_dir = Path(templates_dir) if templates_dir else BUNDLED_PROMPTS_DIR
        self.family = family
        self._cache: Dict[int, str] = {}

    def template_path(self, phase: int) -> Path:
        config = get_phase_config(phase)
        filename = config.prompt_file if config else f"phase{phase}.md"
        return self.templates_dir / filename

    async def load(self, phase: int) -> str:
        """Return the template text for a phase.

        Raises:
            TemplateNotFoundError: If the template file cannot be read.
        """
        if phase in self._cache:
            return self._cache[phase]

        path = self.template_path(phase)
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                template = await f.read()
        except OSError as e:
            logger.error("Failed to load prompt template", phase=phase, path=str(path), error=str(e))
            raise TemplateNotFoundError(phase, str(path)) from e

        missing = self.missing_placeholders(phase, template)
        if missing:
            logger.warning(
                "Prompt template is missing required placeholders",
                phase=phase,
                path=str(path),
                missing=missing,
            )

        self._cache[phase] = template
        return template

    def missing_placeholders(self, phase: int, template: str) -> List[str]:
        """Required canonical variables that do not appear in ``template``."""
        config = get_phase_config(phase)
        if not config:
            return []
        present = set(self.family.placeholders(template))
        return [
            name
            for name in config.required_variables
            if self.family.template_name(name) not in present
        ]

    async def preload(self) -> None:
        """Load every phase template into the cache."""
        for config in PHASES:
            await self.load(config.number)

    def clear_cache(self) -> None:
        self._cache.clear()
