"""Static configuration of the three-phase ADR workflow."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

PHASE_COUNT = 3
COMPLETE_PHASE = PHASE_COUNT + 1


@dataclass(frozen=True)
class PhaseConfig:
    """Display and template metadata for one workflow phase."""

    number: int
    name: str
    description: str
    ai_model: str
    ai_url: str
    prompt_file: str
    required_variables: Tuple[str, ...] = field(default_factory=tuple)
    icon: str = ""


PHASES: List[PhaseConfig] = [
    PhaseConfig(
        number=1,
        name="Initial Draft",
        description="Generate the first draft of your ADR",
        ai_model="Claude",
        ai_url="https://claude.ai/new",
        prompt_file="phase1.md",
        required_variables=("TITLE", "STATUS", "CONTEXT"),
        icon="📝",
    ),
    PhaseConfig(
        number=2,
        name="Alternative Perspective",
        description="Get a critical review and improvements from a second model",
        ai_model="Gemini",
        ai_url="https://gemini.google.com/app",
        prompt_file="phase2.md",
        required_variables=("PHASE1_OUTPUT",),
        icon="🔄",
    ),
    PhaseConfig(
        number=3,
        name="Final Synthesis",
        description="Combine the best elements into a polished final ADR",
        ai_model="Claude",
        ai_url="https://claude.ai/new",
        prompt_file="phase3.md",
        required_variables=("PHASE1_OUTPUT", "PHASE2_OUTPUT"),
        icon="✨",
    ),
]

_PHASES_BY_NUMBER: Dict[int, PhaseConfig] = {p.number: p for p in PHASES}


def get_phase_config(phase: int) -> Optional[PhaseConfig]:
    """Return the configuration for a phase, or None when out of range."""
    return _PHASES_BY_NUMBER.get(phase)


def is_valid_phase(phase: int) -> bool:
    return phase in _PHASES_BY_NUMBER
