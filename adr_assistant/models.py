"""Data models for ADR projects and document scores."""

import re
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from adr_assistant.phase_config import COMPLETE_PHASE, PHASE_COUNT

# Version of the persisted project schema. Version 1 is every record written
# before structured phases became the only source of truth (flat
# ``phaseN_output`` fields, camelCase timestamps).
CURRENT_SCHEMA_VERSION = 2

# Ids double as file names in the file store.
SAFE_PROJECT_ID = re.compile(r"[A-Za-z0-9_-]+")


class ProjectStatus(str, Enum):
    """Status of the ADR being authored."""

    PROPOSED = "Proposed"
    ACCEPTED = "Accepted"
    DEPRECATED = "Deprecated"
    SUPERSEDED = "Superseded"

    @classmethod
    def parse(cls, value: str) -> "ProjectStatus":
        """Look up a status case-insensitively."""
        for status in cls:
            if status.value.lower() == str(value).strip().lower():
                return status
        raise ValueError(
            f"Unknown status {value!r}; expected one of {[s.value for s in cls]}"
        )


def is_safe_project_id(project_id: Any) -> bool:
    """Whether an id is a non-empty string of letters, digits, `_` and `-`."""
    return isinstance(project_id, str) and SAFE_PROJECT_ID.fullmatch(project_id) is not None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PhaseRecord(BaseModel):
    """Prompt and response captured for one phase."""

    prompt: str = Field(default="", description="Prompt generated for this phase")
    response: str = Field(default="", description="AI response pasted by the user")
    completed: bool = Field(default=False, description="True iff response is non-empty")

    @model_validator(mode="after")
    def _completed_follows_response(self) -> "PhaseRecord":
        self.completed = bool(self.response)
        return self


def empty_phases() -> Dict[int, PhaseRecord]:
    """Blank phase records for every workflow phase."""
    return {number: PhaseRecord() for number in range(1, PHASE_COUNT + 1)}


class DimensionScore(BaseModel):
    """Score for one rubric dimension."""

    score: int = Field(default=0, ge=0, le=25)
    max_score: int = Field(default=25)
    issues: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)


class ScoringIssue(BaseModel):
    """An actionable remediation with the points it costs."""

    dimension: str
    message: str
    points_lost: int = Field(default=0, ge=0)


class ScoreResult(BaseModel):
    """Heuristic quality score of an ADR document."""

    total_score: int = Field(default=0, ge=0, le=100)
    context: DimensionScore = Field(default_factory=DimensionScore)
    decision: DimensionScore = Field(default_factory=DimensionScore)
    consequences: DimensionScore = Field(default_factory=DimensionScore)
    status: DimensionScore = Field(default_factory=DimensionScore)
    ranked_issues: List[ScoringIssue] = Field(
        default_factory=list,
        description="All issues, most costly first",
    )

    def dimensions(self) -> Dict[str, DimensionScore]:
        """Dimension scores keyed by dimension name."""
        return {
            "context": self.context,
            "decision": self.decision,
            "consequences": self.consequences,
            "status": self.status,
        }


class Project(BaseModel):
    """A single ADR being authored through the workflow."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique identifier")
    title: str = Field(default="", description="ADR title")
    context: str = Field(default="", description="Context entered by the user")
    status: ProjectStatus = Field(default=ProjectStatus.PROPOSED)
    phase: int = Field(
        default=1,
        ge=0,
        le=COMPLETE_PHASE,
        description="Current workflow position; PHASE_COUNT + 1 means complete",
    )
    phases: Dict[int, PhaseRecord] = Field(default_factory=empty_phases)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    validation: Optional[ScoreResult] = Field(
        default=None, description="Score of the final document, once produced"
    )
    schema_version: int = Field(default=CURRENT_SCHEMA_VERSION)

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        if isinstance(value, ProjectStatus):
            return value
        return ProjectStatus.parse(value)

    @classmethod
    def create(
        cls,
        title: str,
        context: str,
        status: ProjectStatus = ProjectStatus.PROPOSED,
        phase: int = 1,
    ) -> "Project":
        """Create a new project with empty phase records."""
        return cls(
            title=title.strip(),
            context=context.strip(),
            status=status,
            phase=phase,
        )

    def get_phase(self, phase: int) -> PhaseRecord:
        """Return the record for a phase, creating an empty one if missing."""
        if phase not in self.phases:
            self.phases[phase] = PhaseRecord()
        return self.phases[phase]

    def phase_output(self, phase: int) -> str:
        """Response saved for a phase, or an empty string."""
        record = self.phases.get(phase)
        return record.response if record else ""

    def completed_phases(self) -> List[int]:
        return sorted(n for n, record in self.phases.items() if record.completed)

    @property
    def is_complete(self) -> bool:
        return self.phase > PHASE_COUNT

    def touch(self) -> None:
        """Stamp the last-modified time."""
        self.updated_at = _utcnow()
