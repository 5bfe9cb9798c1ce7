"""Scoring rubric loaded from YAML.

Thresholds and point allotments live in ``rubric.yaml`` so that tuning the
rubric never touches the scoring control flow.
"""

import re
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, PrivateAttr, model_validator

from adr_assistant.logger import get_logger

logger = get_logger(__name__)

BUNDLED_RUBRIC_PATH = Path(__file__).parent / "rubric.yaml"

DIMENSION_NAMES = ("context", "decision", "consequences", "status")
DIMENSION_MAX_SCORE = 25


class CheckKind(str, Enum):
    """How a check turns pattern matches into points."""

    HEADING = "heading"
    DENSITY = "density"
    PATTERN = "pattern"


class RubricCheck(BaseModel):
    """A single scoring check within a dimension."""

    name: str
    kind: CheckKind
    pattern: str
    points: int = Field(..., ge=0)
    partial_points: int = Field(default=0, ge=0)
    full_threshold: int = Field(default=1, ge=1)
    partial_threshold: int = Field(default=1, ge=1)
    strength: str = ""
    partial_issue: str = ""
    missing_issue: str

    _regex: re.Pattern = PrivateAttr()

    @model_validator(mode="after")
    def _check_tiers(self) -> "RubricCheck":
        if self.kind == CheckKind.DENSITY:
            if self.partial_threshold > self.full_threshold:
                raise ValueError(
                    f"{self.name}: partial_threshold exceeds full_threshold"
                )
            if self.partial_points > self.points:
                raise ValueError(f"{self.name}: partial_points exceed points")
        return self

    def model_post_init(self, __context) -> None:
        self._regex = re.compile(self.pattern, re.IGNORECASE | re.MULTILINE)

    @property
    def regex(self) -> re.Pattern:
        return self._regex

    def count(self, document: str) -> int:
        """Number of non-overlapping matches in ``document``."""
        return sum(1 for _ in self._regex.finditer(document))

    def matches(self, document: str) -> bool:
        return self._regex.search(document) is not None


class RubricDimension(BaseModel):
    """One scoring dimension and its checks."""

    label: str
    max_score: int = DIMENSION_MAX_SCORE
    checks: List[RubricCheck]

    @model_validator(mode="after")
    def _check_points(self) -> "RubricDimension":
        if self.max_score != DIMENSION_MAX_SCORE:
            raise ValueError(
                f"{self.label}: max_score must be {DIMENSION_MAX_SCORE}"
            )
        total = sum(check.points for check in self.checks)
        if total != self.max_score:
            raise ValueError(
                f"{self.label}: check points sum to {total}, expected {self.max_score}"
            )
        return self


class Rubric(BaseModel):
    """The complete scoring rubric."""

    version: int = 1
    dimensions: Dict[str, RubricDimension]

    @model_validator(mode="after")
    def _check_dimensions(self) -> "Rubric":
        if tuple(self.dimensions) != DIMENSION_NAMES:
            raise ValueError(
                f"Rubric dimensions must be {list(DIMENSION_NAMES)} in that order, "
                f"got {list(self.dimensions)}"
            )
        return self


@lru_cache(maxsize=8)
def _load(path: str) -> Rubric:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    rubric = Rubric.model_validate(data)
    logger.info("Scoring rubric loaded", path=path, version=rubric.version)
    return rubric


def load_rubric(path: Optional[str] = None) -> Rubric:
    """Load and cache a rubric.

    Args:
        path: YAML file to load. Defaults to the rubric bundled with the package.

    Raises:
        OSError: If the file cannot be read
        pydantic.ValidationError: If the rubric is malformed
    """
    return _load(str(path or BUNDLED_RUBRIC_PATH))


def clear_rubric_cache() -> None:
    _load.cache_clear()
