"""Heuristic quality scoring for ADR documents.

Scores are pattern based (headings and vocabulary density), not semantic.
Scoring has no side effects, so a document can be re-scored on every save.
"""

from typing import Any, List, Optional, Tuple

from adr_assistant.config import get_settings
from adr_assistant.models import DimensionScore, ScoreResult, ScoringIssue
from adr_assistant.rubric import (
    DIMENSION_MAX_SCORE,
    DIMENSION_NAMES,
    CheckKind,
    Rubric,
    RubricCheck,
    RubricDimension,
    load_rubric,
)

NO_CONTENT_ISSUE = "No content to validate"


def _empty_result() -> ScoreResult:
    dimensions = {
        name: DimensionScore(score=0, issues=[NO_CONTENT_ISSUE])
        for name in DIMENSION_NAMES
    }
    ranked = [
        ScoringIssue(dimension=name, message=NO_CONTENT_ISSUE, points_lost=DIMENSION_MAX_SCORE)
        for name in DIMENSION_NAMES
    ]
    return ScoreResult(total_score=0, ranked_issues=ranked, **dimensions)


def _apply_check(check: RubricCheck, document: str) -> Tuple[int, Optional[str], Optional[str]]:
    """Return (points earned, issue, strength) for one check."""
    if check.kind == CheckKind.DENSITY:
        found = check.count(document)
        if found >= check.full_threshold:
            return check.points, None, check.strength
        if found >= check.partial_threshold:
            return check.partial_points, check.partial_issue or check.missing_issue, None
        return 0, check.missing_issue, None

    if check.matches(document):
        return check.points, None, check.strength
    return 0, check.missing_issue, None


def score_dimension(
    name: str, dimension: RubricDimension, document: str
) -> Tuple[DimensionScore, List[ScoringIssue]]:
    """Score one dimension of ``document``."""
    earned = 0
    issues: List[str] = []
    strengths: List[str] = []
    ranked: List[ScoringIssue] = []

    for check in dimension.checks:
        points, issue, strength = _apply_check(check, document)
        earned += points
        if issue:
            issues.append(issue)
            ranked.append(
                ScoringIssue(dimension=name, message=issue, points_lost=check.points - points)
            )
        if strength:
            strengths.append(strength)

    clamped = max(0, min(earned, dimension.max_score))
    return (
        DimensionScore(
            score=clamped,
            max_score=dimension.max_score,
            issues=issues,
            strengths=strengths,
        ),
        ranked,
    )


def score(
    document: Any,
    min_length: Optional[int] = None,
    rubric: Optional[Rubric] = None,
) -> ScoreResult:
    """Score an ADR document against the rubric.

    Args:
        document: Markdown text to score
        min_length: Documents shorter than this are not scored. Defaults to
            the ``MIN_DOCUMENT_LENGTH`` setting.
        rubric: Rubric to apply. Defaults to the configured rubric.

    Returns:
        ScoreResult with per-dimension scores and issues ranked by points lost
    """
    settings = get_settings()
    if min_length is None:
        min_length = settings.min_document_length

    if not isinstance(document, str) or not document.strip() or len(document.strip()) < min_length:
        return _empty_result()

    if rubric is None:
        rubric = load_rubric(settings.scoring_rubric_path)

    dimensions = {}
    ranked: List[ScoringIssue] = []
    for name, dimension in rubric.dimensions.items():
        dimensions[name], issues = score_dimension(name, dimension, document)
        ranked.extend(issues)

    ranked.sort(key=lambda issue: issue.points_lost, reverse=True)

    return ScoreResult(
        total_score=sum(d.score for d in dimensions.values()),
        ranked_issues=ranked,
        **dimensions,
    )


def get_score_color(value: int) -> str:
    """Color band for a total score."""
    if value >= 70:
        return "green"
    if value >= 50:
        return "yellow"
    if value >= 30:
        return "orange"
    return "red"


def get_score_label(value: int) -> str:
    """Readiness label for a total score."""
    if value >= 80:
        return "Excellent"
    if value >= 70:
        return "Ready"
    if value >= 50:
        return "Needs Work"
    if value >= 30:
        return "Draft"
    return "Incomplete"
