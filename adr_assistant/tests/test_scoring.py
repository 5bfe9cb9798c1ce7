"""Tests for the document scoring engine and rubric."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml
from pydantic import ValidationError

from adr_assistant.rubric import (
    BUNDLED_RUBRIC_PATH,
    DIMENSION_NAMES,
    CheckKind,
    clear_rubric_cache,
    load_rubric,
)
from adr_assistant.scoring import (
    NO_CONTENT_ISSUE,
    get_score_color,
    get_score_label,
    score,
)

WELL_STRUCTURED_ADR = """# Use PostgreSQL for Order Storage

## Status

Accepted

## Context

The order service needs a durable relational store. The main problem is that our
current document database cannot enforce the constraints we rely on, and the team
faces a growing requirement for transactional reporting. Any solution must support
ACID transactions and should run on managed infrastructure.

## Decision

We will adopt PostgreSQL as the primary datastore for the order service. We chose it
over MySQL because of its richer indexing, and we will use the managed offering from
our cloud provider.

## Consequences

Positive: strong consistency will simplify reconciliation and improve reporting
accuracy, and developers get a better query language.

Negative: there is a migration cost, additional operational complexity, and a risk
of lock contention under peak load, which is a trade-off we accept.
"""

CONTEXT_ONLY = (
    "## Context\n\n"
    "Latency in checkout is too high for our users and hurts conversion rates badly."
)


class TestShortCircuit:
    """Test documents too short to score."""

    @pytest.mark.parametrize("document", ["", "   ", "short", "x" * 49, None, 123])
    def test_no_content(self, document):
        """Test short or non-string input yields zero with one issue per dimension."""
        result = score(document)

        assert result.total_score == 0
        for dimension in result.dimensions().values():
            assert dimension.score == 0
            assert dimension.issues == [NO_CONTENT_ISSUE]
        assert len(result.ranked_issues) == len(DIMENSION_NAMES)

    def test_threshold_is_inclusive(self):
        """Test a 50 character document is scored normally."""
        result = score("x" * 50)

        assert result.total_score == 0
        assert NO_CONTENT_ISSUE not in result.context.issues
        assert result.context.issues

    def test_min_length_override(self):
        result = score("## Status\nAccepted", min_length=0)

        assert result.status.score == 25


class TestScore:
    """Test rubric scoring."""

    def test_well_structured_adr_scores_high(self):
        """Test a complete ADR scores above 70."""
        result = score(WELL_STRUCTURED_ADR)

        assert result.total_score > 70
        assert result.total_score == 100
        assert result.ranked_issues == []
        assert result.status.strengths

    def test_total_is_sum_of_dimensions(self):
        for document in (WELL_STRUCTURED_ADR, CONTEXT_ONLY, "x" * 80):
            result = score(document)
            dimensions = result.dimensions().values()

            assert result.total_score == sum(d.score for d in dimensions)
            assert all(0 <= d.score <= 25 for d in dimensions)

    def test_deterministic(self):
        assert score(WELL_STRUCTURED_ADR) == score(WELL_STRUCTURED_ADR)
        assert score(CONTEXT_ONLY) == score(CONTEXT_ONLY)

    def test_partial_credit(self):
        """Test a single context keyword earns partial credit with an issue."""
        result = score(CONTEXT_ONLY)

        # heading 10 + vocabulary partial 4 + constraints 0
        assert result.context.score == 14
        assert len(result.context.issues) == 2
        assert any("Expand the context" in issue for issue in result.context.issues)
        assert result.decision.score == 0
        assert result.total_score == 14

    def test_ranked_issues_ordered_by_points_lost(self):
        """Test the most costly issues come first."""
        result = score(CONTEXT_ONLY)
        points = [issue.points_lost for issue in result.ranked_issues]

        assert points == sorted(points, reverse=True)
        assert result.ranked_issues[0].dimension == "status"
        assert result.ranked_issues[0].points_lost == 15

    def test_ranked_issues_match_dimension_issues(self):
        result = score(CONTEXT_ONLY)

        for name, dimension in result.dimensions().items():
            ranked = [i.message for i in result.ranked_issues if i.dimension == name]
            assert sorted(ranked) == sorted(dimension.issues)

    def test_missing_sections(self):
        """Test an ADR without headings loses the heading points."""
        document = WELL_STRUCTURED_ADR.replace("## ", "")

        result = score(document)

        assert result.context.score == 15
        assert result.decision.score == 15
        assert result.consequences.score == 17
        assert result.status.score == 15
        assert any('"## Status"' in issue for issue in result.status.issues)

    def test_status_value_without_heading(self):
        result = score("This ADR is still a draft and nobody has looked at it yet at all.")

        assert result.status.score == 15


class TestRubric:
    """Test rubric loading."""

    def test_bundled_rubric(self):
        """Test every dimension of the bundled rubric totals 25 points."""
        rubric = load_rubric()

        assert tuple(rubric.dimensions) == DIMENSION_NAMES
        for dimension in rubric.dimensions.values():
            assert sum(check.points for check in dimension.checks) == 25

    def test_rubric_is_cached(self):
        assert load_rubric() is load_rubric()

    def test_density_check_counts_matches(self):
        rubric = load_rubric()
        check = rubric.dimensions["consequences"].checks[2]

        assert check.kind == CheckKind.DENSITY
        assert check.count("A risk, another RISK, and a trade-off.") == 3

    def test_custom_rubric(self):
        """Test a rubric file with different thresholds is honored."""
        data = yaml.safe_load(BUNDLED_RUBRIC_PATH.read_text(encoding="utf-8"))
        data["dimensions"]["context"]["checks"][1]["full_threshold"] = 1

        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "rubric.yaml"
            path.write_text(yaml.safe_dump(data), encoding="utf-8")
            try:
                rubric = load_rubric(str(path))
                result = score(CONTEXT_ONLY, rubric=rubric)
            finally:
                clear_rubric_cache()

        assert result.context.score == 18

    def test_rubric_points_must_total_25(self):
        """Test a rubric whose points do not add up is rejected."""
        data = yaml.safe_load(BUNDLED_RUBRIC_PATH.read_text(encoding="utf-8"))
        data["dimensions"]["status"]["checks"][1]["points"] = 20

        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "rubric.yaml"
            path.write_text(yaml.safe_dump(data), encoding="utf-8")
            try:
                with pytest.raises(ValidationError):
                    load_rubric(str(path))
            finally:
                clear_rubric_cache()


class TestPresentation:
    """Test score color and label helpers."""

    @pytest.mark.parametrize(
        "value,color",
        [(100, "green"), (70, "green"), (69, "yellow"), (50, "yellow"), (49, "orange"), (30, "orange"), (29, "red"), (0, "red")],
    )
    def test_get_score_color(self, value, color):
        assert get_score_color(value) == color

    @pytest.mark.parametrize(
        "value,label",
        [(80, "Excellent"), (79, "Ready"), (70, "Ready"), (69, "Needs Work"), (50, "Needs Work"), (49, "Draft"), (30, "Draft"), (29, "Incomplete")],
    )
    def test_get_score_label(self, value, label):
        assert get_score_label(value) == label
