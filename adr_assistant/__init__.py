"""ADR Assistant - guided authoring and scoring of Architecture Decision Records."""

__version__ = "0.1.0"

from adr_assistant.config import Settings, get_settings
from adr_assistant.logger import get_logger, setup_logging
from adr_assistant.models import (
    DimensionScore,
    PhaseRecord,
    Project,
    ProjectStatus,
    ScoreResult,
)
from adr_assistant.project_import_export import ProjectImportExport
from adr_assistant.project_store import (
    FileProjectStore,
    InMemoryProjectStore,
    ProjectStore,
)
from adr_assistant.scoring import get_score_color, get_score_label, score
from adr_assistant.templates import PromptTemplateLoader, render
from adr_assistant.workflow import PhaseSaveResult, PhaseWorkflow

__all__ = [
    "get_settings",
    "Settings",
    "get_logger",
    "setup_logging",
    "Project",
    "ProjectStatus",
    "PhaseRecord",
    "DimensionScore",
    "ScoreResult",
    "ProjectStore",
    "FileProjectStore",
    "InMemoryProjectStore",
    "ProjectImportExport",
    "PromptTemplateLoader",
    "render",
    "score",
    "get_score_color",
    "get_score_label",
    "PhaseWorkflow",
    "PhaseSaveResult",
]
