"""Import/export utilities for ADR projects."""

import json
import re
from datetime import UTC, datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from adr_assistant.exceptions import ImportFormatError
from adr_assistant.logger import get_logger
from adr_assistant.models import Project, is_safe_project_id
from adr_assistant.project_migration import migrate_project_record

logger = get_logger(__name__)

BACKUP_FORMAT_VERSION = 1

ATTRIBUTION = (
    "\n\n---\n\n"
    "*Generated with [Architecture Decision Record Assistant]"
    "(https://bordenet.github.io/architecture-decision-record/)*"
)

INVALID_FORMAT_MESSAGE = "Invalid file format"

MAX_SLUG_LENGTH = 50


class BackupEnvelope(BaseModel):
    """Container for an "export all" backup."""

    model_config = ConfigDict(populate_by_name=True)

    version: int = Field(default=BACKUP_FORMAT_VERSION, description="Backup format version")
    exported_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        alias="exportedAt",
        description="Export timestamp",
    )
    project_count: int = Field(default=0, alias="projectCount")
    projects: List[Project] = Field(default_factory=list)

    @model_validator(mode="after")
    def _count_projects(self) -> "BackupEnvelope":
        self.project_count = len(self.projects)
        return self

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used in backup files."""
        return self.model_dump(mode="json", by_alias=True)


def _is_envelope(data: Mapping[str, Any]) -> bool:
    return "version" in data and isinstance(data.get("projects"), list)


def _is_single_project(data: Mapping[str, Any]) -> bool:
    return "id" in data and "title" in data


def _slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9\s-]", "", (title or "").lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    return slug[:MAX_SLUG_LENGTH] or "untitled"


class ProjectImportExport:
    """Utilities for importing and exporting ADR projects."""

    # ==================== Import ====================

    @staticmethod
    def parse_import_payload(payload: Any) -> List[Project]:
        """Parse an import file into projects without writing anything.

        Accepts a backup envelope (``version`` plus ``projects``) or a single
        project record (has ``id`` and ``title``). Every record is migrated
        and validated before returning, so a bad record fails the whole file.

        Args:
            payload: Parsed JSON, or the raw JSON text/bytes

        Returns:
            The projects contained in the payload

        Raises:
            ImportFormatError: If the payload has an unsupported shape or any
                record is invalid
        """
        if isinstance(payload, (str, bytes, bytearray)):
            try:
                payload = json.loads(payload)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ImportFormatError(INVALID_FORMAT_MESSAGE) from e

        if not isinstance(payload, Mapping):
            raise ImportFormatError(INVALID_FORMAT_MESSAGE)

        if _is_envelope(payload):
            records = payload["projects"]
        elif _is_single_project(payload):
            records = [payload]
        else:
            raise ImportFormatError(INVALID_FORMAT_MESSAGE)

        projects = []
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise ImportFormatError(
                    f"{INVALID_FORMAT_MESSAGE}: project {index} is not an object"
                )
            if not is_safe_project_id(record.get("id")):
                raise ImportFormatError(
                    f"{INVALID_FORMAT_MESSAGE}: project {index} has a missing or invalid id"
                )
            try:
                projects.append(Project.model_validate(migrate_project_record(record)))
            except PydanticValidationError as e:
                raise ImportFormatError(
                    f"{INVALID_FORMAT_MESSAGE}: project {index} is invalid ({e.error_count()} errors)"
                ) from e

        logger.info("Parsed import payload", project_count=len(projects))
        return projects

    # ==================== Export ====================

    @staticmethod
    def export_backup(projects: List[Project]) -> BackupEnvelope:
        """Wrap projects in a backup envelope."""
        return BackupEnvelope(projects=projects)

    @staticmethod
    def export_json(project: Project) -> Dict[str, Any]:
        """Full project record as JSON-compatible data."""
        return project.model_dump(mode="json")

    @staticmethod
    def final_markdown(project: Project) -> str:
        """The best available document for a project.

        The phase 3 synthesis, else the phase 1 draft, else a skeleton built
        from the project's own fields.
        """
        for phase in (3, 1):
            output = project.phase_output(phase)
            if output:
                return output

        return (
            f"# {project.title or 'Untitled'}\n\n"
            f"## Status\n\n{project.status.value}\n\n"
            f"## Context\n\n{project.context}\n"
        )

    @staticmethod
    def export_markdown(project: Project) -> str:
        """Final document with the attribution footer."""
        return ProjectImportExport.final_markdown(project) + ATTRIBUTION

    # ==================== File names ====================

    @staticmethod
    def markdown_filename(project: Project) -> str:
        return f"{_slugify(project.title)}-adr.md"

    @staticmethod
    def json_filename(project: Project) -> str:
        return f"{_slugify(project.title)}-adr.json"

    @staticmethod
    def backup_filename(when: Optional[datetime] = None) -> str:
        when = when or datetime.now(UTC)
        return f"adr-assistant-backup-{when.strftime('%Y-%m-%d')}.json"
