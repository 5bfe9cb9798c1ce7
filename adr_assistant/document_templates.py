"""Starter templates that pre-fill a new project's context and status."""

from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from adr_assistant.logger import get_logger
from adr_assistant.models import ProjectStatus

logger = get_logger(__name__)

BUNDLED_DOCUMENT_TEMPLATES_PATH = Path(__file__).parent / "document_templates.yaml"


class DocumentTemplate(BaseModel):
    """Pre-filled project fields for a common kind of decision."""

    id: str
    name: str
    icon: str = ""
    description: str = ""
    context: str = Field(default="", description="Context pre-filled into the project")
    status: ProjectStatus = ProjectStatus.PROPOSED

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        if isinstance(value, ProjectStatus):
            return value
        return ProjectStatus.parse(value)


class DocumentTemplateCatalog(BaseModel):
    templates: List[DocumentTemplate]

    @model_validator(mode="after")
    def _unique_ids(self) -> "DocumentTemplateCatalog":
        ids = [t.id for t in self.templates]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate document template ids: {duplicates}")
        return self

    def by_id(self) -> Dict[str, DocumentTemplate]:
        return {t.id: t for t in self.templates}


@lru_cache(maxsize=4)
def load_document_templates(path: Optional[str] = None) -> DocumentTemplateCatalog:
    """Load and cache the template catalog.

    Args:
        path: YAML file to load. Defaults to the catalog bundled with the package.
    """
    path = str(path or BUNDLED_DOCUMENT_TEMPLATES_PATH)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    catalog = DocumentTemplateCatalog.model_validate(data)
    logger.info("Document templates loaded", path=path, count=len(catalog.templates))
    return catalog


def list_document_templates() -> List[DocumentTemplate]:
    """All bundled templates, in catalog order."""
    return list(load_document_templates().templates)


def get_document_template(template_id: str) -> Optional[DocumentTemplate]:
    """A template by id, or None if there is no such template."""
    return load_document_templates().by_id().get(template_id)
