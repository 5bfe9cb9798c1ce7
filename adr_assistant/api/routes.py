"""API routes for ADR Assistant."""

import io
import json
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from adr_assistant import scoring
from adr_assistant.document_templates import (
    DocumentTemplate,
    get_document_template,
    list_document_templates,
)
from adr_assistant.exceptions import (
    ADRAssistantError,
    ImportFormatError,
    ProjectNotFoundError,
    ValidationError,
)
from adr_assistant.logger import get_logger
from adr_assistant.models import Project, ScoreResult
from adr_assistant.project_import_export import ProjectImportExport
from adr_assistant.project_store import get_project_store
from adr_assistant.workflow import PhaseWorkflow, get_phase_metadata

logger = get_logger(__name__)


# Pydantic models for API requests/responses
class ProjectListResponse(BaseModel):
    """Response model for project listing."""

    projects: List[Project]
    total: int


class CreateProjectRequest(BaseModel):
    """Request model for project creation."""

    title: str
    context: str = ""
    status: Optional[str] = None
    template_id: Optional[str] = Field(
        default=None, description="Starter template that pre-fills context and status"
    )


class UpdateProjectRequest(BaseModel):
    """Request model for editing project details."""

    title: Optional[str] = None
    context: Optional[str] = None
    status: Optional[str] = None


class PromptResponse(BaseModel):
    """Rendered prompt for a phase."""

    project_id: str
    phase: int
    prompt: str
    phase_info: Dict[str, Any]


class SaveResponseRequest(BaseModel):
    """AI response pasted back by the user."""

    response: str
    skip_auto_advance: bool = Field(
        default=False, description="Save without moving on to the next phase"
    )


class PhaseSaveResponse(BaseModel):
    """Result of saving a phase response."""

    project: Project
    advanced: bool
    progress: int
    score: Optional[ScoreResult] = None


class ValidateRequest(BaseModel):
    """Request model for scoring arbitrary text."""

    document: str


class ValidateResponse(BaseModel):
    """Score of a document with its presentation band."""

    score: ScoreResult
    color: str
    label: str


class CompareResponse(BaseModel):
    project_id: str
    phase_a: int
    phase_b: int
    diff: str


class ImportRequest(BaseModel):
    """Request model for importing projects."""

    data: Dict[str, Any] = Field(
        ..., description="Backup envelope or a single project record"
    )


class ImportResponse(BaseModel):
    """Response model for import operations."""

    imported: int
    message: str


projects_router = APIRouter()
validation_router = APIRouter()
templates_router = APIRouter()

_workflow_instance: Optional[PhaseWorkflow] = None


def get_workflow() -> PhaseWorkflow:
    """Get the global workflow instance."""
    global _workflow_instance
    if _workflow_instance is None:
        _workflow_instance = PhaseWorkflow(get_project_store())
    return _workflow_instance


def _to_http_exception(error: ADRAssistantError) -> HTTPException:
    """Map a domain error to an HTTP error."""
    if isinstance(error, ProjectNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (ValidationError, ImportFormatError)):
        return HTTPException(status_code=400, detail=str(error))
    logger.error("Request failed", error_type=type(error).__name__, error=str(error))
    return HTTPException(status_code=500, detail=str(error))


def _download(content: str, filename: str, media_type: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content.encode("utf-8")),
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# ==================== Projects ====================


@projects_router.get("/", response_model=ProjectListResponse)
async def list_projects(workflow: PhaseWorkflow = Depends(get_workflow)):
    """List all projects, most recently updated first."""
    try:
        projects = await workflow.list_projects()
        return ProjectListResponse(projects=projects, total=len(projects))
    except ADRAssistantError as e:
        raise _to_http_exception(e)


@projects_router.post("/", response_model=Project, status_code=201)
async def create_project(
    request: CreateProjectRequest, workflow: PhaseWorkflow = Depends(get_workflow)
):
    """Create a new project."""
    try:
        return await workflow.create_project(
            request.title, request.context, request.status, request.template_id
        )
    except ADRAssistantError as e:
        raise _to_http_exception(e)


@projects_router.get("/export", response_class=StreamingResponse)
async def export_all_projects(workflow: PhaseWorkflow = Depends(get_workflow)):
    """Download a backup of every project."""
    try:
        envelope = await workflow.store.export_all()
    except ADRAssistantError as e:
        raise _to_http_exception(e)

    content = json.dumps(envelope.to_json_dict(), indent=2, ensure_ascii=False)
    return _download(content, ProjectImportExport.backup_filename(), "application/json")


@projects_router.post("/import", response_model=ImportResponse)
async def import_projects(
    request: ImportRequest, workflow: PhaseWorkflow = Depends(get_workflow)
):
    """Import a backup envelope or a single project record.

    Nothing is written unless every record in the payload is valid.
    """
    try:
        count = await workflow.store.import_all(request.data)
    except ADRAssistantError as e:
        raise _to_http_exception(e)
    return ImportResponse(imported=count, message=f"Imported {count} project(s)")


@projects_router.get("/{project_id}", response_model=Project)
async def get_project(project_id: str, workflow: PhaseWorkflow = Depends(get_workflow)):
    """Get a specific project by ID."""
    try:
        return await workflow.get_project(project_id)
    except ADRAssistantError as e:
        raise _to_http_exception(e)


@projects_router.patch("/{project_id}", response_model=Project)
async def update_project(
    project_id: str,
    request: UpdateProjectRequest,
    workflow: PhaseWorkflow = Depends(get_workflow),
):
    """Edit a project's title, context or status."""
    try:
        return await workflow.update_project(
            project_id, **request.model_dump(exclude_none=True)
        )
    except ADRAssistantError as e:
        raise _to_http_exception(e)


@projects_router.delete("/{project_id}")
async def delete_project(project_id: str, workflow: PhaseWorkflow = Depends(get_workflow)):
    """Delete a project by ID."""
    try:
        await workflow.delete_project(project_id)
    except ADRAssistantError as e:
        raise _to_http_exception(e)
    return {"message": f"Project {project_id} deleted successfully"}


# ==================== Phases ====================


@projects_router.post("/{project_id}/phases/{phase}/prompt", response_model=PromptResponse)
async def generate_prompt(
    project_id: str, phase: int, workflow: PhaseWorkflow = Depends(get_workflow)
):
    """Render the prompt for a phase and store it on the project."""
    try:
        prompt = await workflow.generate_prompt(project_id, phase)
        return PromptResponse(
            project_id=project_id,
            phase=phase,
            prompt=prompt,
            phase_info=get_phase_metadata(phase),
        )
    except ADRAssistantError as e:
        raise _to_http_exception(e)


@projects_router.post(
    "/{project_id}/phases/{phase}/response", response_model=PhaseSaveResponse
)
async def save_response(
    project_id: str,
    phase: int,
    request: SaveResponseRequest,
    workflow: PhaseWorkflow = Depends(get_workflow),
):
    """Save the AI response for a phase."""
    try:
        result = await workflow.save_response(
            project_id, phase, request.response, request.skip_auto_advance
        )
    except ADRAssistantError as e:
        raise _to_http_exception(e)

    return PhaseSaveResponse(
        project=result.project,
        advanced=result.advanced,
        progress=workflow.progress(result.project),
        score=result.score,
    )


@projects_router.post("/{project_id}/previous", response_model=Project)
async def previous_phase(project_id: str, workflow: PhaseWorkflow = Depends(get_workflow)):
    """Go back one phase."""
    try:
        return await workflow.previous_phase(project_id)
    except ADRAssistantError as e:
        raise _to_http_exception(e)


@projects_router.post("/{project_id}/navigate/{phase}", response_model=Project)
async def navigate_to_phase(
    project_id: str, phase: int, workflow: PhaseWorkflow = Depends(get_workflow)
):
    """Jump to a phase whose predecessor is completed."""
    try:
        return await workflow.navigate_to_phase(project_id, phase)
    except ADRAssistantError as e:
        raise _to_http_exception(e)


@projects_router.post("/{project_id}/finish", response_model=Project)
async def finish_project(project_id: str, workflow: PhaseWorkflow = Depends(get_workflow)):
    """Mark the workflow complete."""
    try:
        return await workflow.finish(project_id)
    except ADRAssistantError as e:
        raise _to_http_exception(e)


@projects_router.get("/{project_id}/score", response_model=ValidateResponse)
async def score_project(project_id: str, workflow: PhaseWorkflow = Depends(get_workflow)):
    """Score the project's final document."""
    try:
        result = await workflow.score_project(project_id)
    except ADRAssistantError as e:
        raise _to_http_exception(e)
    return ValidateResponse(
        score=result,
        color=scoring.get_score_color(result.total_score),
        label=scoring.get_score_label(result.total_score),
    )


@projects_router.get("/{project_id}/compare", response_model=CompareResponse)
async def compare_phases(
    project_id: str, a: int, b: int, workflow: PhaseWorkflow = Depends(get_workflow)
):
    """Unified diff between two phase outputs."""
    try:
        diff = await workflow.compare_phases(project_id, a, b)
    except ADRAssistantError as e:
        raise _to_http_exception(e)
    return CompareResponse(project_id=project_id, phase_a=a, phase_b=b, diff=diff)


@projects_router.get("/{project_id}/export", response_class=StreamingResponse)
async def export_project(
    project_id: str,
    format: str = "markdown",
    workflow: PhaseWorkflow = Depends(get_workflow),
):
    """Download a project as Markdown or JSON."""
    try:
        project = await workflow.get_project(project_id)
    except ADRAssistantError as e:
        raise _to_http_exception(e)

    if format == "markdown":
        content = ProjectImportExport.export_markdown(project)
        filename = workflow.export_filename(project)
        media_type = "text/markdown"
    elif format == "json":
        content = json.dumps(
            ProjectImportExport.export_json(project), indent=2, ensure_ascii=False
        )
        filename = ProjectImportExport.json_filename(project)
        media_type = "application/json"
    else:
        raise HTTPException(status_code=400, detail=f"Unsupported export format: {format}")

    return _download(content, filename, media_type)


# ==================== Validation ====================


@validation_router.post("/validate", response_model=ValidateResponse)
async def validate_document(request: ValidateRequest):
    """Score an arbitrary ADR document."""
    result = scoring.score(request.document)
    return ValidateResponse(
        score=result,
        color=scoring.get_score_color(result.total_score),
        label=scoring.get_score_label(result.total_score),
    )


# ==================== Document templates ====================


@templates_router.get("/", response_model=List[DocumentTemplate])
async def list_templates():
    """Starter templates available when creating a project."""
    return list_document_templates()


@templates_router.get("/{template_id}", response_model=DocumentTemplate)
async def get_template(template_id: str):
    """Get a starter template by ID."""
    template = get_document_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Document template {template_id} not found")
    return template
