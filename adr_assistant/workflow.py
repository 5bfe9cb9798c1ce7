"""Three-phase ADR authoring workflow.

A project moves through three phases. For each phase the workflow renders a
prompt for the user to copy into an external AI chat tool, then accepts the
reply the user pastes back. Saving a response completes the phase and
advances to the next one. Saving the final phase also adopts a title from
the document and scores it.

State lives only in the project store; every mutating operation re-reads the
project immediately before changing it.
"""

import difflib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from adr_assistant import scoring
from adr_assistant.config import Settings, get_settings
from adr_assistant.document_templates import get_document_template
from adr_assistant.exceptions import (
    InvalidPhaseError,
    PhaseGateError,
    ProjectNotFoundError,
    PromptPasteError,
    ResponseValidationError,
    ValidationError,
)
from adr_assistant.logger import get_logger
from adr_assistant.models import PhaseRecord, Project, ProjectStatus, ScoreResult
from adr_assistant.paste_detection import detect_prompt_paste
from adr_assistant.phase_config import (
    COMPLETE_PHASE,
    PHASE_COUNT,
    get_phase_config,
    is_valid_phase,
)
from adr_assistant.project_import_export import ProjectImportExport
from adr_assistant.project_store import ProjectStore
from adr_assistant.templates import PromptTemplateLoader, get_template_family
from adr_assistant.title_extraction import extract_title_from_markdown

logger = get_logger(__name__)

PHASE_OUTPUT_FALLBACKS = {
    "PHASE1_OUTPUT": "[No Phase 1 output yet]",
    "PHASE2_OUTPUT": "[No Phase 2 output yet]",
}

EDITABLE_FIELDS = ("title", "context", "status")


@dataclass
class PhaseSaveResult:
    """Outcome of saving a phase."""

    project: Project
    advanced: bool = False
    score: Optional[ScoreResult] = None


def get_phase_metadata(phase: int) -> Dict[str, Any]:
    """Display metadata for a phase.

    Raises:
        InvalidPhaseError: If the phase is out of range
    """
    config = get_phase_config(phase)
    if config is None:
        raise InvalidPhaseError(phase, PHASE_COUNT)
    return {
        "number": config.number,
        "name": config.name,
        "description": config.description,
        "ai_model": config.ai_model,
        "ai_url": config.ai_url,
        "icon": config.icon,
    }


def _require_phase(phase: int) -> None:
    if not isinstance(phase, int) or isinstance(phase, bool) or not is_valid_phase(phase):
        raise InvalidPhaseError(phase, PHASE_COUNT)


def _parse_status(status: Any) -> ProjectStatus:
    try:
        return ProjectStatus.parse(status.value if isinstance(status, ProjectStatus) else status)
    except ValueError as e:
        raise ValidationError(str(e)) from e


class PhaseWorkflow:
    """Workflow session over a project store."""

    def __init__(
        self,
        store: ProjectStore,
        templates: Optional[PromptTemplateLoader] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the workflow.

        Args:
            store: Store the projects live in
            templates: Prompt template loader. Defaults to one built from settings.
            settings: Application settings. Defaults to the global settings.
        """
        self.store = store
        self.settings = settings or get_settings()
        self.templates = templates or PromptTemplateLoader(
            templates_dir=self.settings.prompt_templates_dir,
            family=get_template_family(self.settings.prompt_template_family),
        )

    # ==================== Projects ====================

    async def create_project(
        self,
        title: str,
        context: str = "",
        status: Any = None,
        template_id: Optional[str] = None,
    ) -> Project:
        """Create and persist a new project.

        Args:
            title: ADR title
            context: Context for the decision. Falls back to the template's context.
            status: ADR status. Falls back to the template's status, then Proposed.
            template_id: Optional starter template to pre-fill context and status

        Raises:
            ValidationError: If title or context is blank, or status or
                template is unknown
        """
        template = None
        if template_id:
            template = get_document_template(template_id)
            if template is None:
                raise ValidationError(f"Unknown document template: {template_id}")

        title = (title or "").strip()
        context = (context or "").strip()
        if template is not None:
            context = context or template.context.strip()
            status = status or template.status
        status = status or ProjectStatus.PROPOSED

        if not title:
            raise ValidationError("Title is required")
        if not context:
            raise ValidationError("Context is required")

        project = Project.create(
            title=title,
            context=context,
            status=_parse_status(status),
            phase=self.settings.initial_phase,
        )
        await self.store.put(project)
        logger.info("Created project", project_id=project.id, title=project.title)
        return project

    async def get_project(self, project_id: str) -> Project:
        """Fetch a project.

        Raises:
            ProjectNotFoundError: If no project has this id
        """
        project = await self.store.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def list_projects(self) -> List[Project]:
        return await self.store.list()

    async def update_project(self, project_id: str, **fields: Any) -> Project:
        """Update a project's title, context or status."""
        unknown = sorted(set(fields) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(unknown)}")

        project = await self.get_project(project_id)

        if fields.get("title") is not None:
            title = fields["title"].strip()
            if not title:
                raise ValidationError("Title is required")
            project.title = title
        if fields.get("context") is not None:
            context = fields["context"].strip()
            if not context:
                raise ValidationError("Context is required")
            project.context = context
        if fields.get("status") is not None:
            project.status = _parse_status(fields["status"])

        await self.store.put(project)
        logger.info("Updated project", project_id=project_id, fields=sorted(fields))
        return project

    async def delete_project(self, project_id: str) -> None:
        if not await self.store.delete(project_id):
            raise ProjectNotFoundError(project_id)
        logger.info("Deleted project", project_id=project_id)

    # ==================== Phases ====================

    def _template_variables(self, project: Project) -> Dict[str, str]:
        return {
            "TITLE": project.title,
            "STATUS": project.status.value,
            "CONTEXT": project.context,
            "PHASE1_OUTPUT": project.phase_output(1),
            "PHASE2_OUTPUT": project.phase_output(2),
        }

    async def generate_prompt(self, project_id: str, phase: Optional[int] = None) -> str:
        """Render and store the prompt for a phase.

        Generating a prompt never completes or advances a phase.

        Args:
            project_id: Project to generate for
            phase: Phase number; defaults to the project's current phase

        Returns:
            The rendered prompt
        """
        project = await self.get_project(project_id)
        if phase is None:
            phase = min(max(project.phase, 1), PHASE_COUNT)
        _require_phase(phase)

        template = await self.templates.load(phase)
        prompt = self.templates.family.render(
            template, self._template_variables(project), PHASE_OUTPUT_FALLBACKS
        )

        await self.update_phase(project_id, phase, prompt=prompt, skip_auto_advance=True)
        logger.info("Generated prompt", project_id=project_id, phase=phase, length=len(prompt))
        return prompt

    @staticmethod
    def _apply_phase_update(
        project: Project,
        phase: int,
        prompt: Optional[str],
        response: Optional[str],
        skip_auto_advance: bool,
    ) -> bool:
        """Apply a phase update in place. Returns True if the phase advanced."""
        current = project.get_phase(phase)
        project.phases[phase] = PhaseRecord(
            prompt=prompt or current.prompt,
            response=response or current.response,
        )

        if not response or skip_auto_advance or phase >= PHASE_COUNT:
            return False

        next_phase = max(project.phase, phase + 1)
        advanced = next_phase != project.phase
        project.phase = next_phase
        return advanced

    async def update_phase(
        self,
        project_id: str,
        phase: int,
        prompt: Optional[str] = None,
        response: Optional[str] = None,
        skip_auto_advance: bool = False,
    ) -> PhaseSaveResult:
        """Store a prompt and/or response for a phase.

        None or empty values keep what is already stored. A stored response
        marks the phase completed, and unless ``skip_auto_advance`` is set the
        project moves on to the following phase.
        """
        _require_phase(phase)
        project = await self.get_project(project_id)
        advanced = self._apply_phase_update(project, phase, prompt, response, skip_auto_advance)
        await self.store.put(project)
        return PhaseSaveResult(project=project, advanced=advanced)

    async def save_response(
        self,
        project_id: str,
        phase: int,
        response_text: str,
        skip_auto_advance: bool = False,
    ) -> PhaseSaveResult:
        """Save the AI response for a phase.

        Raises:
            InvalidPhaseError: If the phase is out of range
            ResponseValidationError: If the response is empty or too short
            PromptPasteError: If the response is the generated prompt
            ProjectNotFoundError: If the project does not exist
        """
        _require_phase(phase)

        response = (response_text or "").strip()
        if not response:
            raise ResponseValidationError("Please paste the AI response before saving", phase)
        if len(response) < self.settings.min_response_length:
            raise ResponseValidationError(
                f"Response is too short (minimum {self.settings.min_response_length} characters)",
                phase,
            )

        project = await self.get_project(project_id)

        check = detect_prompt_paste(response, project.get_phase(phase).prompt)
        if check.is_prompt:
            logger.warning(
                "Rejected prompt pasted as response",
                project_id=project_id,
                phase=phase,
                rule=check.rule,
            )
            raise PromptPasteError(
                f"It looks like you pasted the prompt instead of the AI response. {check.reason}.",
                phase,
                check.rule,
            )

        advanced = self._apply_phase_update(project, phase, None, response, skip_auto_advance)

        result_score = None
        if phase == PHASE_COUNT:
            title = extract_title_from_markdown(response)
            if title and title != project.title:
                logger.info("Adopted title from final document", project_id=project_id, title=title)
                project.title = title
            result_score = scoring.score(response, min_length=self.settings.min_document_length)
            project.validation = result_score

        await self.store.put(project)
        logger.info(
            "Saved phase response",
            project_id=project_id,
            phase=phase,
            advanced=advanced,
            current_phase=project.phase,
        )
        return PhaseSaveResult(project=project, advanced=advanced, score=result_score)

    async def previous_phase(self, project_id: str) -> Project:
        """Step back one phase, keeping every saved response."""
        project = await self.get_project(project_id)
        if project.phase > 1:
            project.phase -= 1
            await self.store.put(project)
        return project

    async def navigate_to_phase(self, project_id: str, phase: int) -> Project:
        """Jump to a phase whose predecessor is completed.

        Raises:
            PhaseGateError: If the previous phase has no response
        """
        _require_phase(phase)
        project = await self.get_project(project_id)
        if phase > 1 and not project.get_phase(phase - 1).completed:
            raise PhaseGateError(phase)

        if project.phase != phase:
            project.phase = phase
            await self.store.put(project)
        return project

    async def finish(self, project_id: str) -> Project:
        """Mark the workflow complete.

        Raises:
            ValidationError: If the final phase has no response
        """
        project = await self.get_project(project_id)
        if not project.get_phase(PHASE_COUNT).completed:
            raise ValidationError(f"Complete phase {PHASE_COUNT} before finishing")

        project.phase = COMPLETE_PHASE
        if project.validation is None:
            project.validation = scoring.score(
                project.phase_output(PHASE_COUNT),
                min_length=self.settings.min_document_length,
            )
        await self.store.put(project)
        logger.info("Finished project", project_id=project_id)
        return project

    async def get_phase_output(self, project_id: str, phase: int) -> str:
        _require_phase(phase)
        project = await self.get_project(project_id)
        return project.phase_output(phase)

    async def compare_phases(self, project_id: str, phase_a: int, phase_b: int) -> str:
        """Unified diff between the outputs of two completed phases."""
        _require_phase(phase_a)
        _require_phase(phase_b)
        project = await self.get_project(project_id)

        outputs = {}
        for phase in (phase_a, phase_b):
            output = project.phase_output(phase)
            if not output:
                raise ValidationError(f"Phase {phase} has no output to compare")
            outputs[phase] = output

        diff = difflib.unified_diff(
            outputs[phase_a].splitlines(),
            outputs[phase_b].splitlines(),
            fromfile=f"phase{phase_a}",
            tofile=f"phase{phase_b}",
            lineterm="",
        )
        return "\n".join(diff)

    @staticmethod
    def progress(project: Project) -> int:
        """Workflow progress as a percentage."""
        position = max(0, min(project.phase, PHASE_COUNT))
        return round(position / PHASE_COUNT * 100)

    # ==================== Export & scoring ====================

    async def export_markdown(self, project_id: str) -> str:
        project = await self.get_project(project_id)
        return ProjectImportExport.export_markdown(project)

    async def export_json(self, project_id: str) -> Dict[str, Any]:
        project = await self.get_project(project_id)
        return ProjectImportExport.export_json(project)

    @staticmethod
    def export_filename(project: Project) -> str:
        return ProjectImportExport.markdown_filename(project)

    async def score_project(self, project_id: str) -> ScoreResult:
        """Score the project's final document and store the result."""
        project = await self.get_project(project_id)
        result = scoring.score(
            ProjectImportExport.final_markdown(project),
            min_length=self.settings.min_document_length,
        )
        project.validation = result
        await self.store.put(project)
        logger.info("Scored project", project_id=project_id, total_score=result.total_score)
        return result
