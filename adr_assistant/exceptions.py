"""Error types raised by the workflow, scoring and storage layers."""

from typing import Optional


class ADRAssistantError(Exception):
    """Base error for ADR Assistant operations."""

    pass


class ValidationError(ADRAssistantError):
    """User input was rejected; nothing was written."""

    pass


class ResponseValidationError(ValidationError):
    """The pasted AI response is empty or too short."""

    def __init__(self, message: str, phase: Optional[int] = None):
        super().__init__(message)
        self.phase = phase


class PromptPasteError(ValidationError):
    """The user pasted the generated prompt instead of the AI response."""

    def __init__(self, message: str, phase: Optional[int] = None, rule: str = ""):
        super().__init__(message)
        self.phase = phase
        self.rule = rule


class InvalidPhaseError(ValidationError):
    """Phase number outside the workflow's range."""

    def __init__(self, phase: int, phase_count: int):
        super().__init__(f"Invalid phase: {phase} (expected 1-{phase_count})")
        self.phase = phase
        self.phase_count = phase_count


class PhaseGateError(ValidationError):
    """A phase was entered before its predecessor was completed."""

    def __init__(self, phase: int):
        super().__init__(
            f"Complete phase {phase - 1} before moving on to phase {phase}"
        )
        self.phase = phase


class ProjectNotFoundError(ADRAssistantError):
    """Operation on a project id that does not exist."""

    def __init__(self, project_id: str):
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class StorageError(ADRAssistantError):
    """The underlying project store rejected a read or write."""

    def __init__(self, message: str, project_id: Optional[str] = None):
        super().__init__(message)
        self.project_id = project_id


class ImportFormatError(ADRAssistantError):
    """Import payload is malformed or of an unsupported shape."""

    pass


class TemplateNotFoundError(ADRAssistantError):
    """Prompt template for a phase could not be loaded."""

    def __init__(self, phase: int, path: str):
        super().__init__(f"Failed to load prompt template for phase {phase} from {path}")
        self.phase = phase
        self.path = path
