"""Configuration management for ADR Assistant."""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="",  # No prefix, use exact env var names
        populate_by_name=True,  # Allow populating by field name or alias
        extra="ignore",
    )

    # Application Configuration
    log_level: str = Field(default="INFO", description="Logging level", alias="LOG_LEVEL")
    log_format: str = Field(
        default="json", description="Log format (json or text)", alias="LOG_FORMAT"
    )

    # Storage Configuration
    project_storage_path: str = Field(
        default="data/projects",
        description="Directory holding one JSON file per project",
        alias="PROJECT_STORAGE_PATH",
    )

    # Prompt Templates
    prompt_templates_dir: Optional[str] = Field(
        default=None,
        description="Directory with phase1.md..phase3.md (defaults to the bundled prompts)",
        alias="PROMPT_TEMPLATES_DIR",
    )
    prompt_template_family: str = Field(
        default="standard",
        description="Template family: standard ({{NAME}}) or legacy ({name})",
        alias="PROMPT_TEMPLATE_FAMILY",
    )

    # Workflow Configuration
    initial_phase: int = Field(
        default=1,
        ge=0,
        le=1,
        description="Phase new projects start in (0 = form entry, 1 = first phase)",
        alias="INITIAL_PHASE",
    )
    min_response_length: int = Field(
        default=3,
        ge=1,
        description="Minimum number of characters accepted as an AI response",
        alias="MIN_RESPONSE_LENGTH",
    )

    # Scoring Configuration
    min_document_length: int = Field(
        default=50,
        ge=0,
        description="Documents shorter than this are not scored",
        alias="MIN_DOCUMENT_LENGTH",
    )
    scoring_rubric_path: Optional[str] = Field(
        default=None,
        description="Custom rubric YAML file (defaults to the bundled rubric)",
        alias="SCORING_RUBRIC_PATH",
    )

    # API Configuration
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        description="Origins allowed to call the API",
        alias="CORS_ORIGINS",
    )

    # Development settings
    debug: bool = Field(default=False, description="Enable debug mode", alias="DEBUG")

    def model_post_init(self, __context) -> None:
        """Normalize free-form values."""
        object.__setattr__(self, "log_format", self.log_format.lower())
        object.__setattr__(
            self, "prompt_template_family", self.prompt_template_family.lower()
        )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the current application settings."""
    return settings
