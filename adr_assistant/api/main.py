"""FastAPI backend for ADR Assistant."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adr_assistant import __version__
from adr_assistant.api.routes import (
    get_workflow,
    projects_router,
    templates_router,
    validation_router,
)
from adr_assistant.config import get_settings
from adr_assistant.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting ADR Assistant API")

    workflow = get_workflow()
    await workflow.store.init()
    await workflow.templates.preload()
    logger.info(
        "Prompt templates loaded",
        templates_dir=str(workflow.templates.templates_dir),
        family=workflow.templates.family.name,
    )

    yield

    logger.info("Shutting down ADR Assistant API")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="ADR Assistant API",
        description="Guided three-phase authoring and scoring of Architecture Decision Records",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(projects_router, prefix="/api/v1/projects", tags=["Projects"])
    app.include_router(validation_router, prefix="/api/v1", tags=["Validation"])
    app.include_router(templates_router, prefix="/api/v1/templates", tags=["Templates"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "adr-assistant-api"}

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "ADR Assistant API",
            "docs": "/docs",
            "health": "/health",
        }

    return app


# Create the FastAPI app instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "adr_assistant.api.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info"
    )
