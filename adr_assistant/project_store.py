"""Persistence of ADR projects."""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import aiofiles
import aiofiles.os
from pydantic import ValidationError as PydanticValidationError

from adr_assistant.config import get_settings
from adr_assistant.exceptions import StorageError
from adr_assistant.logger import get_logger
from adr_assistant.models import Project, is_safe_project_id
from adr_assistant.project_import_export import BackupEnvelope, ProjectImportExport
from adr_assistant.project_migration import migrate_project_record, needs_migration

logger = get_logger(__name__)

class ProjectStore(ABC):
    """Async key-value store of projects, keyed by project id."""

    async def init(self) -> None:
        """Prepare the store for use."""

    @abstractmethod
    async def get(self, project_id: str) -> Optional[Project]:
        """Return a project, or None if it does not exist."""

    @abstractmethod
    async def list(self) -> List[Project]:
        """All projects, most recently updated first."""

    @abstractmethod
    async def put(self, project: Project) -> Project:
        """Insert or replace a project, stamping ``updated_at``."""

    @abstractmethod
    async def delete(self, project_id: str) -> bool:
        """Delete a project. Returns False if it did not exist."""

    async def export_all(self) -> BackupEnvelope:
        """Backup envelope holding every stored project."""
        return ProjectImportExport.export_backup(await self.list())

    async def import_all(self, data: Any) -> int:
        """Import a backup envelope or single project record.

        Every record is parsed and migrated before the first write.

        Returns:
            Number of projects imported

        Raises:
            ImportFormatError: If the payload is not a recognized format
        """
        projects = ProjectImportExport.parse_import_payload(data)
        for project in projects:
            await self.put(project)
        logger.info("Imported projects", count=len(projects))
        return len(projects)

    @staticmethod
    def _sorted(projects: Iterable[Project]) -> List[Project]:
        return sorted(projects, key=lambda p: p.updated_at, reverse=True)


def _load_record(data: Mapping[str, Any]) -> Project:
    return Project.model_validate(migrate_project_record(data))


class InMemoryProjectStore(ProjectStore):
    """Project store held in process memory.

    Records are kept serialized so callers never share a mutable Project with
    the store, matching the behavior of the file store.
    """

    def __init__(self, records: Optional[Iterable[Mapping[str, Any]]] = None):
        """Initialize the store.

        Args:
            records: Raw project records to seed the store with. Records in an
                older schema are migrated when read.
        """
        self._records: Dict[str, Dict[str, Any]] = {}
        for record in records or ():
            self._records[str(record["id"])] = dict(record)

    async def get(self, project_id: str) -> Optional[Project]:
        data = self._records.get(project_id)
        if data is None:
            return None
        if needs_migration(data):
            data = migrate_project_record(data)
            self._records[project_id] = data
        return Project.model_validate(data)

    async def list(self) -> List[Project]:
        projects = [await self.get(project_id) for project_id in list(self._records)]
        return self._sorted(p for p in projects if p is not None)

    async def put(self, project: Project) -> Project:
        project.touch()
        self._records[project.id] = project.model_dump(mode="json")
        return project

    async def delete(self, project_id: str) -> bool:
        return self._records.pop(project_id, None) is not None


class FileProjectStore(ProjectStore):
    """One JSON file per project in a storage directory."""

    def __init__(self, storage_path: Optional[str] = None):
        """Initialize the file store.

        Args:
            storage_path: Directory for project files. Defaults to the
                PROJECT_STORAGE_PATH setting.
        """
        if storage_path is None:
            storage_path = get_settings().project_storage_path
        self.storage_path = Path(storage_path)

    async def init(self) -> None:
        """Ensure the storage directory exists."""
        try:
            await aiofiles.os.makedirs(self.storage_path, exist_ok=True)
            logger.info("Project storage initialized", path=str(self.storage_path))
        except OSError as e:
            logger.error("Failed to create storage directory", path=str(self.storage_path), error=str(e))
            raise StorageError(f"Failed to create storage directory {self.storage_path}") from e

    def _get_project_file_path(self, project_id: str) -> Optional[Path]:
        """Path of a project's file, or None for ids that are not file-safe."""
        if not is_safe_project_id(project_id):
            return None
        return self.storage_path / f"{project_id}.json"

    async def _read(self, path: Path) -> Project:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            data = json.loads(await f.read())
        project = _load_record(data)
        if needs_migration(data):
            # Write the migrated record back so migration runs once.
            try:
                await self._write(path, project)
            except OSError as e:
                logger.warning(
                    "Failed to write back migrated project",
                    project_id=project.id,
                    path=str(path),
                    error=str(e),
                )
        return project

    async def _write(self, path: Path, project: Project) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(project.model_dump(mode="json"), indent=2, ensure_ascii=False))
        await aiofiles.os.replace(tmp_path, path)

    async def get(self, project_id: str) -> Optional[Project]:
        path = self._get_project_file_path(project_id)
        if path is None or not await aiofiles.os.path.exists(path):
            return None

        try:
            return await self._read(path)
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            logger.error("Failed to load project", project_id=project_id, error=str(e))
            raise StorageError(f"Failed to load project {project_id}", project_id) from e

    async def list(self) -> List[Project]:
        projects = []
        for path in self.storage_path.glob("*.json"):
            try:
                projects.append(await self._read(path))
            except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
                logger.warning("Skipping unreadable project file", path=str(path), error=str(e))
                continue
        return self._sorted(projects)

    async def put(self, project: Project) -> Project:
        path = self._get_project_file_path(project.id)
        if path is None:
            raise StorageError(f"Invalid project id {project.id!r}", project.id)

        project.touch()
        try:
            await self._write(path, project)
        except OSError as e:
            logger.error("Failed to save project", project_id=project.id, error=str(e))
            raise StorageError(f"Failed to save project {project.id}", project.id) from e

        logger.debug("Saved project", project_id=project.id, phase=project.phase)
        return project

    async def delete(self, project_id: str) -> bool:
        path = self._get_project_file_path(project_id)
        if path is None or not await aiofiles.os.path.exists(path):
            return False

        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            logger.error("Failed to delete project", project_id=project_id, error=str(e))
            raise StorageError(f"Failed to delete project {project_id}", project_id) from e

        logger.info("Deleted project", project_id=project_id)
        return True


# Global store instance
_store_instance: Optional[ProjectStore] = None


def get_project_store() -> ProjectStore:
    """Get the global project store instance."""
    global _store_instance
    if _store_instance is None:
        _store_instance = FileProjectStore()
    return _store_instance
