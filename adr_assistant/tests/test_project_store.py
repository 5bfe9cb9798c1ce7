"""Tests for project storage."""

import json
from datetime import UTC, datetime
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import AsyncMock, patch

import pytest

from adr_assistant.exceptions import ImportFormatError, StorageError
from adr_assistant.models import CURRENT_SCHEMA_VERSION, PhaseRecord, Project
from adr_assistant.project_store import FileProjectStore, InMemoryProjectStore

LEGACY_RECORD = {
    "id": "legacy-project",
    "title": "Adopt Kafka",
    "status": "accepted",
    "context": "We need durable event streaming.",
    "phase": 3,
    "phase1_output": "Kafka draft",
    "phase2Review": "Kafka review",
    "createdAt": "2024-03-01T10:00:00+00:00",
    "updatedAt": "2024-03-02T10:00:00+00:00",
}


class TestFileProjectStore:
    """Test FileProjectStore class."""

    @pytest.fixture
    def temp_storage_dir(self):
        """Create a temporary storage directory."""
        with TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def sample_project(self):
        """Create a sample project for testing."""
        return Project.create(title="Use PostgreSQL", context="We need a relational database.")

    @pytest.mark.asyncio
    async def test_init_creates_directory(self, temp_storage_dir):
        """Test init creates the storage directory."""
        storage_path = temp_storage_dir / "projects"
        store = FileProjectStore(storage_path=str(storage_path))

        await store.init()

        assert storage_path.exists()

    @pytest.mark.asyncio
    async def test_put_writes_json_file(self, temp_storage_dir, sample_project):
        """Test saving a project writes one JSON file."""
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()

        await store.put(sample_project)

        file_path = temp_storage_dir / f"{sample_project.id}.json"
        assert file_path.exists()
        data = json.loads(file_path.read_text(encoding="utf-8"))
        assert data["title"] == "Use PostgreSQL"
        assert data["schema_version"] == CURRENT_SCHEMA_VERSION
        assert not list(temp_storage_dir.glob("*.tmp"))

    @pytest.mark.asyncio
    async def test_put_stamps_updated_at(self, temp_storage_dir, sample_project):
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()
        sample_project.updated_at = datetime(2020, 1, 1, tzinfo=UTC)

        await store.put(sample_project)

        assert sample_project.updated_at > datetime(2020, 1, 1, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_get_round_trip(self, temp_storage_dir, sample_project):
        """Test a saved project loads back unchanged."""
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()
        sample_project.phases[1] = PhaseRecord(prompt="P", response="R")
        await store.put(sample_project)

        loaded = await store.get(sample_project.id)

        assert loaded == sample_project

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, temp_storage_dir):
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()

        assert await store.get("does-not-exist") is None
        assert await store.get("../escape") is None

    @pytest.mark.asyncio
    async def test_get_corrupt_file_raises(self, temp_storage_dir):
        """Test an unreadable record raises StorageError."""
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()
        (temp_storage_dir / "broken.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError) as exc_info:
            await store.get("broken")

        assert exc_info.value.project_id == "broken"

    @pytest.mark.asyncio
    async def test_legacy_record_migrated_once(self, temp_storage_dir):
        """Test a legacy file is migrated on load and rewritten."""
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()
        path = temp_storage_dir / "legacy-project.json"
        path.write_text(json.dumps(LEGACY_RECORD), encoding="utf-8")

        project = await store.get("legacy-project")

        assert project.phase_output(1) == "Kafka draft"
        assert project.phase_output(2) == "Kafka review"
        assert project.completed_phases() == [1, 2]
        rewritten = json.loads(path.read_text(encoding="utf-8"))
        assert rewritten["schema_version"] == CURRENT_SCHEMA_VERSION
        assert "phase1_output" not in rewritten
        assert rewritten["phases"]["1"]["response"] == "Kafka draft"

    @pytest.mark.asyncio
    async def test_failed_write_back_still_returns_project(self, temp_storage_dir):
        """Test a legacy record loads even when the migrated copy cannot be saved."""
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()
        path = temp_storage_dir / "legacy-project.json"
        path.write_text(json.dumps(LEGACY_RECORD), encoding="utf-8")

        with patch.object(store, "_write", AsyncMock(side_effect=OSError("read-only"))):
            project = await store.get("legacy-project")

        assert project.phase_output(1) == "Kafka draft"
        assert json.loads(path.read_text(encoding="utf-8")) == LEGACY_RECORD

    @pytest.mark.asyncio
    async def test_list_sorted_by_updated_at(self, temp_storage_dir):
        """Test projects are listed most recently updated first."""
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()
        first = await store.put(Project.create(title="First", context="C"))
        second = await store.put(Project.create(title="Second", context="C"))

        projects = await store.list()

        assert [p.id for p in projects] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_list_skips_unreadable_files(self, temp_storage_dir, sample_project):
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()
        await store.put(sample_project)
        (temp_storage_dir / "broken.json").write_text("{not json", encoding="utf-8")

        projects = await store.list()

        assert [p.id for p in projects] == [sample_project.id]

    @pytest.mark.asyncio
    async def test_delete(self, temp_storage_dir, sample_project):
        """Test deleting a project removes its file."""
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()
        await store.put(sample_project)

        assert await store.delete(sample_project.id) is True
        assert await store.get(sample_project.id) is None
        assert await store.delete(sample_project.id) is False

    @pytest.mark.asyncio
    async def test_put_rejects_unsafe_id(self, temp_storage_dir):
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()
        project = Project(id="../../etc/passwd", title="T", context="C")

        with pytest.raises(StorageError):
            await store.put(project)

    @pytest.mark.asyncio
    async def test_export_and_import_all(self, temp_storage_dir, sample_project):
        """Test a backup restores into an empty store."""
        source = FileProjectStore(storage_path=str(temp_storage_dir / "a"))
        await source.init()
        await source.put(sample_project)

        envelope = await source.export_all()

        target = FileProjectStore(storage_path=str(temp_storage_dir / "b"))
        await target.init()
        count = await target.import_all(envelope.to_json_dict())

        assert count == 1
        restored = await target.get(sample_project.id)
        assert restored.title == sample_project.title

    @pytest.mark.asyncio
    async def test_import_rejects_unsafe_id_before_writing(self, temp_storage_dir):
        """Test a record with a non file-safe id stops the import before any write."""
        store = FileProjectStore(storage_path=str(temp_storage_dir))
        await store.init()
        payload = {
            "version": 1,
            "projects": [
                {"id": "good-1", "title": "Good", "context": "C"},
                {"id": "bad.id", "title": "Bad", "context": "C"},
            ],
        }

        with pytest.raises(ImportFormatError, match="project 1"):
            await store.import_all(payload)

        assert await store.list() == []
        assert not list(temp_storage_dir.glob("*.json"))


class TestInMemoryProjectStore:
    """Test InMemoryProjectStore class."""

    @pytest.mark.asyncio
    async def test_put_and_get(self):
        store = InMemoryProjectStore()
        project = Project.create(title="T", context="C")

        await store.put(project)
        loaded = await store.get(project.id)

        assert loaded == project
        assert loaded is not project

    @pytest.mark.asyncio
    async def test_get_returns_copy(self):
        """Test changes to a fetched project are not stored until put."""
        store = InMemoryProjectStore()
        project = await store.put(Project.create(title="T", context="C"))

        fetched = await store.get(project.id)
        fetched.title = "Changed"

        assert (await store.get(project.id)).title == "T"

    @pytest.mark.asyncio
    async def test_seeded_legacy_record(self):
        """Test seeded legacy records are migrated when read."""
        store = InMemoryProjectStore(records=[LEGACY_RECORD])

        project = await store.get("legacy-project")

        assert project.phase_output(1) == "Kafka draft"
        assert project.status.value == "Accepted"

    @pytest.mark.asyncio
    async def test_delete_and_list(self):
        store = InMemoryProjectStore()
        project = await store.put(Project.create(title="T", context="C"))

        assert [p.id for p in await store.list()] == [project.id]
        assert await store.delete(project.id) is True
        assert await store.delete(project.id) is False
        assert await store.list() == []

    @pytest.mark.asyncio
    async def test_import_is_all_or_nothing(self):
        """Test one bad record prevents every write."""
        store = InMemoryProjectStore()
        good = Project.create(title="Good", context="C").model_dump(mode="json")
        payload = {"version": 1, "projects": [good, "not a project"]}

        with pytest.raises(ImportFormatError):
            await store.import_all(payload)

        assert await store.list() == []
