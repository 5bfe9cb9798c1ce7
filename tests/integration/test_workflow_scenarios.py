"""End-to-end workflow scenarios over the file-backed project store."""

import json
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from adr_assistant.config import Settings
from adr_assistant.exceptions import ImportFormatError, PromptPasteError
from adr_assistant.models import CURRENT_SCHEMA_VERSION
from adr_assistant.phase_config import COMPLETE_PHASE
from adr_assistant.project_import_export import ATTRIBUTION
from adr_assistant.project_store import FileProjectStore
from adr_assistant.templates import PromptTemplateLoader
from adr_assistant.workflow import PhaseWorkflow

FINAL_ADR = """# Use PostgreSQL for Order Storage

## Status

Accepted

## Context

The order service needs a durable relational store. The main problem is that our
current document database cannot enforce the constraints we rely on, and there is
a requirement for transactional reporting. The solution must support ACID.

## Decision

We will adopt PostgreSQL and use the managed offering from our cloud provider.

## Consequences

Strong consistency will simplify reconciliation and improve reporting. The
migration has a cost and adds operational complexity, a trade-off we accept.
"""


@pytest.fixture
def temp_storage_dir():
    """Create a temporary storage directory."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


async def _workflow(path: Path) -> PhaseWorkflow:
    store = FileProjectStore(storage_path=str(path))
    await store.init()
    return PhaseWorkflow(store, PromptTemplateLoader(), Settings(_env_file=None))


class TestFullWorkflow:
    """A project taken from creation to export."""

    @pytest.mark.asyncio
    async def test_three_phase_flow_survives_restart(self, temp_storage_dir):
        workflow = await _workflow(temp_storage_dir)
        project = await workflow.create_project(
            "Pick an order database", "Orders need transactions.", "proposed"
        )

        prompt1 = await workflow.generate_prompt(project.id)
        assert "Pick an order database" in prompt1
        with pytest.raises(PromptPasteError):
            await workflow.save_response(project.id, 1, prompt1)

        await workflow.save_response(project.id, 1, "Draft: use PostgreSQL.")
        prompt2 = await workflow.generate_prompt(project.id)
        assert "Draft: use PostgreSQL." in prompt2

        await workflow.save_response(project.id, 2, "Review: add a migration plan.")
        prompt3 = await workflow.generate_prompt(project.id)
        assert "Review: add a migration plan." in prompt3

        result = await workflow.save_response(project.id, 3, FINAL_ADR)
        assert result.score.total_score == 100
        await workflow.finish(project.id)

        # A fresh store over the same directory sees the persisted state
        restarted = await _workflow(temp_storage_dir)
        loaded = await restarted.get_project(project.id)

        assert loaded.phase == COMPLETE_PHASE
        assert loaded.title == "Use PostgreSQL for Order Storage"
        assert loaded.completed_phases() == [1, 2, 3]
        assert loaded.validation.total_score == 100
        assert await restarted.export_markdown(project.id) == FINAL_ADR.strip() + ATTRIBUTION

    @pytest.mark.asyncio
    async def test_revisiting_phase_keeps_later_responses(self, temp_storage_dir):
        """Going back and re-saving an earlier phase does not lose progress."""
        workflow = await _workflow(temp_storage_dir)
        project = await workflow.create_project("T", "C")
        await workflow.save_response(project.id, 1, "First draft")
        await workflow.save_response(project.id, 2, "First review")

        await workflow.navigate_to_phase(project.id, 1)
        result = await workflow.save_response(project.id, 1, "Second draft")

        assert result.project.phase == 2
        assert result.project.phase_output(2) == "First review"
        assert result.project.phase_output(1) == "Second draft"


class TestLegacyProjects:
    """Projects written by older releases."""

    @pytest.mark.asyncio
    async def test_legacy_file_is_listed_and_completed(self, temp_storage_dir):
        legacy = {
            "id": "legacy-orders",
            "title": "Orders DB",
            "status": "proposed",
            "context": "Orders need transactions.",
            "phase": 3,
            "phase1Output": "Old draft",
            "phase2Feedback": "Old review",
        }
        path = temp_storage_dir / "legacy-orders.json"
        path.write_text(json.dumps(legacy), encoding="utf-8")
        workflow = await _workflow(temp_storage_dir)

        projects = await workflow.list_projects()
        assert [p.id for p in projects] == ["legacy-orders"]

        prompt = await workflow.generate_prompt("legacy-orders")
        assert "Old draft" in prompt
        assert "Old review" in prompt

        await workflow.save_response("legacy-orders", 3, FINAL_ADR)

        stored = json.loads(path.read_text(encoding="utf-8"))
        assert stored["schema_version"] == CURRENT_SCHEMA_VERSION
        assert "phase1Output" not in stored
        assert stored["phases"]["3"]["response"] == FINAL_ADR.strip()


class TestBackupRestore:
    """Backups moved between installations."""

    @pytest.mark.asyncio
    async def test_restore_into_new_installation(self, temp_storage_dir):
        source = await _workflow(temp_storage_dir / "source")
        first = await source.create_project("First", "C")
        second = await source.create_project("Second", "C")
        await source.save_response(first.id, 1, "Draft")

        backup = (await source.store.export_all()).to_json_dict()
        backup_text = json.dumps(backup)

        target = await _workflow(temp_storage_dir / "target")
        count = await target.store.import_all(backup_text)

        assert count == 2
        restored = {p.id: p for p in await target.list_projects()}
        assert set(restored) == {first.id, second.id}
        assert restored[first.id].phase_output(1) == "Draft"

    @pytest.mark.asyncio
    async def test_restore_replaces_same_id(self, temp_storage_dir):
        workflow = await _workflow(temp_storage_dir)
        project = await workflow.create_project("Original", "C")
        backup = (await workflow.store.export_all()).to_json_dict()

        await workflow.update_project(project.id, title="Edited")
        await workflow.store.import_all(backup)

        assert (await workflow.get_project(project.id)).title == "Original"

    @pytest.mark.asyncio
    async def test_bad_backup_leaves_store_untouched(self, temp_storage_dir):
        workflow = await _workflow(temp_storage_dir)
        await workflow.create_project("Existing", "C")

        with pytest.raises(ImportFormatError):
            await workflow.store.import_all({"version": 1, "projects": [{"title": "No id"}]})

        assert [p.title for p in await workflow.list_projects()] == ["Existing"]
