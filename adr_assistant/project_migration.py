"""One-time migration of stored project records to the current schema.

Older records carry the same phase data twice: in a structured ``phases``
mapping (sometimes a 0-indexed list) and in flat fields such as
``phase1_output`` or ``finalADR``. Migration folds everything into the
structured shape once, on load, so the rest of the code base only ever reads
``Project.phases``. A non-empty flat field wins over the structured response
so that content saved by any earlier version is never dropped.
"""

from datetime import UTC, datetime
from typing import Any, Dict, Mapping

from adr_assistant.logger import get_logger
from adr_assistant.models import CURRENT_SCHEMA_VERSION, ProjectStatus
from adr_assistant.phase_config import COMPLETE_PHASE, PHASE_COUNT

logger = get_logger(__name__)

# Flat fields per phase, in precedence order.
LEGACY_FLAT_FIELDS: Dict[int, tuple] = {
    1: ("phase1_output", "phase1Output", "phase1Response"),
    2: ("phase2_output", "phase2Output", "phase2Review", "phase2_review", "phase2Feedback"),
    3: ("phase3_output", "phase3Output", "finalADR"),
}

LEGACY_KEY_RENAMES = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "schemaVersion": "schema_version",
}


def needs_migration(data: Mapping[str, Any]) -> bool:
    """Whether a raw record predates the current schema."""
    return data.get("schema_version") != CURRENT_SCHEMA_VERSION


def _normalize_phases(raw: Any) -> Dict[int, Dict[str, Any]]:
    phases: Dict[int, Dict[str, Any]] = {}

    if isinstance(raw, list):
        items = ((index + 1, value) for index, value in enumerate(raw))
    elif isinstance(raw, Mapping):
        items = raw.items()
    else:
        items = ()

    for key, value in items:
        try:
            number = int(key)
        except (TypeError, ValueError):
            logger.warning("Skipping phase record with non-numeric key", key=key)
            continue
        if not 1 <= number <= PHASE_COUNT or not isinstance(value, Mapping):
            continue
        phases[number] = {
            "prompt": value.get("prompt") or "",
            "response": value.get("response") or "",
        }

    for number in range(1, PHASE_COUNT + 1):
        phases.setdefault(number, {"prompt": "", "response": ""})

    return phases


def _normalize_status(value: Any, project_id: Any) -> str:
    if value in (None, ""):
        return ProjectStatus.PROPOSED.value
    try:
        return ProjectStatus.parse(value).value
    except ValueError:
        logger.warning(
            "Unknown status in stored project, defaulting to Proposed",
            project_id=project_id,
            status=value,
        )
        return ProjectStatus.PROPOSED.value


def _normalize_phase_number(value: Any) -> int:
    try:
        phase = int(value)
    except (TypeError, ValueError):
        return 1
    return max(0, min(phase, COMPLETE_PHASE))


def migrate_project_record(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Return ``data`` converted to the current project schema.

    Records already at the current version are returned as a shallow copy.
    """
    record = dict(data)
    if not needs_migration(record):
        return record

    original_version = record.get("schema_version", record.get("schemaVersion", 1))

    for old_key, new_key in LEGACY_KEY_RENAMES.items():
        if old_key in record:
            value = record.pop(old_key)
            record.setdefault(new_key, value)

    phases = _normalize_phases(record.get("phases"))

    for number, keys in LEGACY_FLAT_FIELDS.items():
        flat_value = ""
        for key in keys:
            value = record.pop(key, None)
            if value and not flat_value:
                flat_value = value
        if flat_value:
            phases[number]["response"] = flat_value

    for number, phase in phases.items():
        phase["completed"] = bool(phase["response"])

    now = datetime.now(UTC).isoformat()
    record["phases"] = phases
    record["status"] = _normalize_status(record.get("status"), record.get("id"))
    record["phase"] = _normalize_phase_number(record.get("phase", 1))
    record["title"] = record.get("title") or ""
    record["context"] = record.get("context") or ""
    record.setdefault("created_at", now)
    record["updated_at"] = record.get("updated_at") or record["created_at"]
    record["schema_version"] = CURRENT_SCHEMA_VERSION

    logger.debug(
        "Migrated project record",
        project_id=record.get("id"),
        from_version=original_version,
        to_version=CURRENT_SCHEMA_VERSION,
    )
    return record
