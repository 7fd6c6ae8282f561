"""Work item field references and value accessors shared by the shaping code.

Azure DevOps records are sparse: any field may be missing, identity fields
may hold a full identity object or (after compaction) a plain display name,
and numeric fields are untyped. The accessors here resolve all of that to
plain values so callers never branch on record shape.
"""
from typing import Any, Optional

ID = "System.Id"
TITLE = "System.Title"
STATE = "System.State"
WORK_ITEM_TYPE = "System.WorkItemType"
ASSIGNED_TO = "System.AssignedTo"
CREATED_BY = "System.CreatedBy"
CHANGED_BY = "System.ChangedBy"
STORY_POINTS = "Microsoft.VSTS.Scheduling.StoryPoints"

# Fields holding identity objects ({displayName, id, uniqueName, ...})
IDENTITY_FIELDS = (ASSIGNED_TO, CREATED_BY, CHANGED_BY)

UNASSIGNED = "Unassigned"
UNKNOWN = "Unknown"


def get_fields(record: Any) -> dict:
    """Return the record's field mapping, or an empty dict for malformed records."""
    if isinstance(record, dict) and isinstance(record.get("fields"), dict):
        return record["fields"]
    return {}


def missing_value_label(field_name: str) -> str:
    """Placeholder used when a record has no value for ``field_name``."""
    return UNASSIGNED if field_name == ASSIGNED_TO else UNKNOWN


def display_name(value: Any) -> Optional[str]:
    """Display name of an identity value, or None when there is none.

    Accepts both the raw identity object and an already-compacted string.
    """
    if isinstance(value, dict):
        name = value.get("displayName")
        return name if name else None
    if isinstance(value, str) and value:
        return value
    return None


def field_label(record: Any, field_name: str) -> str:
    """Grouping label for a record's value of ``field_name``.

    Identity values resolve to their display name; everything else to its
    string form. Absent values get the field's placeholder label.
    """
    value = get_fields(record).get(field_name)
    if isinstance(value, dict):
        return display_name(value) or missing_value_label(field_name)
    if value is None or value == "":
        return missing_value_label(field_name)
    return str(value)


def story_points(record: Any) -> float:
    """Story points of a record; anything non-numeric counts as zero."""
    value = get_fields(record).get(STORY_POINTS)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def has_story_points(record: Any) -> bool:
    value = get_fields(record).get(STORY_POINTS)
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_number(value: float) -> str:
    """Render a numeric total without a trailing ``.0`` for whole numbers."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
