"""Plain-text summary rendering for large work item result sets.

The summary is meant for a human (or model) skimming a result set, not for
parsing. It is deterministic: the same records and grouping field always
render the same text.
"""
from typing import Any, Optional

from .fields import (
    ASSIGNED_TO,
    STATE,
    TITLE,
    UNASSIGNED,
    WORK_ITEM_TYPE,
    display_name,
    format_number,
    get_fields,
    has_story_points,
    story_points,
)
from .grouping import DEFAULT_GROUP_BY, group_work_items

LINE_WIDTH = 80
MAX_ITEMS_PER_GROUP = 10
MAX_TITLE_LENGTH = 50


def truncate_title(title: str, max_length: int = MAX_TITLE_LENGTH) -> str:
    """Shorten a title to ``max_length`` characters, ending in '...'."""
    if len(title) > max_length:
        return title[:max_length - 3] + "..."
    return title


def _format_item_lines(record: Any, group_by: str) -> list[str]:
    fields = get_fields(record)
    work_item_id = record.get("id", "?") if isinstance(record, dict) else "?"
    work_item_type = str(fields.get(WORK_ITEM_TYPE) or "")
    title = truncate_title(str(fields.get(TITLE) or ""))

    if has_story_points(record):
        points = f"{format_number(story_points(record))} pts"
    else:
        points = "N/A"

    lines = [f"  #{str(work_item_id):>5} - {work_item_type:<20} - {points:<8} - {title}"]

    # "          State: X  Assigned: Y"; grouped by State the line is just "  Assigned: Y"
    detail = ""
    if group_by != STATE:
        detail += f"          State: {fields.get(STATE)}"
    if group_by != ASSIGNED_TO:
        detail += f"  Assigned: {display_name(fields.get(ASSIGNED_TO)) or UNASSIGNED}"
    lines.append(detail)

    return lines


def format_work_items_summary(records: list, group_by: Optional[str] = None) -> str:
    """Render records as a grouped, capped text summary.

    Layout:
    - banner with the grouping field, item count and story point total
    - one section per group (largest first) with up to 10 item lines
    - an '... and N more' line for groups above the cap
    """
    group_by = group_by or DEFAULT_GROUP_BY
    groups = group_work_items(records, group_by)
    total_points = sum(group.story_points for group in groups)

    lines = [
        "=" * LINE_WIDTH,
        f"Work Items Summary - Grouped by {group_by}",
        f"({len(records)} items, {format_number(total_points)} story points)",
        "=" * LINE_WIDTH,
    ]

    for group in groups:
        lines.append("")
        lines.append(f"{group.key.upper()} ({group.count} items, {format_number(group.story_points)} pts)")
        lines.append("-" * LINE_WIDTH)

        for record in group.items[:MAX_ITEMS_PER_GROUP]:
            lines.extend(_format_item_lines(record, group_by))

        if group.count > MAX_ITEMS_PER_GROUP:
            lines.append(f"  ... and {group.count - MAX_ITEMS_PER_GROUP} more")

    return "\n".join(lines)
