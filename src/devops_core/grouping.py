"""Group work items by a field value.

Shared by the summary renderer and the by-field aggregation. Ordering is a
pure function of input order: groups are sorted by size (largest first) and
groups of equal size keep the order in which they were first seen.
"""
from typing import Any, Union

from pydantic import BaseModel, Field

from .fields import STATE, field_label, story_points

DEFAULT_GROUP_BY = STATE


class Group(BaseModel):
    """Work items sharing one value of the grouping field."""

    key: str
    items: list[Any] = Field(default_factory=list)
    count: int = 0
    story_points: Union[int, float] = 0


def group_work_items(records: list, group_by: str = DEFAULT_GROUP_BY) -> list[Group]:
    """Partition records by ``group_by`` and sort groups by count descending.

    Args:
        records: Work item records (raw or compacted)
        group_by: Canonical field reference to group on

    Returns:
        Groups with their member records, counts and story point totals
    """
    buckets: dict[str, list] = {}
    for record in records:
        buckets.setdefault(field_label(record, group_by), []).append(record)

    groups = [
        Group(
            key=key,
            items=items,
            count=len(items),
            story_points=sum(story_points(item) for item in items),
        )
        for key, items in buckets.items()
    ]

    # sorted() is stable, so equal counts stay in first-seen order
    return sorted(groups, key=lambda group: group.count, reverse=True)
