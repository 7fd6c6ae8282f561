"""Server-side aggregation of work item sets.

Returning statistics instead of records keeps "who worked on this?" and
"how is this spread across states?" questions cheap no matter how many
work items match the query.
"""
import logging
from collections import Counter
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .fields import (
    ASSIGNED_TO,
    CHANGED_BY,
    CREATED_BY,
    ID,
    STATE,
    STORY_POINTS,
    TITLE,
    WORK_ITEM_TYPE,
    field_label,
    get_fields,
    story_points,
)
from .grouping import group_work_items

logger = logging.getLogger("devops-mcp.aggregation")

CONTRIBUTORS = "contributors"
BY_STATE = "by-state"
BY_TYPE = "by-type"
BY_ASSIGNED = "by-assigned"

# by-field aggregation type -> field it groups on
FIELD_AGGREGATIONS = {
    BY_STATE: STATE,
    BY_TYPE: WORK_ITEM_TYPE,
    BY_ASSIGNED: ASSIGNED_TO,
}

AGGREGATION_TYPES = (CONTRIBUTORS, *FIELD_AGGREGATIONS)

# Sample records kept per group, so statistics never grow back into a full listing
MAX_SAMPLE_ITEMS = 5

CONTRIBUTOR_FIELDS = [ASSIGNED_TO, CREATED_BY, CHANGED_BY]
FIELD_AGGREGATION_FIELDS = [STATE, WORK_ITEM_TYPE, ASSIGNED_TO, TITLE, STORY_POINTS]
DEFAULT_AGGREGATION_FIELDS = [ID, TITLE, STATE, ASSIGNED_TO]


class AggregationError(ValueError):
    """Raised when an aggregation request cannot be served."""

    def __init__(self, message: str, aggregation_type: Optional[str] = None):
        super().__init__(message)
        self.aggregation_type = aggregation_type


class AggregationModel(BaseModel):
    """Base for aggregation results; serializes with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContributorCount(AggregationModel):
    name: str
    count: int


class ContributorsByRole(AggregationModel):
    assigned_to: list[ContributorCount]
    created_by: list[ContributorCount]
    changed_by: list[ContributorCount]


class ContributorsAggregation(AggregationModel):
    """Who is assigned to, created and last changed the work items."""

    total_work_items: int
    unique_contributors: list[str]
    contributor_count: int
    by_role: ContributorsByRole


class SampleItem(AggregationModel):
    id: Optional[int] = None
    title: Optional[str] = None
    points: Union[int, float] = 0


class FieldGroup(AggregationModel):
    name: str
    count: int
    story_points: Union[int, float]
    items: list[SampleItem]


class FieldAggregation(AggregationModel):
    """Work item counts and story points per value of one field."""

    total_work_items: int
    total_story_points: Union[int, float]
    grouped_by: str
    groups: list[FieldGroup]


def get_aggregation_fields(aggregation_type: Optional[str]) -> list[str]:
    """Fields the backend fetch needs for an aggregation type.

    Unknown types get a small default field list rather than an error.
    """
    if aggregation_type == CONTRIBUTORS:
        return list(CONTRIBUTOR_FIELDS)
    if aggregation_type in FIELD_AGGREGATIONS:
        return list(FIELD_AGGREGATION_FIELDS)
    return list(DEFAULT_AGGREGATION_FIELDS)


def _ranked(counter: Counter) -> list[ContributorCount]:
    # Counter keeps insertion order and sorted() is stable: ties stay first-seen
    ranked = sorted(counter.items(), key=lambda entry: entry[1], reverse=True)
    return [ContributorCount(name=name, count=count) for name, count in ranked]


def aggregate_contributors(records: list) -> ContributorsAggregation:
    """Collect unique contributors and per-role contribution counts.

    Missing assignees count as "Unassigned"; missing creators and
    last-modifiers as "Unknown".
    """
    assigned_to: Counter = Counter()
    created_by: Counter = Counter()
    changed_by: Counter = Counter()

    for record in records:
        assigned_to[field_label(record, ASSIGNED_TO)] += 1
        created_by[field_label(record, CREATED_BY)] += 1
        changed_by[field_label(record, CHANGED_BY)] += 1

    contributors = sorted(set(assigned_to) | set(created_by) | set(changed_by))

    return ContributorsAggregation(
        total_work_items=len(records),
        unique_contributors=contributors,
        contributor_count=len(contributors),
        by_role=ContributorsByRole(
            assigned_to=_ranked(assigned_to),
            created_by=_ranked(created_by),
            changed_by=_ranked(changed_by),
        ),
    )


def _sample_item(record: Any) -> SampleItem:
    work_item_id = record.get("id") if isinstance(record, dict) else None
    return SampleItem(
        id=work_item_id if isinstance(work_item_id, int) else None,
        title=get_fields(record).get(TITLE),
        points=story_points(record),
    )


def aggregate_by_field(records: list, field_name: str) -> FieldAggregation:
    """Count work items and story points per value of ``field_name``."""
    groups = group_work_items(records, field_name)

    return FieldAggregation(
        total_work_items=len(records),
        total_story_points=sum(group.story_points for group in groups),
        grouped_by=field_name,
        groups=[
            FieldGroup(
                name=group.key,
                count=group.count,
                story_points=group.story_points,
                items=[_sample_item(record) for record in group.items[:MAX_SAMPLE_ITEMS]],
            )
            for group in groups
        ],
    )


def validate_aggregation_type(aggregation_type: Optional[str]) -> str:
    """Return the aggregation type, defaulting to contributors.

    Raises:
        AggregationError: If the type is not one of AGGREGATION_TYPES
    """
    aggregation_type = aggregation_type or CONTRIBUTORS
    if aggregation_type not in AGGREGATION_TYPES:
        raise AggregationError(
            f"Unknown aggregation type: {aggregation_type}. "
            f"Expected one of: {', '.join(AGGREGATION_TYPES)}",
            aggregation_type=aggregation_type,
        )
    return aggregation_type


def aggregate_work_items(
    records: list,
    aggregation_type: Optional[str] = None,
) -> Union[ContributorsAggregation, FieldAggregation]:
    """Run the aggregation named by ``aggregation_type`` over ``records``."""
    aggregation_type = validate_aggregation_type(aggregation_type)
    logger.info(f"Aggregating {len(records)} work items ({aggregation_type})")

    if aggregation_type == CONTRIBUTORS:
        return aggregate_contributors(records)
    return aggregate_by_field(records, FIELD_AGGREGATIONS[aggregation_type])
