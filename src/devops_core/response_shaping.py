"""Size-aware shaping of work item responses.

A WIQL query can match anything from zero to tens of thousands of work
items. Before a result goes back to the client its serialized size and item
count are measured and one output shape is chosen:

1. exceeded-token-limit: over the hard limit and the caller did not insist
   on JSON -> grouped text summary, flagged as truncated
2. summary: summary requested, many items, or over the warning size ->
   grouped text summary, flagged as a format choice
3. large-result: over the warning size but JSON was explicitly requested ->
   the JSON unchanged, with a size warning
4. json: everything else -> the JSON unchanged

The rules are evaluated top to bottom and the first match wins. Only
format=json or ``force`` get past the hard limit, and with ``force`` alone
an oversized result still comes back as a summary (rule 2).
"""
import json
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel

from .aggregation import aggregate_work_items
from .config import Settings
from .summary import format_work_items_summary

logger = logging.getLogger("devops-mcp.response_shaping")

FORMAT_JSON = "json"
FORMAT_SUMMARY = "summary"

TRUNCATION_SUGGESTIONS = [
    "Use compact: true to reduce user field sizes (70% reduction)",
    'Add format: "summary" for readable overview',
    "Specify only needed fields to reduce response size",
    "Use page and pageSize to fetch the results one page at a time",
    "Use get-work-item-aggregations for statistics instead of full records",
]

SUMMARY_HINT = 'Use format: "json" with force: true for full JSON output'


class ResponseFlags(BaseModel):
    """Caller options that influence the response shape."""

    output_format: Optional[str] = None
    force: bool = False
    group_by: Optional[str] = None
    compact: bool = False
    requested_fields: Optional[list[str]] = None

    @classmethod
    def from_arguments(cls, arguments: dict) -> "ResponseFlags":
        """Build flags from get-work-items tool arguments."""
        return cls(
            output_format=arguments.get("format"),
            force=arguments.get("force") is True,
            group_by=arguments.get("groupBy"),
            compact=bool(arguments.get("compact")),
            requested_fields=arguments.get("fields") or None,
        )

    @property
    def wants_json(self) -> bool:
        return self.output_format == FORMAT_JSON


class ResponseThresholds(BaseModel):
    """Size limits, measured in UTF-8 bytes of the serialized result."""

    token_limit_bytes: int = 200_000
    size_warning_bytes: int = 150_000
    summary_threshold_items: int = 20

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResponseThresholds":
        return cls(
            token_limit_bytes=settings.token_limit_bytes,
            size_warning_bytes=settings.size_warning_bytes,
            summary_threshold_items=settings.summary_threshold_items,
        )


class ShapedResponse(BaseModel):
    """Response text plus metadata describing how it was shaped."""

    text: str
    mode: str
    metadata: Optional[dict] = None


class ShapingInput(BaseModel):
    """Everything the shaping rules look at for one result."""

    result: dict
    serialized: str
    size_bytes: int
    flags: ResponseFlags
    thresholds: ResponseThresholds

    @property
    def records(self) -> list:
        value = self.result.get("value")
        return value if isinstance(value, list) else []

    @property
    def item_count(self) -> int:
        return len(self.records)


def serialize_result(result: Any) -> str:
    """Canonical JSON form of a result, used for both output and sizing."""
    return json.dumps(result, indent=2, ensure_ascii=False)


def measure_size(serialized: str) -> int:
    return len(serialized.encode("utf-8"))


# ============================================================================
# Predicates
# ============================================================================

def exceeds_token_limit(shaping: ShapingInput) -> bool:
    return (
        shaping.size_bytes > shaping.thresholds.token_limit_bytes
        and not shaping.flags.wants_json
        and not shaping.flags.force
    )


def wants_summary(shaping: ShapingInput) -> bool:
    triggered = (
        shaping.flags.output_format == FORMAT_SUMMARY
        or shaping.item_count > shaping.thresholds.summary_threshold_items
        or shaping.size_bytes > shaping.thresholds.size_warning_bytes
    )
    return triggered and shaping.item_count > 0 and not shaping.flags.wants_json


def exceeds_size_warning(shaping: ShapingInput) -> bool:
    return shaping.size_bytes > shaping.thresholds.size_warning_bytes


def always(shaping: ShapingInput) -> bool:
    return True


# ============================================================================
# Builders
# ============================================================================

def build_truncated_summary(shaping: ShapingInput) -> ShapedResponse:
    logger.warning(
        f"Result exceeds token limit ({shaping.size_bytes} bytes). Applying automatic summary format."
    )
    return ShapedResponse(
        text=format_work_items_summary(shaping.records, shaping.flags.group_by),
        mode="exceeded-token-limit",
        metadata={
            "originalSize": shaping.size_bytes,
            "truncated": True,
            "reason": "exceeded-token-limit",
            "itemCount": shaping.item_count,
            "suggestions": list(TRUNCATION_SUGGESTIONS),
        },
    )


def build_summary(shaping: ShapingInput) -> ShapedResponse:
    logger.info(f"Using summary format for {shaping.item_count} items ({shaping.size_bytes} bytes)")
    return ShapedResponse(
        text=format_work_items_summary(shaping.records, shaping.flags.group_by),
        mode="summary",
        metadata={
            "format": FORMAT_SUMMARY,
            "totalItems": shaping.item_count,
            "estimatedFullSize": shaping.size_bytes,
            "hint": SUMMARY_HINT,
        },
    )


def size_warning_suggestions(shaping: ShapingInput) -> list[str]:
    """Suggestions for shrinking a large result, skipping options already in use."""
    suggestions = []
    if not shaping.flags.compact:
        suggestions.append("Add compact: true to reduce user field sizes (70% reduction)")
    if not shaping.flags.output_format:
        suggestions.append('Add format: "summary" for readable summary')
    if not shaping.flags.requested_fields and shaping.records:
        first = shaping.records[0]
        fields = first.get("fields") if isinstance(first, dict) else None
        if isinstance(fields, dict):
            suggestions.append(f"Specify only needed fields ({len(fields)} fields returned)")
    return suggestions


def build_size_warning(shaping: ShapingInput) -> ShapedResponse:
    logger.warning(f"Large result detected ({shaping.size_bytes} bytes)")
    return ShapedResponse(
        text=shaping.serialized,
        mode="large-result",
        metadata={
            "size": shaping.size_bytes,
            "warning": "large-result",
            "suggestions": size_warning_suggestions(shaping),
        },
    )


def build_raw(shaping: ShapingInput) -> ShapedResponse:
    return ShapedResponse(text=shaping.serialized, mode=FORMAT_JSON)


ShapingRule = tuple[Callable[[ShapingInput], bool], Callable[[ShapingInput], ShapedResponse]]

# Evaluated in order; the first matching predicate picks the builder
SHAPING_RULES: tuple[ShapingRule, ...] = (
    (exceeds_token_limit, build_truncated_summary),
    (wants_summary, build_summary),
    (exceeds_size_warning, build_size_warning),
    (always, build_raw),
)


def shape_work_items_response(
    result: dict,
    flags: Optional[ResponseFlags] = None,
    thresholds: Optional[ResponseThresholds] = None,
) -> ShapedResponse:
    """Choose the output shape for a work item result.

    Args:
        result: Fetch result ({"count": n, "value": [records...]}, optionally
            with "_pagination"), already compacted if requested
        flags: Caller options (format, force, groupBy, ...)
        thresholds: Size limits to apply

    Returns:
        ShapedResponse with the text to return and the metadata of the chosen path
    """
    serialized = serialize_result(result)
    shaping = ShapingInput(
        result=result,
        serialized=serialized,
        size_bytes=measure_size(serialized),
        flags=flags or ResponseFlags(),
        thresholds=thresholds or ResponseThresholds(),
    )
    logger.debug(f"Result size: {shaping.size_bytes} bytes ({shaping.item_count} items)")

    # SHAPING_RULES ends with a catch-all, so next() always finds a builder
    build = next(build for predicate, build in SHAPING_RULES if predicate(shaping))
    return build(shaping)


def shape_aggregation_response(records: list, aggregation_type: Optional[str] = None) -> ShapedResponse:
    """Aggregate records and render the statistics as JSON.

    Raises:
        AggregationError: If aggregation_type is not a known type
    """
    if not records:
        return ShapedResponse(
            text=serialize_result({"message": "No work items found", "totalWorkItems": 0}),
            mode="aggregation",
        )

    aggregated = aggregate_work_items(records, aggregation_type)
    return ShapedResponse(
        text=serialize_result(aggregated.model_dump(by_alias=True)),
        mode="aggregation",
    )
