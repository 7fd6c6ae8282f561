"""WIQL query helpers: field-name normalization and query-text cleanup.

Azure DevOps rejects WIQL that references fields by bare or wrongly
namespaced names (TF51005 "field does not exist"). Callers - people and
models alike - routinely write ``[ClosedDate]`` or ``[System.ClosedDate]``
where the backend wants ``[Microsoft.VSTS.Common.ClosedDate]``. The
normalizer rewrites those references before the query is sent.

Other helpers here deal with SQL habits that WIQL does not support:
- inline ``TOP N`` (must be passed as the ``$top`` URL parameter instead)
- a bare ID list passed where a query was expected
"""
import logging
import re
from types import MappingProxyType
from typing import Optional

from pydantic import BaseModel

logger = logging.getLogger("devops-mcp.wiql")


SYSTEM_PREFIX = "System."
VSTS_PREFIX = "Microsoft.VSTS."

# Alias -> canonical field reference. Matching is case-insensitive.
FIELD_ALIASES: MappingProxyType = MappingProxyType({
    # Date fields - commonly confused with the System.* prefix
    "ClosedDate": "Microsoft.VSTS.Common.ClosedDate",
    "ResolvedDate": "Microsoft.VSTS.Common.ResolvedDate",
    "ActivatedDate": "Microsoft.VSTS.Common.ActivatedDate",
    "StateChangeDate": "Microsoft.VSTS.Common.StateChangeDate",

    # Priority and severity
    "Priority": "Microsoft.VSTS.Common.Priority",
    "Severity": "Microsoft.VSTS.Common.Severity",
    "StackRank": "Microsoft.VSTS.Common.StackRank",
    "ValueArea": "Microsoft.VSTS.Common.ValueArea",

    # Scheduling
    "StoryPoints": "Microsoft.VSTS.Scheduling.StoryPoints",
    "Effort": "Microsoft.VSTS.Scheduling.Effort",
    "OriginalEstimate": "Microsoft.VSTS.Scheduling.OriginalEstimate",
    "RemainingWork": "Microsoft.VSTS.Scheduling.RemainingWork",
    "CompletedWork": "Microsoft.VSTS.Scheduling.CompletedWork",

    # Bug-specific
    "ReproSteps": "Microsoft.VSTS.TCM.ReproSteps",
    "SystemInfo": "Microsoft.VSTS.TCM.SystemInfo",

    # System fields people forget to prefix
    "Id": "System.Id",
    "Title": "System.Title",
    "State": "System.State",
    "AssignedTo": "System.AssignedTo",
    "CreatedDate": "System.CreatedDate",
    "CreatedBy": "System.CreatedBy",
    "ChangedDate": "System.ChangedDate",
    "ChangedBy": "System.ChangedBy",
    "WorkItemType": "System.WorkItemType",
    "Tags": "System.Tags",
    "IterationPath": "System.IterationPath",
    "AreaPath": "System.AreaPath",
    "Description": "System.Description",
    "History": "System.History",
    "TeamProject": "System.TeamProject",
    "Parent": "System.Parent",
    "BoardColumn": "System.BoardColumn",
    "BoardColumnDone": "System.BoardColumnDone",
})


def _build_alias_rules() -> tuple:
    """Compile (pattern, replacement, label) rules in alias-table order."""
    rules = []
    for alias, full_name in FIELD_ALIASES.items():
        escaped = re.escape(alias)
        replacement = f"[{full_name}]"

        # [alias] with no recognized namespace in front of it
        rules.append((
            re.compile(rf"\[(?!System\.|Microsoft\.VSTS\.){escaped}\]", re.IGNORECASE),
            replacement,
            f"[{alias}]",
        ))

        # [System.alias] when the field actually lives under Microsoft.VSTS.*
        if full_name.startswith(VSTS_PREFIX):
            rules.append((
                re.compile(rf"\[System\.{escaped}\]", re.IGNORECASE),
                replacement,
                f"[{SYSTEM_PREFIX}{alias}]",
            ))
    return tuple(rules)


_ALIAS_RULES = _build_alias_rules()

# Single-quoted literals escape quotes by doubling them ('it''s')
_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'|\"[^\"]*\"")
_TOP_CLAUSE = re.compile(r"\bTOP\s+(\d+)\b", re.IGNORECASE)
_ID_LIST = re.compile(r"^\s*\d+(\s*,\s*\d+)*\s*$")


class WiqlNormalization(BaseModel):
    """Result of normalizing a WIQL query."""

    query: str
    corrections: int = 0


def _split_literals(wiql: str) -> list[list]:
    """Split a query into [is_literal, text] segments, preserving every byte."""
    segments = []
    position = 0
    for match in _STRING_LITERAL.finditer(wiql):
        if match.start() > position:
            segments.append([False, wiql[position:match.start()]])
        segments.append([True, match.group(0)])
        position = match.end()
    if position < len(wiql):
        segments.append([False, wiql[position:]])
    return segments


def normalize_wiql_field_names(wiql: str) -> WiqlNormalization:
    """Rewrite aliased field references to their canonical names.

    Examples:
    - [ClosedDate] -> [Microsoft.VSTS.Common.ClosedDate]
    - [System.ClosedDate] -> [Microsoft.VSTS.Common.ClosedDate]
    - [Title] -> [System.Title]

    Text inside quoted string literals is left alone, and canonical
    references never match an alias rule, so normalizing twice gives the
    same string as normalizing once.

    Args:
        wiql: The WIQL query text

    Returns:
        WiqlNormalization with the corrected query and the number of
        distinct corrections applied
    """
    if not wiql:
        return WiqlNormalization(query=wiql)

    segments = _split_literals(wiql)
    corrections = 0

    for pattern, replacement, label in _ALIAS_RULES:
        changed = False
        for segment in segments:
            is_literal, text = segment
            if is_literal:
                continue
            rewritten = pattern.sub(replacement, text)
            if rewritten != text:
                segment[1] = rewritten
                changed = True

        if changed:
            corrections += 1
            logger.info(f"Corrected WIQL field name: {label} -> {replacement}")

    if corrections:
        logger.info(f"Applied {corrections} field name correction(s) to WIQL query")

    return WiqlNormalization(
        query="".join(text for _, text in segments),
        corrections=corrections,
    )


def extract_wiql_top(wiql: str, default_top: int = 200) -> tuple[str, int]:
    """Strip an inline TOP N clause and return it as a separate limit.

    The /wit/wiql endpoint does not accept TOP inside the query text
    (TF51006); the limit has to travel as the ``$top`` URL parameter.

    Quoted string literals are never searched or reformatted.

    Returns:
        (query without the TOP clause, limit to pass as $top)
    """
    segments = _split_literals(wiql)
    top = None

    for segment in segments:
        is_literal, text = segment
        if is_literal:
            continue
        match = _TOP_CLAUSE.search(text)
        if match:
            top = int(match.group(1))
            segment[1] = _TOP_CLAUSE.sub("", text, count=1)
            break

    if top is None:
        return wiql, default_top

    cleaned = "".join(
        text if is_literal else re.sub(r"\s{2,}", " ", text)
        for is_literal, text in segments
    ).strip()
    logger.debug(f"Stripped TOP {top} from WIQL query text; using $top parameter instead")
    return cleaned, top


def parse_id_list(text: Optional[str]) -> Optional[list[int]]:
    """Return the IDs if ``text`` is a plain comma-separated ID list, else None."""
    if not text or not _ID_LIST.match(text):
        return None
    return [int(part.strip()) for part in text.split(",")]


def escape_wiql_value(value: str) -> str:
    """Escape a value for a single-quoted WIQL string literal."""
    return value.replace("'", "''")
