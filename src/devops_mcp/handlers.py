"""MCP tool handlers for Azure DevOps.

All handlers follow a consistent pattern:
- Accept: arguments dict, AzureDevOpsClient, and the server Settings
- Return: list[TextContent]
- Raise module exceptions for caller errors (ToolArgumentError,
  PaginationError, AggregationError) and AzureDevOpsAPIError for backend
  failures; server.call_tool turns them into error text
- Log all operations for debugging

Work item queries run through devops_core: WIQL normalization, pagination
of the ID list, compaction and finally size-aware response shaping. The
remaining tools are thin wrappers over the REST API.
"""
import json
import logging
from typing import Optional

from mcp.types import TextContent

from devops_core.aggregation import get_aggregation_fields, validate_aggregation_type
from devops_core.compaction import compact_work_items
from devops_core.config import Settings
from devops_core.pagination import paginate, resolve_page_request
from devops_core.response_shaping import (
    ResponseFlags,
    ResponseThresholds,
    shape_aggregation_response,
    shape_work_items_response,
)
from devops_core.wiql import escape_wiql_value, extract_wiql_top, normalize_wiql_field_names, parse_id_list

from . import formatters
from .client import AzureDevOpsAPIError, AzureDevOpsClient

logger = logging.getLogger("devops-mcp.handlers")

DEFAULT_QUERY_TOP = 50
DEFAULT_BUILDS_TOP = 10
DEFAULT_PULL_REQUESTS_TOP = 25
RECENT_BUILDS_TOP = 5
COMMENTS_API_VERSION = "6.0-preview.4"

# Bare field names that get the System. prefix in create/update field maps
KNOWN_SYSTEM_FIELDS = ("Title", "Description", "State", "AssignedTo", "Tags", "IterationPath", "AreaPath")


class ToolArgumentError(ValueError):
    """Raised when a tool is called with missing or invalid arguments."""

    def __init__(self, message: str, argument: Optional[str] = None):
        super().__init__(message)
        self.argument = argument


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


# ============================================================================
# Work Item Query Handlers
# ============================================================================

def _default_query(project: str) -> str:
    return (
        "SELECT [System.Id], [System.Title], [System.State], [System.AssignedTo] "
        f"FROM WorkItems WHERE [System.TeamProject] = '{escape_wiql_value(project)}' "
        "ORDER BY [System.ChangedDate] DESC"
    )


async def _query_ids(client: AzureDevOpsClient, wiql: str, settings: Settings) -> list[int]:
    """Clean up and run a caller-supplied WIQL query."""
    query, top = extract_wiql_top(wiql, settings.default_wiql_top)
    normalized = normalize_wiql_field_names(query)
    return await client.run_wiql(normalized.query, top)


async def handle_get_work_items(
    arguments: dict,
    client: AzureDevOpsClient,
    settings: Settings,
) -> list[TextContent]:
    """Query work items by WIQL or ID and shape the result by size.

    SOURCES (first that applies):
    • wiql: a WIQL query; a bare "5" or "5, 6" is treated as an ID list
    • ids: explicit work item IDs
    • neither: the 50 most recently changed items in the project

    PAGINATION:
    • page / pageSize slice the matching IDs before anything is fetched
    • the result then carries a _pagination block (page, pageSize,
      totalItems, totalPages, hasNextPage, hasPreviousPage)

    OUTPUT:
    • JSON for small results, a grouped text summary for large ones
    • format="json" keeps JSON, force=true skips the hard size cut-off
    """
    flags = ResponseFlags.from_arguments(arguments)
    page_request = resolve_page_request(
        arguments.get("page"), arguments.get("pageSize"), settings.default_page_size
    )

    wiql = arguments.get("wiql")
    ids = list(arguments.get("ids") or [])
    fields = flags.requested_fields

    inline_ids = parse_id_list(wiql)
    if inline_ids:
        logger.info(f"Detected plain ID(s) in wiql argument: {inline_ids}. Treating as ID lookup.")
        ids = list(dict.fromkeys(ids + inline_ids))
        wiql = None

    if wiql:
        ids = await _query_ids(client, wiql, settings)
    elif not ids:
        ids = await client.run_wiql(_default_query(client.project), DEFAULT_QUERY_TOP)
        fields = None

    pagination = None
    if page_request:
        page = paginate(ids, *page_request)
        ids = page.items
        pagination = page.metadata()
        logger.info(f"Returning page {page.page} of {page.total_pages} ({len(ids)} of {page.total_items} items)")

    if ids:
        result = await client.fetch_work_items_by_ids(ids, fields)
    else:
        result = {"count": 0, "value": []}

    if pagination:
        result["_pagination"] = pagination

    result["value"] = compact_work_items(result["value"], flags.compact)

    shaped = shape_work_items_response(result, flags, ResponseThresholds.from_settings(settings))
    return _text(formatters.format_shaped_response(shaped))


async def handle_get_work_item_aggregations(
    arguments: dict,
    client: AzureDevOpsClient,
    settings: Settings,
) -> list[TextContent]:
    """Aggregate the work items matching a WIQL query.

    Types: contributors (default), by-state, by-type, by-assigned.
    Only the fields the aggregation needs are fetched.
    """
    wiql = arguments.get("wiql")
    if not wiql:
        raise ToolArgumentError("WIQL query is required for aggregations", argument="wiql")

    aggregation_type = validate_aggregation_type(arguments.get("type"))

    ids = await _query_ids(client, wiql, settings)
    records = []
    if ids:
        result = await client.fetch_work_items_by_ids(ids, get_aggregation_fields(aggregation_type))
        records = result["value"]

    shaped = shape_aggregation_response(records, aggregation_type)
    return _text(shaped.text)


# ============================================================================
# Work Item Change Handlers
# ============================================================================

def resolve_field_reference(field_name: str) -> str:
    """Full reference name for a field in a create/update field map.

    Known bare system fields get the System. prefix. Everything else,
    including Microsoft.VSTS.* and custom fields, is used as given.
    """
    if field_name.startswith(("System.", "Microsoft.")):
        return field_name
    if field_name in KNOWN_SYSTEM_FIELDS:
        return f"System.{field_name}"
    return field_name


def _parse_parent_id(value) -> int:
    try:
        parent_id = int(value)
    except (TypeError, ValueError):
        parent_id = 0
    if parent_id <= 0:
        raise ToolArgumentError(
            f"Invalid parent work item ID: {value}. Must be a positive integer.", argument="parent"
        )
    return parent_id


def build_patch_operations(arguments: dict, client: AzureDevOpsClient, op: str, action: str) -> list[dict]:
    """JSON Patch operations for the named and generic fields in ``arguments``."""
    named_fields = (
        ("title", "System.Title"),
        ("description", "System.Description"),
        ("assignedTo", "System.AssignedTo"),
        ("tags", "System.Tags"),
        ("state", "System.State"),
        ("iterationPath", "System.IterationPath"),
    )
    operations = [
        {"op": op, "path": f"/fields/{reference}", "value": arguments[key]}
        for key, reference in named_fields
        if arguments.get(key)
    ]

    if arguments.get("parent"):
        parent_id = _parse_parent_id(arguments["parent"])
        operations.append({
            "op": "add",
            "path": "/relations/-",
            "value": {
                "rel": formatters.PARENT_LINK_TYPE,
                "url": client.work_item_url(parent_id),
                "attributes": {"comment": f"Parent relationship set via MCP {action} command"},
            },
        })

    for field_name, value in (arguments.get("fields") or {}).items():
        reference = resolve_field_reference(field_name)
        logger.debug(f"Field resolution: {field_name} -> {reference}")
        operations.append({"op": op, "path": f"/fields/{reference}", "value": value})

    return operations


async def handle_create_work_item(
    arguments: dict,
    client: AzureDevOpsClient,
    settings: Settings,
) -> list[TextContent]:
    """Create a work item, optionally under a parent."""
    if not arguments.get("type") or not arguments.get("title"):
        raise ToolArgumentError("Work item type and title are required")

    operations = build_patch_operations(arguments, client, "add", "create-work-item")
    result = await client.request(
        "PATCH", f"/wit/workitems/${arguments['type']}", body=operations, json_patch=True
    )
    logger.info(f"Created {arguments['type']} {result.get('id')}: {arguments['title']}")

    if arguments.get("parent"):
        message = f"Work item created with parent relationship to work item {arguments['parent']}"
    else:
        message = f"Successfully created {arguments['type']}"
    return _text(formatters.format_json(formatters.format_work_item_change(result, len(operations), message)))


async def handle_update_work_item(
    arguments: dict,
    client: AzureDevOpsClient,
    settings: Settings,
) -> list[TextContent]:
    """Update fields or the parent of an existing work item."""
    work_item_id = arguments.get("id")
    if not work_item_id:
        raise ToolArgumentError("Work item ID is required", argument="id")

    operations = build_patch_operations(arguments, client, "replace", "update-work-item")
    if not operations:
        raise ToolArgumentError("At least one field to update must be provided")

    result = await client.request("PATCH", f"/wit/workitems/{work_item_id}", body=operations, json_patch=True)
    logger.info(f"Updated work item {work_item_id} ({len(operations)} operations)")

    if arguments.get("parent"):
        message = f"Work item updated with parent relationship to work item {arguments['parent']}"
    else:
        message = f"Successfully updated work item {work_item_id}"
    return _text(formatters.format_json(formatters.format_work_item_change(result, len(operations), message)))


async def handle_add_work_item_comment(
    arguments: dict,
    client: AzureDevOpsClient,
    settings: Settings,
) -> list[TextContent]:
    """Add a comment to a work item (comments API is preview-only)."""
    work_item_id = arguments.get("id")
    if not work_item_id:
        raise ToolArgumentError("Work item ID is required", argument="id")
    if not arguments.get("comment"):
        raise ToolArgumentError("Comment text is required", argument="comment")

    result = await client.request(
        "POST",
        f"/wit/workitems/{work_item_id}/comments",
        body={"text": arguments["comment"]},
        params={"api-version": COMMENTS_API_VERSION},
    )
    logger.info(f"Added comment {result.get('id')} to work item {work_item_id}")
    return _text(formatters.format_json(formatters.format_comment(result, work_item_id)))


# ============================================================================
# Repository, Build and Pipeline Handlers
# ============================================================================

async def handle_get_repositories(
    arguments: dict,
    client: AzureDevOpsClient,
    settings: Settings,
) -> list[TextContent]:
    result = await client.request("GET", "/git/repositories")
    repositories = [
        formatters.format_repository(repo, bool(arguments.get("includeLinks")))
        for repo in result.get("value") or []
    ]
    logger.info(f"Listed {len(repositories)} repositories")
    return _text(formatters.format_json({"count": len(repositories), "repositories": repositories}))


async def handle_get_builds(
    arguments: dict,
    client: AzureDevOpsClient,
    settings: Settings,
) -> list[TextContent]:
    """List recent builds, optionally for specific definitions."""
    params = {"$top": arguments.get("top") or DEFAULT_BUILDS_TOP}
    if arguments.get("definitionIds"):
        params["definitions"] = ",".join(str(definition_id) for definition_id in arguments["definitionIds"])

    result = await client.request("GET", "/build/builds", params=params)
    builds = [formatters.format_build(build) for build in result.get("value") or []]
    logger.info(f"Listed {len(builds)} builds")
    return _text(formatters.format_json({"count": len(builds), "builds": builds}))


async def handle_get_pull_requests(
    arguments: dict,
    client: AzureDevOpsClient,
    settings: Settings,
) -> list[TextContent]:
    """List pull requests; status defaults to active, "all" disables the filter."""
    status = arguments.get("status") or "active"
    params = {"$top": arguments.get("top") or DEFAULT_PULL_REQUESTS_TOP}
    if status != "all":
        params["searchCriteria.status"] = status
    if arguments.get("createdBy"):
        params["searchCriteria.creatorId"] = arguments["createdBy"]
    if arguments.get("repositoryId"):
        params["searchCriteria.repositoryId"] = arguments["repositoryId"]

    result = await client.request("GET", "/git/pullrequests", params=params)

    pull_requests = []
    for pr in result.get("value") or []:
        repository_name = (pr.get("repository") or {}).get("name")
        fallback_url = (
            f"{client.organization_url}/{client.project}/_git/{repository_name}"
            f"/pullrequest/{pr.get('pullRequestId')}"
        )
        pull_requests.append(formatters.format_pull_request(pr, fallback_url))

    logger.info(f"Listed {len(pull_requests)} pull requests (status: {status})")
    return _text(formatters.format_json({
        "count": len(pull_requests),
        "status": status,
        "pullRequests": pull_requests,
    }))


async def _find_definition_id(client: AzureDevOpsClient, definition_name: str) -> int:
    definitions = await client.request("GET", "/build/definitions")
    for definition in definitions.get("value") or []:
        if definition.get("name", "").lower() == definition_name.lower():
            return definition["id"]
    raise ToolArgumentError(f"Build definition '{definition_name}' not found", argument="definitionName")


async def handle_trigger_pipeline(
    arguments: dict,
    client: AzureDevOpsClient,
    settings: Settings,
) -> list[TextContent]:
    """Queue a build by definition ID or name."""
    definition_id = arguments.get("definitionId")
    if not definition_id and arguments.get("definitionName"):
        definition_id = await _find_definition_id(client, arguments["definitionName"])
    if not definition_id:
        raise ToolArgumentError("Either definitionId or definitionName must be provided")

    build_request = {"definition": {"id": definition_id}}

    source_branch = arguments.get("sourceBranch")
    if source_branch:
        build_request["sourceBranch"] = (
            source_branch if source_branch.startswith("refs/") else f"refs/heads/{source_branch}"
        )

    if isinstance(arguments.get("parameters"), dict):
        build_request["parameters"] = json.dumps(arguments["parameters"])

    result = await client.request("POST", "/build/builds", body=build_request)
    logger.info(f"Queued build {result.get('id')} for definition {definition_id}")

    fallback_url = f"{client.organization_url}/{client.project}/_build/results?buildId={result.get('id')}"
    return _text(formatters.format_json(formatters.format_queued_build(result, fallback_url)))


async def handle_get_pipeline_status(
    arguments: dict,
    client: AzureDevOpsClient,
    settings: Settings,
) -> list[TextContent]:
    """Status of one build (optionally with its timeline) or the recent builds of a definition."""
    build_id = arguments.get("buildId")
    definition_id = arguments.get("definitionId")

    if build_id:
        build = await client.request("GET", f"/build/builds/{build_id}")

        timeline = None
        if arguments.get("includeTimeline"):
            try:
                timeline = await client.request("GET", f"/build/builds/{build_id}/timeline")
            except AzureDevOpsAPIError as e:
                logger.warning(f"Failed to get timeline for build {build_id}, continuing without it: {e}")

        logger.info(f"Retrieved status of build {build_id}: {build.get('status')}")
        return _text(formatters.format_json(formatters.format_build_details(build, timeline)))

    if definition_id:
        result = await client.request(
            "GET", "/build/builds", params={"definitions": definition_id, "$top": RECENT_BUILDS_TOP}
        )
        builds = [formatters.format_recent_build(build) for build in result.get("value") or []]
        logger.info(f"Retrieved {len(builds)} recent builds for definition {definition_id}")
        return _text(formatters.format_json({"definitionId": definition_id, "recentBuilds": builds}))

    raise ToolArgumentError("Either buildId or definitionId must be provided")
