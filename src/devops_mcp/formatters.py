"""Shared formatting functions for MCP responses.

Work item queries go through devops_core.response_shaping; everything here
turns raw Azure DevOps REST payloads into the smaller documents the tools
return.
"""
import json
import re
from typing import Optional

from devops_core.fields import display_name
from devops_core.response_shaping import ShapedResponse, serialize_result

PARENT_LINK_TYPE = "System.LinkTypes.Hierarchy-Reverse"


def format_shaped_response(shaped: ShapedResponse) -> str:
    """Response text, followed by the shaping metadata when there is any."""
    if not shaped.metadata:
        return shaped.text
    return f"{shaped.text}\n\n_metadata:\n{json.dumps(shaped.metadata, indent=2, ensure_ascii=False)}"


def format_json(document) -> str:
    return serialize_result(document)


def _web_url(resource: dict) -> Optional[str]:
    return ((resource.get("_links") or {}).get("web") or {}).get("href")


def extract_parent_relation(work_item: dict) -> Optional[dict]:
    """Parent link of a work item, with the parent ID parsed from its URL."""
    for relation in work_item.get("relations") or []:
        if relation.get("rel") != PARENT_LINK_TYPE:
            continue
        match = re.search(r"workItems/(\d+)$", relation.get("url", ""), re.IGNORECASE)
        return {
            "id": int(match.group(1)) if match else None,
            "url": relation.get("url"),
            "comment": (relation.get("attributes") or {}).get("comment"),
        }
    return None


def format_work_item_change(work_item: dict, operation_count: int, message: str) -> dict:
    """Result document for create-work-item and update-work-item."""
    fields = work_item.get("fields") or {}
    parent = extract_parent_relation(work_item)

    return {
        "success": True,
        "workItem": {
            "id": work_item.get("id"),
            "title": fields.get("System.Title"),
            "type": fields.get("System.WorkItemType"),
            "state": fields.get("System.State"),
            "parent": fields.get("System.Parent") or (parent or {}).get("id"),
            "parentRelation": parent,
            "iterationPath": fields.get("System.IterationPath"),
            "assignedTo": display_name(fields.get("System.AssignedTo")),
            "url": ((work_item.get("_links") or {}).get("html") or {}).get("href"),
            "relations": len(work_item.get("relations") or []),
        },
        "operations": operation_count,
        "message": message,
    }


def format_comment(comment: dict, work_item_id: int) -> dict:
    return {
        "success": True,
        "comment": {
            "id": comment.get("id"),
            "workItemId": work_item_id,
            "text": comment.get("text"),
            "createdBy": display_name(comment.get("createdBy")),
            "createdDate": comment.get("createdDate"),
            "url": comment.get("url"),
        },
        "message": f"Successfully added comment to work item {work_item_id}",
    }


def format_repository(repo: dict, include_links: bool = False) -> dict:
    formatted = {
        "id": repo.get("id"),
        "name": repo.get("name"),
        "url": repo.get("webUrl"),
        "defaultBranch": repo.get("defaultBranch"),
        "size": repo.get("size"),
    }
    if include_links:
        formatted["links"] = repo.get("_links")
    return formatted


def format_build(build: dict) -> dict:
    """Format a build for the build list."""
    definition = build.get("definition") or {}
    return {
        "id": build.get("id"),
        "buildNumber": build.get("buildNumber"),
        "status": build.get("status"),
        "result": build.get("result"),
        "definition": {"id": definition.get("id"), "name": definition.get("name")},
        "startTime": build.get("startTime"),
        "finishTime": build.get("finishTime"),
        "url": _web_url(build),
    }


def format_build_details(build: dict, timeline: Optional[dict] = None) -> dict:
    """Format a single build, optionally with its timeline records."""
    definition = build.get("definition") or {}
    requested_by = build.get("requestedBy") or {}
    details = {
        "id": build.get("id"),
        "buildNumber": build.get("buildNumber"),
        "status": build.get("status"),
        "result": build.get("result"),
        "definition": {"id": definition.get("id"), "name": definition.get("name")},
        "sourceBranch": build.get("sourceBranch"),
        "sourceVersion": build.get("sourceVersion"),
        "queueTime": build.get("queueTime"),
        "startTime": build.get("startTime"),
        "finishTime": build.get("finishTime"),
        "url": _web_url(build),
        "requestedBy": {
            "displayName": requested_by.get("displayName"),
            "uniqueName": requested_by.get("uniqueName"),
        },
    }
    if timeline:
        details["timeline"] = [
            {
                "name": record.get("name"),
                "type": record.get("type"),
                "state": record.get("state"),
                "result": record.get("result"),
                "startTime": record.get("startTime"),
                "finishTime": record.get("finishTime"),
                "percentComplete": record.get("percentComplete"),
            }
            for record in timeline.get("records") or []
        ]
    return details


def format_recent_build(build: dict) -> dict:
    return {
        "id": build.get("id"),
        "buildNumber": build.get("buildNumber"),
        "status": build.get("status"),
        "result": build.get("result"),
        "sourceBranch": build.get("sourceBranch"),
        "queueTime": build.get("queueTime"),
        "startTime": build.get("startTime"),
        "finishTime": build.get("finishTime"),
        "url": _web_url(build),
    }


def format_queued_build(build: dict, fallback_url: str) -> dict:
    """Result document for trigger-pipeline."""
    definition = build.get("definition") or {}
    requested_by = build.get("requestedBy") or {}
    return {
        "success": True,
        "build": {
            "id": build.get("id"),
            "buildNumber": build.get("buildNumber"),
            "status": build.get("status"),
            "queueTime": build.get("queueTime"),
            "definition": {"id": definition.get("id"), "name": definition.get("name")},
            "sourceBranch": build.get("sourceBranch"),
            "url": _web_url(build) or fallback_url,
            "requestedBy": {
                "displayName": requested_by.get("displayName") or "API Request",
                "uniqueName": requested_by.get("uniqueName") or "api",
            },
        },
    }


def format_pull_request(pr: dict, fallback_url: str) -> dict:
    """Format a pull request; ``fallback_url`` is used when the payload has no web link."""
    created_by = pr.get("createdBy") or {}
    repository = pr.get("repository") or {}
    return {
        "id": pr.get("pullRequestId"),
        "title": pr.get("title"),
        "description": pr.get("description"),
        "status": pr.get("status"),
        "createdBy": {
            "displayName": created_by.get("displayName"),
            "uniqueName": created_by.get("uniqueName"),
        },
        "creationDate": pr.get("creationDate"),
        "repository": {"id": repository.get("id"), "name": repository.get("name")},
        "sourceRefName": pr.get("sourceRefName"),
        "targetRefName": pr.get("targetRefName"),
        "url": _web_url(pr) or fallback_url,
        "isDraft": pr.get("isDraft") or False,
        "mergeStatus": pr.get("mergeStatus"),
    }
