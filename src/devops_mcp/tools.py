"""MCP tool definitions for the Azure DevOps server."""

from mcp.types import Tool


def get_tools() -> list[Tool]:
    """Get the list of all MCP tools for Azure DevOps."""
    return [
        # ============================================================================
        # Work Item Query Tools
        # ============================================================================
        Tool(
            name="get-work-items",
            description="Get work items by WIQL query or by ID. "
                       "Field names are normalized automatically ([ClosedDate] -> [Microsoft.VSTS.Common.ClosedDate]) "
                       "and inline TOP N is moved to the $top parameter. "
                       "Large results come back as a grouped summary; use format='json' to keep JSON, "
                       "force=true to bypass the hard size limit, and page/pageSize to fetch one page at a time. "
                       "For statistics, prefer get-work-item-aggregations.",
            inputSchema={
                "type": "object",
                "properties": {
                    "wiql": {
                        "type": "string",
                        "description": "WIQL query, e.g. SELECT [System.Id] FROM WorkItems WHERE [System.State] = 'Active'. "
                                       "A bare ID list ('5' or '5, 6') is treated as an ID lookup."
                    },
                    "ids": {
                        "type": "array",
                        "items": {"type": "integer"},
                        "description": "Specific work item IDs to retrieve"
                    },
                    "fields": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Fields to include in the response (default: all)"
                    },
                    "compact": {
                        "type": "boolean",
                        "description": "Reduce identity fields (AssignedTo, CreatedBy, ChangedBy) to display names"
                    },
                    "format": {
                        "type": "string",
                        "enum": ["json", "summary"],
                        "description": "Output format (default: chosen by result size)"
                    },
                    "force": {
                        "type": "boolean",
                        "description": "Skip the automatic summary when the result exceeds the size limit"
                    },
                    "groupBy": {
                        "type": "string",
                        "description": "Field to group the summary by (default: System.State)"
                    },
                    "page": {
                        "type": "integer",
                        "minimum": 1,
                        "description": "Page number, starting at 1"
                    },
                    "pageSize": {
                        "type": "integer",
                        "minimum": 1,
                        "description": "Items per page (default: 50)"
                    }
                }
            }
        ),
        Tool(
            name="get-work-item-aggregations",
            description="Aggregate the work items matching a WIQL query instead of returning them. "
                       "Types: contributors (unique people by role), by-state, by-type, by-assigned.",
            inputSchema={
                "type": "object",
                "properties": {
                    "wiql": {
                        "type": "string",
                        "description": "WIQL query selecting the work items to aggregate"
                    },
                    "type": {
                        "type": "string",
                        "enum": ["contributors", "by-state", "by-type", "by-assigned"],
                        "description": "Aggregation type (default: contributors)"
                    }
                },
                "required": ["wiql"]
            }
        ),

        # ============================================================================
        # Work Item Change Tools
        # ============================================================================
        Tool(
            name="create-work-item",
            description="Create a new work item, optionally as a child of an existing one.",
            inputSchema={
                "type": "object",
                "properties": {
                    "type": {
                        "type": "string",
                        "description": "Work item type (e.g. Task, Bug, User Story)"
                    },
                    "title": {
                        "type": "string",
                        "description": "Work item title"
                    },
                    "description": {
                        "type": "string",
                        "description": "Work item description (HTML allowed)"
                    },
                    "assignedTo": {
                        "type": "string",
                        "description": "User to assign the work item to"
                    },
                    "tags": {
                        "type": "string",
                        "description": "Semicolon-separated tags"
                    },
                    "state": {
                        "type": "string",
                        "description": "Initial state"
                    },
                    "iterationPath": {
                        "type": "string",
                        "description": "Iteration path, e.g. Project\\Sprint 3"
                    },
                    "parent": {
                        "type": "integer",
                        "description": "ID of the parent work item"
                    },
                    "fields": {
                        "type": "object",
                        "description": "Additional fields; bare system names (Title, AreaPath, ...) get the System. prefix"
                    }
                },
                "required": ["type", "title"]
            }
        ),
        Tool(
            name="update-work-item",
            description="Update fields or the parent of an existing work item.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {
                        "type": "integer",
                        "description": "Work item ID"
                    },
                    "title": {
                        "type": "string",
                        "description": "New title"
                    },
                    "description": {
                        "type": "string",
                        "description": "New description"
                    },
                    "assignedTo": {
                        "type": "string",
                        "description": "User to assign the work item to"
                    },
                    "tags": {
                        "type": "string",
                        "description": "Semicolon-separated tags"
                    },
                    "state": {
                        "type": "string",
                        "description": "New state"
                    },
                    "iterationPath": {
                        "type": "string",
                        "description": "New iteration path"
                    },
                    "parent": {
                        "type": "integer",
                        "description": "ID of the new parent work item"
                    },
                    "fields": {
                        "type": "object",
                        "description": "Additional fields to update"
                    }
                },
                "required": ["id"]
            }
        ),
        Tool(
            name="add-work-item-comment",
            description="Add a comment to an existing work item.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {
                        "type": "integer",
                        "description": "Work item ID"
                    },
                    "comment": {
                        "type": "string",
                        "description": "Comment text (HTML allowed)"
                    }
                },
                "required": ["id", "comment"]
            }
        ),

        # ============================================================================
        # Repository, Build and Pipeline Tools
        # ============================================================================
        Tool(
            name="get-repositories",
            description="List the Git repositories of the project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "includeLinks": {
                        "type": "boolean",
                        "description": "Include the _links block of each repository"
                    }
                }
            }
        ),
        Tool(
            name="get-builds",
            description="List recent builds, optionally for specific build definitions.",
            inputSchema={
                "type": "object",
                "properties": {
                    "definitionIds": {
                        "type": "array",
                        "items": {"type": "integer"},
                        "description": "Build definition IDs to filter by"
                    },
                    "top": {
                        "type": "integer",
                        "description": "Number of builds to return (default: 10)"
                    }
                }
            }
        ),
        Tool(
            name="get-pull-requests",
            description="List pull requests across the project's repositories.",
            inputSchema={
                "type": "object",
                "properties": {
                    "status": {
                        "type": "string",
                        "enum": ["active", "completed", "abandoned", "all"],
                        "description": "Pull request status (default: active)"
                    },
                    "createdBy": {
                        "type": "string",
                        "description": "Creator identity ID"
                    },
                    "repositoryId": {
                        "type": "string",
                        "description": "Repository ID"
                    },
                    "top": {
                        "type": "integer",
                        "description": "Number of pull requests to return (default: 25)"
                    }
                }
            }
        ),
        Tool(
            name="trigger-pipeline",
            description="Queue a build pipeline by definition ID or name.",
            inputSchema={
                "type": "object",
                "properties": {
                    "definitionId": {
                        "type": "integer",
                        "description": "Build definition ID"
                    },
                    "definitionName": {
                        "type": "string",
                        "description": "Build definition name (case-insensitive), used when definitionId is not given"
                    },
                    "sourceBranch": {
                        "type": "string",
                        "description": "Branch to build; 'main' becomes refs/heads/main"
                    },
                    "parameters": {
                        "type": "object",
                        "description": "Pipeline parameters"
                    }
                }
            }
        ),
        Tool(
            name="get-pipeline-status",
            description="Get the status of a build, or the 5 most recent builds of a definition.",
            inputSchema={
                "type": "object",
                "properties": {
                    "buildId": {
                        "type": "integer",
                        "description": "Build ID"
                    },
                    "definitionId": {
                        "type": "integer",
                        "description": "Build definition ID, used when buildId is not given"
                    },
                    "includeTimeline": {
                        "type": "boolean",
                        "description": "Include the build timeline (stages, jobs, tasks)"
                    }
                }
            }
        ),
    ]
