"""Azure DevOps MCP Server - expose work items, builds and pipelines to AI assistants."""
import sys
import asyncio
import logging
import traceback
from typing import Any

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from devops_core.config import get_settings, load_config

from . import tools
from . import handlers
from .client import AzureDevOpsAPIError, AzureDevOpsClient


# Configure logging to stderr (stdout carries the MCP protocol)
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr,
    force=True
)
logger = logging.getLogger("devops-mcp")


# MCP Server instance
app = Server("devops-mcp")

HANDLER_MAP = {
    # Work item queries
    "get-work-items": handlers.handle_get_work_items,
    "get-work-item-aggregations": handlers.handle_get_work_item_aggregations,
    # Work item changes
    "create-work-item": handlers.handle_create_work_item,
    "update-work-item": handlers.handle_update_work_item,
    "add-work-item-comment": handlers.handle_add_work_item_comment,
    # Repositories, builds and pipelines
    "get-repositories": handlers.handle_get_repositories,
    "get-builds": handlers.handle_get_builds,
    "get-pull-requests": handlers.handle_get_pull_requests,
    "trigger-pipeline": handlers.handle_trigger_pipeline,
    "get-pipeline-status": handlers.handle_get_pipeline_status,
}

NO_CONFIG_MESSAGE = (
    "Error: No Azure DevOps configuration found. Create a .azure-devops.json file with "
    "organizationUrl, project and pat in the working directory (or a parent directory), "
    "or point DEVOPS_MCP_CONFIG_PATH at one."
)


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available MCP tools for Azure DevOps."""
    return tools.get_tools()


# ============================================================================
# Tool Handlers
# ============================================================================


async def dispatch_tool(name: str, arguments: Any, client: AzureDevOpsClient, settings) -> list[TextContent]:
    """Run one tool call against ``client`` and turn failures into error text.

    Every error message passes through PAT redaction before it is logged or
    returned.
    """
    handler = HANDLER_MAP.get(name)
    if not handler:
        logger.warning(f"Unknown tool requested: {name}")
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    try:
        return await handler(dict(arguments or {}), client, settings)

    except AzureDevOpsAPIError as e:
        detail = client.sanitize(str(e))
        logger.error(f"Azure DevOps API error during {name} call:")
        logger.error(f"  Status: {e.status_code}")
        logger.error(f"  Detail: {detail}")
        return [TextContent(type="text", text=f"Error: Azure DevOps API error - {detail}")]

    except ValueError as e:
        # Caller errors: invalid arguments, page numbers, aggregation types
        detail = client.sanitize(str(e))
        logger.warning(f"Invalid arguments for {name}: {detail}")
        return [TextContent(type="text", text=f"Error: {detail}")]

    except httpx.RequestError as e:
        # Network/connection errors
        detail = client.sanitize(str(e))
        logger.error(f"Request error during {name} call:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {detail}")
        return [TextContent(type="text", text=f"Error: Connection failed - {detail}")]

    except Exception as e:
        # Catch-all for unexpected errors
        detail = client.sanitize(str(e))
        logger.error(f"Unexpected error during {name} call:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {detail}")
        logger.error(f"  Traceback:\n{client.sanitize(traceback.format_exc())}")
        return [TextContent(type="text", text=f"Error: {type(e).__name__}: {detail}")]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle MCP tool calls by delegating to the handlers."""
    logger.info(f"Tool call: {name} with arguments: {arguments}")

    settings = get_settings()
    config = load_config(settings)
    if config is None:
        return [TextContent(type="text", text=NO_CONFIG_MESSAGE)]

    async with AzureDevOpsClient(config, settings) as client:
        return await dispatch_tool(name, arguments, client, settings)


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
