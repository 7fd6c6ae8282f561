"""Azure DevOps MCP Server - Model Context Protocol integration.

This package exposes Azure DevOps work items, repositories, builds and
pipelines to AI assistants over MCP. Work item responses are shaped by
devops_core so large query results stay within a model's context.

Modules:
- server: stdio MCP server implementation
- client: async Azure DevOps REST client
- formatters: Response formatting utilities
- tools: MCP tool definitions
- handlers: Tool implementation handlers
"""

__version__ = "1.0.0"

from . import formatters
from . import tools
from . import handlers

__all__ = ["formatters", "tools", "handlers", "__version__"]
