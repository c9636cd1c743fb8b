"""MCP server for toolbox-mcp."""

import asyncio
import json
import logging
import os

from mcp.server import Server
from mcp.types import Tool, TextContent

from .config import storage_path_from_env
from .tools.build_toolbox import build_toolbox
from .tools.list_toolboxes import list_toolboxes
from .tools.get_category_tree import get_category_tree
from .tools.get_block import get_block, get_blocks
from .tools.search_blocks import search_blocks
from .tools.delete_toolbox import delete_toolbox


lib_logger = logging.getLogger("toolbox_mcp")

# Create server
server = Server("toolbox-mcp")


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="build_toolbox",
            description="Build the block toolbox of a symbol catalog. Synthesizes block definitions, arranges them into weighted categories, applies filters and saves the tree and search index.",
            inputSchema={
                "type": "object",
                "properties": {
                    "catalog_path": {
                        "type": "string",
                        "description": "Path to a catalog JSON file ({\"symbols\": [...]}), supports ~ for home directory"
                    },
                    "project": {
                        "type": "string",
                        "description": "Name to store the toolbox under (defaults to the catalog file name)"
                    },
                    "filters": {
                        "type": "object",
                        "description": "Optional visibility overrides: {\"namespaces\": {...}, \"blocks\": {...}, \"default_state\": \"visible\"|\"hidden\"|\"disabled\"}"
                    },
                    "category_mode": {
                        "type": "string",
                        "description": "How categories are laid out",
                        "enum": ["none", "basic", "all"],
                        "default": "basic"
                    },
                    "extensions": {
                        "type": "array",
                        "items": {"type": "object"},
                        "description": "Extension descriptors {name, color, namespace, advanced, label}"
                    },
                    "config": {
                        "type": "object",
                        "description": "Optional toolbox options (built-in categories on/off, extra blocks, debug blocks, namespace colors)"
                    }
                },
                "required": ["catalog_path"]
            }
        ),
        Tool(
            name="list_toolboxes",
            description="List all built toolboxes.",
            inputSchema={
                "type": "object",
                "properties": {}
            }
        ),
        Tool(
            name="get_category_tree",
            description="Get the category tree of a built toolbox, optionally rooted at one category.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": {
                        "type": "string",
                        "description": "Project name the toolbox was built for"
                    },
                    "category": {
                        "type": "string",
                        "description": "Optional category id (e.g., 'loops')"
                    },
                    "include_blocks": {
                        "type": "boolean",
                        "description": "Include block leaves, not just categories",
                        "default": True
                    }
                },
                "required": ["project"]
            }
        ),
        Tool(
            name="get_block",
            description="Get the toolbox leaf and compiled definition of a block.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": {
                        "type": "string",
                        "description": "Project name the toolbox was built for"
                    },
                    "block_id": {
                        "type": "string",
                        "description": "Block id (e.g., 'device_show_number')"
                    }
                },
                "required": ["project", "block_id"]
            }
        ),
        Tool(
            name="get_blocks",
            description="Get leaves and definitions of multiple blocks in one call.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": {
                        "type": "string",
                        "description": "Project name the toolbox was built for"
                    },
                    "block_ids": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "List of block ids to retrieve"
                    }
                },
                "required": ["project", "block_ids"]
            }
        ),
        Tool(
            name="search_blocks",
            description="Search the blocks reachable in a built toolbox, including blocks collapsed out of the visible tree.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": {
                        "type": "string",
                        "description": "Project name the toolbox was built for"
                    },
                    "query": {
                        "type": "string",
                        "description": "Search query (matches block ids, names, categories and descriptions)"
                    },
                    "category": {
                        "type": "string",
                        "description": "Optional category label to restrict results to"
                    },
                    "max_results": {
                        "type": "integer",
                        "description": "Maximum number of results to return",
                        "default": 10
                    }
                },
                "required": ["project", "query"]
            }
        ),
        Tool(
            name="delete_toolbox",
            description="Delete a built toolbox and drop its block cache.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project": {
                        "type": "string",
                        "description": "Project name the toolbox was built for"
                    }
                },
                "required": ["project"]
            }
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    storage_path = storage_path_from_env()

    try:
        if name == "build_toolbox":
            result = build_toolbox(
                catalog_path=arguments["catalog_path"],
                project=arguments.get("project"),
                filters=arguments.get("filters"),
                category_mode=arguments.get("category_mode", "basic"),
                extensions=arguments.get("extensions"),
                config=arguments.get("config"),
                storage_path=storage_path
            )
        elif name == "list_toolboxes":
            result = list_toolboxes(storage_path=storage_path)
        elif name == "get_category_tree":
            result = get_category_tree(
                project=arguments["project"],
                category=arguments.get("category"),
                include_blocks=arguments.get("include_blocks", True),
                storage_path=storage_path
            )
        elif name == "get_block":
            result = get_block(
                project=arguments["project"],
                block_id=arguments["block_id"],
                storage_path=storage_path
            )
        elif name == "get_blocks":
            result = get_blocks(
                project=arguments["project"],
                block_ids=arguments["block_ids"],
                storage_path=storage_path
            )
        elif name == "search_blocks":
            result = await search_blocks(
                project=arguments["project"],
                query=arguments["query"],
                category=arguments.get("category"),
                max_results=arguments.get("max_results", 10),
                storage_path=storage_path
            )
        elif name == "delete_toolbox":
            result = delete_toolbox(
                project=arguments["project"],
                storage_path=storage_path
            )
        else:
            result = {"error": f"Unknown tool: {name}"}

        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    except Exception as e:
        lib_logger.exception(f"Tool {name} failed")
        return [TextContent(type="text", text=json.dumps({"error": str(e)}, indent=2))]


async def run_server():
    """Run the MCP server."""
    from mcp.server.stdio import stdio_server

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


def main():
    """Main entry point."""
    level = logging.DEBUG if os.environ.get("TOOLBOX_DEBUG", "").lower() in ("1", "true", "yes") else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
