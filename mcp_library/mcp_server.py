"""
FastMCP Server for browsing the media library

Exposes the browse tree as MCP tools: open any node by id, check the load
state, and force a rebuild after the catalog or playlists changed.

To connect to Claude Desktop (stdio), add to claude_desktop_config.json:
{
  "mcpServers": {
    "mcp-library": {
      "command": "uv",
      "args": ["run", "--project", "/path/to/mcp_library", "python", "-m", "mcp_library.mcp_server"],
      "env": {"MCP_LIBRARY_CATALOG": "rekordbox"}
    }
  }
}

To run over HTTP (SSE):
  python -m mcp_library.mcp_server --transport sse [--host 127.0.0.1] [--port 8000]
"""

import signal
import sys
from typing import Any, Dict, Optional

from fastmcp import FastMCP
from loguru import logger

from .browse_tree import ROOT
from .library import MediaLibrary
from .models import item_to_dict

# ---------------------------------------------------------------------------
# Global state
# ---------------------------------------------------------------------------

mcp = FastMCP("MCP Library")

library: Optional[MediaLibrary] = None


async def _ensure_initialized() -> MediaLibrary:
    """Lazy-initialize the library on first tool call."""
    global library
    if library is not None and library.tree is not None:
        return library

    logger.info("Initializing media library MCP server...")
    if library is None:
        library = MediaLibrary.from_env()
    await library.refresh()
    logger.info(f"MCP server ready: {library.status().track_count} tracks")
    return library


async def _reload() -> MediaLibrary:
    """Rebuild the tree; a cold server builds once instead of twice."""
    was_built = library is not None and library.tree is not None
    lib = await _ensure_initialized()
    if was_built:
        await lib.refresh()
    return lib


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

@mcp.tool()
async def browse(node_id: str = ROOT) -> Dict[str, Any]:
    """
    List the children of a browse tree node.

    Args:
        node_id: Node to open. "/" is the root; its children are the
            categories "__RECOMMENDED__", "__ALBUMS__", "__ARTISTS__" and
            "__PLAYLISTS__". Album and artist ids come from the "id" field
            of the items listed under those categories; playlist ids are the
            playlist names.

    Returns:
        {"node_id", "count", "children"} where each child carries
        "playable": true for tracks and false for nodes that can be browsed
        further, or {"error": ...} when the node does not exist.
    """
    lib = await _ensure_initialized()
    children = lib.children(node_id)
    if children is None:
        return {"error": f"Unknown node id: {node_id!r}"}
    return {
        "node_id": node_id,
        "count": len(children),
        "children": [item_to_dict(c) for c in children],
    }


@mcp.tool()
async def library_status() -> Dict[str, Any]:
    """
    Report the catalog load state and browse tree size.

    Returns:
        state ("initialized" or "error"), track_count, playlist_count,
        node_count and built_at (ISO-8601 UTC).
    """
    lib = await _ensure_initialized()
    return lib.status().model_dump()


@mcp.tool()
async def reload_library() -> Dict[str, Any]:
    """
    Reload the track catalog and playlists and rebuild the browse tree.

    Returns:
        The library status after the rebuild.
    """
    lib = await _reload()
    return lib.status().model_dump()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Run the MCP server."""
    import argparse

    def handle_shutdown(sig, frame):
        logger.info("Shutting down MCP server...")
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    parser = argparse.ArgumentParser()
    parser.add_argument("--transport", default="stdio", choices=["stdio", "sse"])
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    logger.info("Starting MCP Library server...")

    if args.transport == "sse":
        mcp.run(transport="sse", host=args.host, port=args.port)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
