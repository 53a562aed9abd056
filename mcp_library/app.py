"""
FastAPI Web Application for the Media Library

Endpoints:
  GET  /api/library/status        - Load state and tree size
  POST /api/library/reload        - Reload catalog + playlists, rebuild tree
  GET  /api/browse?node_id=<id>   - Children of a node (default: root)

Node ids are passed as a query parameter because album and artist ids are
URL-encoded names and may themselves contain '%' sequences.
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from loguru import logger

from .browse_tree import ROOT
from .library import MediaLibrary
from .models import item_to_dict

# ---------------------------------------------------------------------------
# Singletons
# ---------------------------------------------------------------------------

library: Optional[MediaLibrary] = None


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    global library

    # Startup
    if library is None:
        library = MediaLibrary.from_env()
    await library.refresh()
    logger.info("Media library web app ready.")

    yield

    # Shutdown
    logger.info("Media library web app shutting down.")


app = FastAPI(title="MCP Library", lifespan=lifespan)


def _require_library() -> MediaLibrary:
    if library is None or library.tree is None:
        raise HTTPException(status_code=503, detail="Library not loaded")
    return library


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------

@app.get("/api/library/status")
async def library_status():
    """Current load state and browse tree size."""
    lib = _require_library()
    return JSONResponse(lib.status().model_dump())


@app.post("/api/library/reload")
async def reload_library():
    """Rebuild the browse tree from a fresh catalog and playlist snapshot."""
    lib = _require_library()
    await lib.refresh()
    return JSONResponse(lib.status().model_dump())


# ---------------------------------------------------------------------------
# Browse
# ---------------------------------------------------------------------------

@app.get("/api/browse")
async def browse(node_id: str = ROOT):
    """List the children of a browse tree node."""
    lib = _require_library()
    children = lib.children(node_id)
    if children is None:
        raise HTTPException(status_code=404, detail=f"Unknown node id: {node_id}")
    return JSONResponse({
        "node_id": node_id,
        "count": len(children),
        "children": [item_to_dict(c) for c in children],
    })


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    port = int(os.environ.get("MCP_LIBRARY_PORT", "8888"))
    logger.info(f"Starting MCP Library web app on port {port}")
    uvicorn.run(
        "mcp_library.app:app",
        host="0.0.0.0",
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    main()
