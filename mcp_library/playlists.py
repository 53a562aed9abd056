"""
Playlist Repositories

A repository returns an immutable snapshot of every playlist definition.
The browse tree reads it once per build. A missing or broken playlist store
degrades to "no playlists" instead of failing the build.

Persisted format:
    { "playlists": [ { "name": "...", "songs": [ { "route": "..." } ] } ] }
"""

import json
import os
from pathlib import Path
from typing import Iterable, Protocol, Tuple

from loguru import logger
from pydantic import ValidationError

from .models import Playlist, PlaylistsDocument

_REPO_ROOT     = Path(__file__).resolve().parent.parent
PLAYLISTS_PATH = _REPO_ROOT / ".data" / "playlists.json"


class PlaylistRepository(Protocol):
    def load_playlists(self) -> Tuple[Playlist, ...]:
        """Return all playlists in stored order."""


class StaticPlaylists:
    """Serves a fixed set of playlists."""

    def __init__(self, playlists: Iterable[Playlist] = ()) -> None:
        self._playlists = tuple(playlists)

    def load_playlists(self) -> Tuple[Playlist, ...]:
        return self._playlists


class JsonPlaylistRepository:
    """Reads playlist definitions from a JSON document on disk."""

    def __init__(self, path: Path = PLAYLISTS_PATH) -> None:
        self.path = Path(path)

    @classmethod
    def from_env(cls) -> "JsonPlaylistRepository":
        """Use ``MCP_LIBRARY_PLAYLISTS`` if set, else ``.data/playlists.json``."""
        env_path = os.environ.get("MCP_LIBRARY_PLAYLISTS")
        if not env_path:
            return cls(PLAYLISTS_PATH)
        path = Path(env_path)
        return cls(path if path.is_absolute() else _REPO_ROOT / path)

    def load_playlists(self) -> Tuple[Playlist, ...]:
        if not self.path.exists():
            logger.warning(f"Playlist file not found at {self.path}, no playlists loaded.")
            return ()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            document = PlaylistsDocument.model_validate(raw)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning(f"Could not load playlists from {self.path}: {exc}")
            return ()

        playlists = []
        seen = set()
        for record in document.playlists:
            if record.name in seen:
                logger.warning(f"Duplicate playlist '{record.name}' in {self.path}, keeping the first.")
                continue
            seen.add(record.name)
            playlists.append(record.to_playlist())

        logger.info(f"Loaded {len(playlists)} playlists from {self.path}")
        return tuple(playlists)

    def __repr__(self) -> str:
        return f"JsonPlaylistRepository(path={self.path})"
