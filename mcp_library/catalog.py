"""
Track Catalog Providers

A provider returns the full track list in catalog order, or None when no
catalog could be produced at all (missing database, unreadable export).
An empty list is a valid, empty catalog.

Providers:
1. Rekordbox 6 database (pyrekordbox, SQLCipher decryption)
2. JSONL export, one track record per line
3. In-memory list (tests, embedding)
"""

import json
import os
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

from loguru import logger
from pydantic import ValidationError
from pyrekordbox import Rekordbox6Database

from .models import Track

_REPO_ROOT = Path(__file__).resolve().parent.parent


class CatalogProvider(Protocol):
    """Anything that can produce a catalog snapshot. May block on I/O."""

    def fetch_tracks(self) -> Optional[List[Track]]:
        """Return every track in catalog order, or None if the catalog is unavailable."""


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------

class StaticCatalog:
    """Serves a fixed list of tracks. ``StaticCatalog(None)`` has no catalog."""

    def __init__(self, tracks: Optional[Iterable[Track]]) -> None:
        self._tracks = list(tracks) if tracks is not None else None

    def fetch_tracks(self) -> Optional[List[Track]]:
        if self._tracks is None:
            return None
        return list(self._tracks)

    def __repr__(self) -> str:
        size = "none" if self._tracks is None else len(self._tracks)
        return f"StaticCatalog({size})"


# ---------------------------------------------------------------------------
# JSONL export
# ---------------------------------------------------------------------------

class JsonlCatalog:
    """
    Reads a JSONL track export: one JSON object per line, keys named as the
    ``Track`` fields. Blank lines are ignored, malformed lines are skipped.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def fetch_tracks(self) -> Optional[List[Track]]:
        if not self.path.exists():
            logger.warning(f"Track catalog not found at {self.path}")
            return None

        tracks: List[Track] = []
        skipped = 0
        try:
            # Decoded per line so one bad byte only costs its own record
            with self.path.open("rb") as fh:
                for line_no, raw in enumerate(fh, start=1):
                    try:
                        line = raw.decode("utf-8").strip()
                        if not line:
                            continue
                        tracks.append(Track.model_validate(json.loads(line)))
                    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
                        skipped += 1
                        logger.warning(f"{self.path}:{line_no}: skipped track record: {exc}")
        except OSError as exc:
            logger.error(f"Could not read track catalog {self.path}: {exc}")
            return None

        logger.info(f"Loaded {len(tracks)} tracks from {self.path} ({skipped} skipped)")
        return tracks

    def __repr__(self) -> str:
        return f"JsonlCatalog(path={self.path})"


# ---------------------------------------------------------------------------
# Rekordbox
# ---------------------------------------------------------------------------

def _related_name(content, flat_attr: str, relation: str) -> str:
    """Prefer the denormalised ``*Name`` column, fall back to the related row."""
    name = getattr(content, flat_attr, "") or ""
    if not name and hasattr(content, relation):
        obj = getattr(content, relation)
        name = (obj.Name if hasattr(obj, "Name") else str(obj)) if obj else ""
    return name


def content_to_track(content) -> Track:
    """Convert a pyrekordbox content row to a Track."""
    length_seconds = int(getattr(content, "Length", 0) or 0)
    return Track(
        id=str(content.ID),
        title=getattr(content, "Title", "") or "",
        artist=_related_name(content, "ArtistName", "Artist"),
        album=_related_name(content, "AlbumName", "Album"),
        genre=_related_name(content, "GenreName", "Genre"),
        source_locator=getattr(content, "FolderPath", "") or "",
        artwork_locator=getattr(content, "ImagePath", "") or "",
        track_number=int(getattr(content, "TrackNo", 0) or 0),
        duration_ms=length_seconds * 1000 if length_seconds > 0 else -1,
    )


class RekordboxCatalog:
    """
    Read-only catalog over the rekordbox library.

    Pass an open ``Rekordbox6Database`` to reuse a connection; otherwise one
    is opened (auto-detected location) for each fetch and closed afterwards.
    """

    def __init__(self, db: Optional[Rekordbox6Database] = None) -> None:
        self._db = db

    def fetch_tracks(self) -> Optional[List[Track]]:
        owned = self._db is None
        try:
            db = self._db if self._db is not None else Rekordbox6Database()
        except Exception as e:
            logger.error(f"Failed to open rekordbox database: {e}")
            return None

        try:
            content_list = list(db.get_content())
        except Exception as e:
            logger.error(f"Failed to read rekordbox content: {e}")
            return None
        finally:
            if owned:
                db.close()

        active = [c for c in content_list if getattr(c, "rb_local_deleted", 0) == 0]
        tracks = [content_to_track(c) for c in active]
        logger.info(f"Loaded {len(tracks)} active tracks from rekordbox.")
        return tracks

    def __repr__(self) -> str:
        return f"RekordboxCatalog(shared_connection={self._db is not None})"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def catalog_from_env() -> CatalogProvider:
    """
    Select the catalog provider from ``MCP_LIBRARY_CATALOG``.

    ``rekordbox`` (the default) reads the local rekordbox library; any other
    value is taken as the path of a JSONL export, relative paths resolving
    against the repository root.
    """
    setting = os.environ.get("MCP_LIBRARY_CATALOG", "rekordbox").strip()
    if not setting or setting.lower() == "rekordbox":
        logger.info("Track catalog: rekordbox")
        return RekordboxCatalog()

    path = Path(setting)
    if not path.is_absolute():
        path = _REPO_ROOT / path
    logger.info(f"Track catalog: JSONL export at {path}")
    return JsonlCatalog(path)
