"""
Media Library service

Drives one load cycle end to end: load the music source, read the playlist
snapshot, build the browse tree, publish it. Readers get whichever tree was
published last; a refresh replaces it wholesale.

Usage:
    library = MediaLibrary(MusicSource(catalog_from_env()), JsonPlaylistRepository.from_env())
    await library.refresh()
    library.children(ALBUMS)
"""

import asyncio
import threading
from typing import List, Optional

from loguru import logger

from .browse_tree import EMPTY_ROOT, ROOT, BrowseTree, BrowseTreeBuilder
from .catalog import catalog_from_env
from .models import LibraryStatus, MediaItem
from .music_source import MusicSource
from .playlists import JsonPlaylistRepository, PlaylistRepository


class MediaLibrary:
    """Owns the music source, the playlist repository and the published tree."""

    def __init__(
        self,
        source: MusicSource,
        playlists: PlaylistRepository,
        builder: Optional[BrowseTreeBuilder] = None,
    ) -> None:
        self.source = source
        self.playlists = playlists
        self._builder = builder or BrowseTreeBuilder()
        self._tree: Optional[BrowseTree] = None
        self._playlist_count = 0
        self._lock = threading.Lock()  # guards the published tree

    @classmethod
    def from_env(cls) -> "MediaLibrary":
        return cls(MusicSource(catalog_from_env()), JsonPlaylistRepository.from_env())

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    async def refresh(self) -> BrowseTree:
        """Reload the catalog and playlists and publish a freshly built tree."""
        await self.source.load()
        playlists = await asyncio.to_thread(self.playlists.load_playlists)
        tree = self._builder.build(self.source, playlists)
        with self._lock:
            self._tree = tree
            self._playlist_count = len(playlists)
        logger.info(
            f"Library ready: source {self.source.state.value}, "
            f"{len(self.source)} tracks, {len(tree)} nodes"
        )
        return tree

    @property
    def tree(self) -> Optional[BrowseTree]:
        with self._lock:
            return self._tree

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_root(trusted: bool = True) -> str:
        """Root node id for a caller. Untrusted callers get the empty root."""
        return ROOT if trusted else EMPTY_ROOT

    def children(self, node_id: str) -> Optional[List[MediaItem]]:
        """Children of ``node_id``; None if unknown or nothing has been built yet."""
        if node_id == EMPTY_ROOT:
            return []
        tree = self.tree
        if tree is None:
            return None
        return tree.get(node_id)

    def status(self) -> LibraryStatus:
        with self._lock:
            tree = self._tree
            playlist_count = self._playlist_count
        return LibraryStatus(
            state=self.source.state.value,
            track_count=len(self.source),
            playlist_count=playlist_count,
            node_count=len(tree) if tree is not None else 0,
            built_at=tree.built_at if tree is not None else None,
        )

    def __repr__(self) -> str:
        return f"MediaLibrary(source={self.source!r}, tree={self.tree!r})"
