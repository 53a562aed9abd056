"""
Browse Tree: multi-rooted index of the track catalog.

Maps a node id to the ordered list of that node's children. Conceptually:

    /
     +-- __RECOMMENDED__     first track of every album
     +-- __ALBUMS__
     |    +-- Album_A
     |    |    +-- Song_1
     |    |    +-- Song_2
     +-- __ARTISTS__
     |    +-- Artist_X  ...
     +-- __PLAYLISTS__
          +-- Playlist_1 ...

``tree.get("/")`` returns the four category items, ``tree.get("__ALBUMS__")``
returns one item per album, and ``tree.get("Album_A")`` returns its tracks.
Tracks are leaves: ``tree.get(<track id>)`` returns None, which is distinct
from the empty list an existing container with no members returns.

Usage:
    tree = BrowseTreeBuilder().build(tracks, playlists)
    tree.get(ALBUMS)
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple
from urllib.parse import quote_plus

from loguru import logger

from .models import BrowsableItem, MediaItem, Playlist, Track

# ---------------------------------------------------------------------------
# Node ids
# ---------------------------------------------------------------------------

ROOT        = "/"
EMPTY_ROOT  = "@empty@"
RECOMMENDED = "__RECOMMENDED__"
ALBUMS      = "__ALBUMS__"
ARTISTS     = "__ARTISTS__"
PLAYLISTS   = "__PLAYLISTS__"

CATEGORY_TITLES: Dict[str, str] = {
    RECOMMENDED: "Recommended",
    ALBUMS:      "Albums",
    ARTISTS:     "Artists",
    PLAYLISTS:   "Playlists",
}

RESERVED_IDS = frozenset({ROOT, EMPTY_ROOT, *CATEGORY_TITLES})


def media_id(name: str) -> str:
    """Node id for an album or artist name (URL form encoding).

    Names that would encode to a reserved id get their underscores escaped
    too, so a catalog album called ``__ALBUMS__`` cannot shadow a category.
    """
    escaped = quote_plus(name)
    if escaped in RESERVED_IDS:
        escaped = escaped.replace("_", "%5F")
    return escaped


# ---------------------------------------------------------------------------
# BrowseTree
# ---------------------------------------------------------------------------

class BrowseTree:
    """Read-only lookup surface over a built node mapping."""

    def __init__(
        self,
        nodes: Mapping[str, Sequence[MediaItem]],
        built_at: Optional[str] = None,
    ) -> None:
        self._nodes: Dict[str, Tuple[MediaItem, ...]] = {
            node_id: tuple(children) for node_id, children in nodes.items()
        }
        self.built_at = built_at or datetime.now(timezone.utc).isoformat()

    def get(self, node_id: str) -> Optional[List[MediaItem]]:
        """Children of ``node_id`` in insertion order, or None if no such node."""
        children = self._nodes.get(node_id)
        if children is None:
            return None
        return list(children)

    def node_ids(self) -> List[str]:
        return list(self._nodes)

    def to_dict(self) -> Dict[str, List[MediaItem]]:
        return {node_id: list(children) for node_id, children in self._nodes.items()}

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"BrowseTree({len(self._nodes)} nodes, built_at={self.built_at})"


# ---------------------------------------------------------------------------
# BrowseTreeBuilder
# ---------------------------------------------------------------------------

class BrowseTreeBuilder:
    """
    Groups a track sequence by album, artist, recommended status and
    playlist membership in a single pass.

    Playlists are read once, before the track pass; each playlist's entries
    are turned into a locator set so membership is a set lookup per track.
    A builder can be reused: every ``build()`` starts from a clean slate and
    returns a new tree.
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, List[MediaItem]] = {}
        self._registered: Dict[str, Set[str]] = defaultdict(set)
        self._members: Set[Tuple[str, str]] = set()
        self._recommended_albums: Set[str] = set()
        self._playlist_routes: Dict[str, frozenset] = {}

    def build(self, tracks: Iterable[Track], playlists: Iterable[Playlist]) -> BrowseTree:
        """Build a complete tree from one catalog snapshot and one playlist snapshot."""
        self._reset()

        for category_id, title in CATEGORY_TITLES.items():
            self._get_or_create(
                category_id,
                ROOT,
                BrowsableItem(id=category_id, title=title, kind="category"),
            )

        for playlist in playlists:
            self._add_playlist(playlist)

        track_count = 0
        for track in tracks:
            self._add_track(track)
            track_count += 1

        tree = BrowseTree(self._nodes)
        logger.info(
            f"Browse tree built: {track_count} tracks, "
            f"{len(self._nodes[ALBUMS])} albums, {len(self._nodes[ARTISTS])} artists, "
            f"{len(self._playlist_routes)} playlists, "
            f"{len(self._nodes[RECOMMENDED])} recommended"
        )
        return tree

    # ------------------------------------------------------------------
    # Build steps
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._nodes = {ROOT: []}
        self._registered = defaultdict(set)
        self._members = set()
        self._recommended_albums = set()
        self._playlist_routes = {}

    def _add_playlist(self, playlist: Playlist) -> None:
        if playlist.name in RESERVED_IDS:
            logger.warning(f"Playlist name '{playlist.name}' is a reserved node id, skipped.")
            return
        if playlist.name in self._playlist_routes:
            logger.warning(f"Duplicate playlist '{playlist.name}', keeping the first definition.")
            return
        self._playlist_routes[playlist.name] = frozenset(playlist.entries)
        self._get_or_create(
            playlist.name,
            PLAYLISTS,
            BrowsableItem(id=playlist.name, title=playlist.name, kind="playlist"),
        )

    def _add_track(self, track: Track) -> None:
        album_id = media_id(track.album)
        self._get_or_create(
            album_id,
            ALBUMS,
            BrowsableItem(
                id=album_id,
                title=track.album,
                kind="album",
                subtitle=track.artist,
                artwork_locator=track.artwork_locator,
            ),
        )
        self._append(album_id, track)

        artist_id = media_id(track.artist)
        self._get_or_create(
            artist_id,
            ARTISTS,
            BrowsableItem(
                id=artist_id,
                title=track.artist,
                kind="artist",
                artwork_locator=track.artwork_locator,
            ),
        )
        self._append(artist_id, track)

        for name, routes in self._playlist_routes.items():
            if track.source_locator in routes:
                self._append(name, track)

        # First track of each album goes to 'Recommended'
        if track.track_number == 1 and album_id not in self._recommended_albums:
            self._recommended_albums.add(album_id)
            self._append(RECOMMENDED, track)

    # ------------------------------------------------------------------
    # Node primitives
    # ------------------------------------------------------------------

    def _get_or_create(self, node_id: str, parent_id: str, item: BrowsableItem) -> List[MediaItem]:
        """Return the child list of ``node_id``, creating the node on first use.

        The node's item is appended to ``parent_id`` at most once, so a name
        shared by an album and an artist is listed under both categories.
        """
        children = self._nodes.get(node_id)
        if children is None:
            children = self._nodes[node_id] = []
            logger.debug(f"Created node {node_id!r} under {parent_id!r}")
        if node_id not in self._registered[parent_id]:
            if parent_id != PLAYLISTS and node_id in self._playlist_routes:
                logger.warning(
                    f"Playlist '{node_id}' shares its node with {item.kind} '{item.title}'; "
                    f"the playlist will also list that {item.kind}'s tracks."
                )
            self._registered[parent_id].add(node_id)
            self._nodes[parent_id].append(item)
        return children

    def _append(self, node_id: str, track: Track) -> None:
        # A track is listed at most once per node, even when names collide.
        key = (node_id, track.id)
        if key in self._members:
            return
        self._members.add(key)
        self._nodes[node_id].append(track)
