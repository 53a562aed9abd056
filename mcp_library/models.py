"""
Data Models for the Media Library

Tracks come from a catalog provider, playlists from a playlist repository,
and browsable items are the container markers placed in the browse tree.
"""

from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Track model
# ---------------------------------------------------------------------------

class Track(BaseModel):
    """Catalog track with descriptive metadata. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique track identifier")
    title: str = Field("", description="Track title")
    artist: str = Field("", description="Track artist")
    album: str = Field("", description="Album name")
    genre: str = Field("", description="Musical genre, may be empty")
    source_locator: str = Field(..., description="Where the media lives (path or URI), unique per track")
    artwork_locator: str = Field("", description="Album art path or URI, may be empty")
    track_number: int = Field(0, ge=0, description="Position on the album, 0 = unknown")
    total_track_count: int = Field(0, ge=0, description="Number of tracks on the album")
    duration_ms: int = Field(-1, ge=-1, description="Duration in milliseconds, -1 = unknown")

    @field_validator("title", "artist", "album", "genre", "artwork_locator", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("track_number", "total_track_count", mode="before")
    @classmethod
    def _none_to_zero(cls, v):
        return 0 if v is None else v

    @field_validator("duration_ms", mode="before")
    @classmethod
    def _none_to_unknown(cls, v):
        return -1 if v is None else v

    def duration_formatted(self) -> str:
        if self.duration_ms < 0:
            return "-:--"
        seconds = self.duration_ms // 1000
        return f"{seconds // 60}:{seconds % 60:02d}"


# ---------------------------------------------------------------------------
# Browse tree items
# ---------------------------------------------------------------------------

ItemKind = Literal["category", "album", "artist", "playlist"]


class BrowsableItem(BaseModel):
    """A child entry that opens another node of the browse tree."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Node id this item opens")
    title: str = Field("", description="Display title")
    kind: ItemKind = Field(..., description="category, album, artist or playlist")
    subtitle: str = Field("", description="Album artist for album nodes, otherwise empty")
    artwork_locator: str = Field("", description="Artwork path or URI, may be empty")


MediaItem = Union[Track, BrowsableItem]


def item_to_dict(item: MediaItem) -> dict:
    """Serialise a browse tree child, tagging whether it is playable."""
    d = item.model_dump()
    d["playable"] = isinstance(item, Track)
    return d


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------

class Playlist(BaseModel):
    """Named, ordered list of track locators. Matching is by locator, not id."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique playlist name, also its node id")
    entries: Tuple[str, ...] = Field(default_factory=tuple, description="Track locators in order")


class PlaylistSong(BaseModel):
    """A single ``{"route": ...}`` entry of the persisted playlist document."""

    route: str


class PlaylistRecord(BaseModel):
    name: str
    songs: List[PlaylistSong] = Field(default_factory=list)

    def to_playlist(self) -> Playlist:
        return Playlist(name=self.name, entries=tuple(s.route for s in self.songs))


class PlaylistsDocument(BaseModel):
    """Top-level persisted playlist document: ``{"playlists": [...]}``."""

    playlists: List[PlaylistRecord] = Field(default_factory=list)


class LibraryStatus(BaseModel):
    """Snapshot of the library's load and build state."""

    state: str
    track_count: int = 0
    playlist_count: int = 0
    node_count: int = 0
    built_at: Optional[str] = None
