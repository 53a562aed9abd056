"""Unit tests for the browse tree builder and lookup surface."""

import pytest
from loguru import logger
from mcp_library.models import Track, Playlist, BrowsableItem
from mcp_library.browse_tree import (
    BrowseTreeBuilder,
    ROOT,
    EMPTY_ROOT,
    RECOMMENDED,
    ALBUMS,
    ARTISTS,
    PLAYLISTS,
    media_id,
)


def make_track(id, album="A", artist="X", track_number=0, locator=None, title=None):
    return Track(
        id=str(id),
        title=title or f"Track {id}",
        artist=artist,
        album=album,
        source_locator=locator or f"/music/{id}.mp3",
        track_number=track_number,
    )


def ids(items):
    return [item.id for item in items]


@pytest.fixture
def builder():
    return BrowseTreeBuilder()


@pytest.fixture
def catalog():
    return [
        make_track(1, album="Blue", artist="Ana", track_number=1, locator="u1"),
        make_track(2, album="Blue", artist="Ana", track_number=2, locator="u2"),
        make_track(3, album="Red", artist="Ben", track_number=1, locator="u3"),
        make_track(4, album="Red", artist="Ben", track_number=2, locator="u4"),
        make_track(5, album="Green", artist="Ana", track_number=3, locator="u5"),
    ]


@pytest.fixture
def playlists():
    return [
        Playlist(name="Morning", entries=("u2", "u3")),
        Playlist(name="Evening", entries=("u3", "missing")),
        Playlist(name="Empty", entries=()),
    ]


@pytest.fixture
def tree(builder, catalog, playlists):
    return builder.build(catalog, playlists)


class TestRoot:
    def test_root_lists_categories_in_order(self, tree):
        assert ids(tree.get(ROOT)) == [RECOMMENDED, ALBUMS, ARTISTS, PLAYLISTS]

    def test_categories_are_browsable_items(self, tree):
        for item in tree.get(ROOT):
            assert isinstance(item, BrowsableItem)
            assert item.kind == "category"

    def test_categories_exist_for_empty_inputs(self, builder):
        tree = builder.build([], [])
        assert ids(tree.get(ROOT)) == [RECOMMENDED, ALBUMS, ARTISTS, PLAYLISTS]
        for category in (RECOMMENDED, ALBUMS, ARTISTS, PLAYLISTS):
            assert tree.get(category) == []

    def test_empty_root_is_not_a_node(self, tree):
        assert tree.get(EMPTY_ROOT) is None


class TestAlbumsAndArtists:
    def test_albums_registered_once_in_first_seen_order(self, tree):
        assert ids(tree.get(ALBUMS)) == ["Blue", "Red", "Green"]

    def test_artists_registered_once_in_first_seen_order(self, tree):
        assert ids(tree.get(ARTISTS)) == ["Ana", "Ben"]

    def test_album_children_keep_catalog_order(self, tree):
        assert ids(tree.get("Blue")) == ["1", "2"]
        assert ids(tree.get("Red")) == ["3", "4"]

    def test_artist_spans_albums(self, tree):
        assert ids(tree.get("Ana")) == ["1", "2", "5"]

    def test_every_track_in_exactly_one_album_and_artist(self, tree, catalog):
        album_ids = [i.id for i in tree.get(ALBUMS)]
        artist_ids = [i.id for i in tree.get(ARTISTS)]
        for track in catalog:
            albums = [a for a in album_ids if track in tree.get(a)]
            artists = [a for a in artist_ids if track in tree.get(a)]
            assert albums == [media_id(track.album)]
            assert artists == [media_id(track.artist)]

    def test_album_item_carries_artist_and_title(self, tree):
        blue = tree.get(ALBUMS)[0]
        assert blue.kind == "album"
        assert blue.title == "Blue"
        assert blue.subtitle == "Ana"

    def test_same_album_name_across_artists_collapses(self, builder):
        tracks = [
            make_track(1, album="Greatest Hits", artist="Ana"),
            make_track(2, album="Greatest Hits", artist="Ben"),
        ]
        tree = builder.build(tracks, [])
        assert ids(tree.get(ALBUMS)) == ["Greatest Hits"]
        assert ids(tree.get("Greatest+Hits")) == ["1", "2"]

    def test_album_names_are_case_sensitive(self, builder):
        tree = builder.build([make_track(1, album="abc"), make_track(2, album="ABC")], [])
        assert ids(tree.get(ALBUMS)) == ["abc", "ABC"]

    def test_self_titled_album_lists_track_once(self, builder):
        tree = builder.build([make_track(1, album="Weezer", artist="Weezer")], [])
        assert ids(tree.get("Weezer")) == ["1"]
        assert ids(tree.get(ALBUMS)) == ["Weezer"]
        assert ids(tree.get(ARTISTS)) == ["Weezer"]
        assert tree.get(ALBUMS)[0].kind == "album"
        assert tree.get(ARTISTS)[0].kind == "artist"


class TestNodeIds:
    def test_names_are_url_encoded(self, builder):
        tree = builder.build([make_track(1, album="AC/DC Live", artist="AC/DC")], [])
        assert ids(tree.get(ALBUMS)) == ["AC%2FDC+Live"]
        assert ids(tree.get("AC%2FDC+Live")) == ["1"]
        assert ids(tree.get("AC%2FDC")) == ["1"]

    def test_reserved_names_do_not_shadow_categories(self, builder):
        tree = builder.build([make_track(1, album=ALBUMS)], [])
        album_id = media_id(ALBUMS)
        assert album_id != ALBUMS
        assert ids(tree.get(ALBUMS)) == [album_id]
        assert ids(tree.get(album_id)) == ["1"]

    def test_plain_names_unchanged(self):
        assert media_id("Blue") == "Blue"


class TestRecommended:
    def test_first_tracks_are_recommended(self, tree):
        assert ids(tree.get(RECOMMENDED)) == ["1", "3"]

    def test_other_track_numbers_excluded(self, tree, catalog):
        recommended = tree.get(RECOMMENDED)
        for track in catalog:
            assert (track in recommended) == (track.track_number == 1)

    def test_at_most_one_entry_per_album(self, builder):
        tracks = [
            make_track(1, album="Double", track_number=1),
            make_track(2, album="Double", track_number=1),
        ]
        tree = builder.build(tracks, [])
        assert ids(tree.get(RECOMMENDED)) == ["1"]

    def test_unknown_track_number_not_recommended(self, builder):
        tree = builder.build([make_track(1, track_number=0)], [])
        assert tree.get(RECOMMENDED) == []


class TestPlaylists:
    def test_playlist_nodes_listed_in_stored_order(self, tree):
        assert ids(tree.get(PLAYLISTS)) == ["Morning", "Evening", "Empty"]

    def test_membership_by_exact_locator(self, tree):
        assert ids(tree.get("Morning")) == ["2", "3"]
        assert ids(tree.get("Evening")) == ["3"]

    def test_playlist_without_matches_exists_empty(self, tree):
        assert tree.get("Empty") == []

    def test_track_in_several_playlists(self, tree, catalog):
        track = catalog[2]
        assert track in tree.get("Morning")
        assert track in tree.get("Evening")

    def test_membership_follows_catalog_order_not_entry_order(self, builder):
        tracks = [make_track(1, locator="a"), make_track(2, locator="b")]
        tree = builder.build(tracks, [Playlist(name="P", entries=("b", "a"))])
        assert ids(tree.get("P")) == ["1", "2"]

    def test_locator_match_is_exact(self, builder):
        tracks = [make_track(1, locator="/Music/a.mp3")]
        tree = builder.build(tracks, [Playlist(name="P", entries=("/music/a.mp3", "/Music/a.mp3 "))])
        assert tree.get("P") == []

    def test_duplicate_entry_lists_track_once(self, builder):
        tracks = [make_track(1, locator="a")]
        tree = builder.build(tracks, [Playlist(name="P", entries=("a", "a"))])
        assert ids(tree.get("P")) == ["1"]

    def test_duplicate_playlist_name_keeps_first(self, builder):
        tracks = [make_track(1, locator="a"), make_track(2, locator="b")]
        tree = builder.build(tracks, [
            Playlist(name="P", entries=("a",)),
            Playlist(name="P", entries=("b",)),
        ])
        assert ids(tree.get(PLAYLISTS)) == ["P"]
        assert ids(tree.get("P")) == ["1"]

    def test_reserved_playlist_name_skipped(self, builder):
        tree = builder.build([make_track(1, locator="a")], [Playlist(name=ROOT, entries=("a",))])
        assert tree.get(PLAYLISTS) == []
        assert ids(tree.get(ROOT)) == [RECOMMENDED, ALBUMS, ARTISTS, PLAYLISTS]

    def test_playlist_named_like_album_shares_node_and_warns(self, builder):
        messages = []
        handler_id = logger.add(messages.append, level="WARNING")
        try:
            tracks = [
                make_track(1, album="A", locator="u1"),
                make_track(2, album="A", locator="u2"),
            ]
            tree = builder.build(tracks, [Playlist(name="A", entries=("u2",))])
        finally:
            logger.remove(handler_id)

        assert ids(tree.get("A")) == ["1", "2"]
        assert ids(tree.get(ALBUMS)) == ["A"]
        assert ids(tree.get(PLAYLISTS)) == ["A"]
        assert any("shares its node" in str(m) for m in messages)

    def test_playlists_evaluated_once(self, builder):
        reads = []

        def playlists():
            reads.append(1)
            yield Playlist(name="P", entries=("u1",))

        builder.build([make_track(i) for i in range(5)], playlists())
        assert reads == [1]


class TestLookup:
    def test_track_id_is_not_a_node(self, tree):
        assert tree.get("1") is None

    def test_unknown_playlist_is_not_found(self, tree):
        assert tree.get("Nope") is None

    def test_get_returns_a_copy(self, tree):
        tree.get("Blue").clear()
        assert ids(tree.get("Blue")) == ["1", "2"]

    def test_contains_and_len(self, tree):
        assert "Blue" in tree
        assert "1" not in tree
        # root, 4 categories, 3 albums, 2 artists, 3 playlists
        assert len(tree) == 13


class TestRebuild:
    def test_rebuild_is_identical(self, builder, catalog, playlists):
        first = builder.build(catalog, playlists)
        second = builder.build(catalog, playlists)
        assert first.to_dict() == second.to_dict()

    def test_rebuild_does_not_leak_previous_nodes(self, builder, catalog):
        builder.build(catalog, [])
        tree = builder.build([make_track(9, album="Solo", artist="Cy")], [])
        assert ids(tree.get(ALBUMS)) == ["Solo"]
        assert tree.get("Blue") is None

    def test_previous_tree_is_unchanged_by_rebuild(self, builder, catalog):
        first = builder.build(catalog, [])
        builder.build([], [])
        assert ids(first.get("Blue")) == ["1", "2"]


class TestScenario:
    def test_two_tracks_one_playlist(self, builder):
        t1 = make_track(1, album="A", artist="X", track_number=1, locator="u1")
        t2 = make_track(2, album="A", artist="X", track_number=2, locator="u2")
        tree = builder.build([t1, t2], [Playlist(name="P1", entries=("u2",))])

        assert tree.get("A") == [t1, t2]
        assert tree.get("X") == [t1, t2]
        assert tree.get(RECOMMENDED) == [t1]
        assert tree.get("P1") == [t2]
