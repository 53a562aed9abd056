"""Browse tree over a track catalog: albums, artists, recommended, playlists."""
