from unittest.mock import MagicMock

import requests

from shared.catalog import build_catalog
from player.library import (
    LibraryManager,
    fetch_blob_tracks,
    get_all_songs,
    library_has_artist_title,
    merge_blob_tracks,
    norm_basename,
    parse_blob_filename,
)


def _track(pathname):
    return {"pathname": pathname, "url": f"https://store.test/{pathname}"}


def test_norm_basename_strips_extension_and_trailing_tag():
    assert norm_basename("music/Heartstrings Serenade (Remastered).mp3") == "heartstrings serenade"
    assert norm_basename("Neon Nights [Live].wav") == "neon nights"
    # Nothing left after stripping: keep the tag
    assert norm_basename("(Live).mp3") == "(live)"


def test_parse_blob_filename():
    assert parse_blob_filename("uploads/Janji - Heroes Tonight.mp3") == ("Janji", "Heroes Tonight")
    assert parse_blob_filename("uploads/untitled.mp3") == ("Unknown Artist", "untitled")


def test_library_has_artist_title_matches_containment():
    catalog = build_catalog()
    assert library_has_artist_title(catalog, "janji", "Heroes Tonight (Radio Edit)")
    assert library_has_artist_title(catalog, "Jonas Kroeger", "Neon")
    assert not library_has_artist_title(catalog, "Tobu", "Heroes Tonight")


def test_merge_skips_tracks_already_in_catalog():
    catalog = build_catalog()
    tracks = [
        _track("music/Amor en Ritmo.mp3"),                  # exact key
        _track("archive/Love in the Air.mp3"),              # same filename
        _track("uploads/Heartstrings Serenade.mp3"),        # normalized basename
        _track("uploads/janji - Heroes Tonight Remix.mp3"),  # artist + title
    ]
    merged = merge_blob_tracks(catalog, tracks)
    assert [a.name for a in merged] == [a.name for a in catalog]
    assert len(get_all_songs(merged)) == len(get_all_songs(catalog))


def test_merge_groups_new_tracks_by_artist():
    catalog = build_catalog()
    merged = merge_blob_tracks(catalog, [
        _track("uploads/Janji - Horizon.mp3"),
        _track("uploads/Tobu - Candyland.mp3"),
        _track("uploads/tobu - Hope.wav"),
        _track("uploads/loose.mp3"),
    ])

    janji = next(a for a in merged if a.name == "Janji")
    assert [album.name for album in janji.albums] == ["Heroes Tonight", "Horizon"]
    horizon = janji.albums[1].songs[0]
    assert horizon.id == "blob-uploads/Janji - Horizon.mp3"
    assert horizon.audio_url == "https://store.test/uploads/Janji - Horizon.mp3"

    assert [a.name for a in merged[-2:]] == ["Tobu", "Unknown Artist"]
    tobu = merged[-2]
    assert tobu.albums[0].name == "Tracks"
    assert [s.title for s in tobu.albums[0].songs] == ["Candyland", "Hope"]
    assert merged[-1].albums[0].name == "loose"


def test_merge_skips_duplicates_within_one_listing():
    catalog = build_catalog()
    merged = merge_blob_tracks(catalog, [
        _track("uploads/Foo - Bar.mp3"),
        _track("other/Foo - Bar (Live).mp3"),
        _track("music/Foo - Bar.wav"),
        _track("uploads/Foo - Bar.mp3"),
        _track("uploads/Foo - Baz.mp3"),
    ])
    foo = merged[-1]
    assert foo.name == "Foo"
    songs = [s for album in foo.albums for s in album.songs]
    assert [s.id for s in songs] == ["blob-uploads/Foo - Bar.mp3", "blob-uploads/Foo - Baz.mp3"]
    assert len(get_all_songs(merged)) == len(get_all_songs(catalog)) + 2


def test_merge_leaves_input_untouched():
    catalog = build_catalog()
    merged = merge_blob_tracks(catalog, [_track("uploads/Janji - Horizon.mp3")])
    assert merged is not catalog
    assert len(catalog) == 3
    assert len(catalog[1].albums) == 1


def test_fetch_blob_tracks_ignores_failures():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("down")
    assert fetch_blob_tracks("http://api.test", session=session) == []


def test_library_manager_refresh_merges_listing():
    response = MagicMock(ok=True)
    response.json.return_value = {"tracks": [_track("uploads/Tobu - Candyland.mp3"), {"url": "no-path"}]}
    session = MagicMock()
    session.get.return_value = response

    manager = LibraryManager(base_url="http://api.test")
    changes = []
    manager.add_change_callback(lambda: changes.append(True))

    assert manager.refresh(session=session) == 1
    session.get.assert_called_once()
    assert session.get.call_args[0][0] == "http://api.test/api/audio/tracks"
    assert manager.library[-1].name == "Tobu"
    assert len(manager.static_library) == 3
    assert changes == [True]
    assert [ref[2].title for ref in manager.search("candy")] == ["Candyland"]
