import time
from unittest.mock import MagicMock

import pytest
import requests

from shared.models import Album, Artist, NavigationLevel, NavigationState, Song
from player.bridge import HttpTransport, PlaybackBridge, build_playback_message
from player.library import LibraryManager
from player.playback import MusicPlaybackContext


@pytest.fixture(autouse=True)
def audio_base(monkeypatch):
    monkeypatch.setenv("AUDIO_BASE_URL", "https://audio.test")
    monkeypatch.delenv("PINNED_TRACK_PATH", raising=False)


@pytest.fixture
def library():
    return [
        Artist(name="Jonas Kroeger", photo_url="https://img.test/jonas.jpg", albums=[
            Album(name="Midnight Vibes", cover_url="https://img.test/vibes.jpg", songs=[
                Song(id="a1", title="Neon Nights", r2_key="music/Neon Nights.mp3"),
            ]),
        ]),
        Artist(name="Lost Sky", photo_url="https://img.test/lostsky.jpg", albums=[
            Album(name="Fearless pt.II", songs=[Song(id="S19UcWdOA-I", title="Fearless pt.II")]),
        ]),
    ]


@pytest.fixture
def context(library):
    return MusicPlaybackContext(LibraryManager(catalog=library), resolver=lambda s: None)


def now_playing(context, artist):
    album = artist.albums[0]
    context.set_navigation(NavigationState(NavigationLevel.NOW_PLAYING, artist, album, album.songs[0]))


def test_message_for_direct_song(context, library):
    now_playing(context, library[0])
    context.set_is_playing(True)
    assert build_playback_message(context) == {
        "type": "playback",
        "isPlaying": True,
        "title": "Neon Nights",
        "artist": "Jonas Kroeger",
        "album": "Midnight Vibes",
        "audioUrl": "https://audio.test/music/Neon%20Nights.mp3",
        "artwork": "https://img.test/vibes.jpg",
    }


def test_artwork_falls_back_to_artist_photo(context, library):
    now_playing(context, library[1])
    message = build_playback_message(context)
    assert message["artwork"] == "https://img.test/lostsky.jpg"
    assert message["audioUrl"] == ""


def test_message_without_song(context):
    message = build_playback_message(context)
    assert message["title"] == ""
    assert message["isPlaying"] is False


def test_bridge_sends_on_relevant_changes_only(context, library):
    sent = []
    bridge = PlaybackBridge(context, sent.append, interval=60)
    bridge.start()
    assert len(sent) == 1

    now_playing(context, library[0])
    context.set_is_playing(True)
    assert len(sent) == 3
    assert sent[-1]["isPlaying"] is True

    context.set_selected_index(4)
    context.notify("time")
    assert len(sent) == 3
    bridge.stop()


def test_bridge_heartbeat_while_playing(context, library):
    sent = []
    now_playing(context, library[0])
    context.set_is_playing(True)
    bridge = PlaybackBridge(context, sent.append, interval=0.01)
    bridge.start()
    deadline = time.monotonic() + 2.0
    while len(sent) < 3 and time.monotonic() < deadline:
        time.sleep(0.01)
    bridge.stop()
    assert len(sent) >= 3
    assert all(m == sent[0] for m in sent)


def test_transport_errors_are_logged_not_raised(context):
    transport = MagicMock(side_effect=RuntimeError("socket closed"))
    bridge = PlaybackBridge(context, transport)
    bridge.send()
    transport.assert_called_once()


def test_http_transport_posts_with_device_id():
    session = MagicMock()
    transport = HttpTransport(base_url="http://api.test/", device_id="pod-1", session=session)
    transport({"type": "playback", "isPlaying": False})
    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args[0] == "http://api.test/api/playback"
    assert kwargs["json"] == {"type": "playback", "isPlaying": False, "device_id": "pod-1"}

    session.post.side_effect = requests.ConnectionError("refused")
    transport({"type": "playback", "isPlaying": True})
