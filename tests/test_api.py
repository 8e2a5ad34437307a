import io
from unittest.mock import MagicMock

import pytest

from shared import api
from shared.playback_state import clear_states
from blob_tool.local_provider import LocalStorageProvider
from blob_tool.storage_provider import BlobStoreError


@pytest.fixture
def store(tmp_path):
    for name in ("notes.txt", "music/Janji - Heroes Tonight.mp3", "uploads/Tobu - Candyland.mp3"):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"data")
    provider = LocalStorageProvider()
    assert provider.authenticate({"base_path": str(tmp_path), "public_url": "https://blobs.test/"})
    api.set_store(provider)
    yield provider
    api.set_store(None)


@pytest.fixture
def broken_store():
    provider = MagicMock()
    provider.list_blobs.side_effect = BlobStoreError("bucket unreachable")
    provider.put.side_effect = BlobStoreError("read only")
    api.set_store(provider)
    yield provider
    api.set_store(None)


@pytest.fixture
def client():
    api.app.config["TESTING"] = True
    clear_states()
    with api.app.test_client() as client:
        yield client
    clear_states()


def test_health(client):
    assert client.get("/api/health").get_json() == {"status": "healthy"}


def test_list_blobs(client, store):
    data = client.get("/api/list-blobs").get_json()
    assert [b["pathname"] for b in data["pathnames"]] == [
        "notes.txt",
        "music/Janji - Heroes Tonight.mp3",
        "uploads/Tobu - Candyland.mp3",
    ]
    assert data["pathnames"][1]["url"] == "https://blobs.test/music/Janji%20-%20Heroes%20Tonight.mp3"

    data = client.get("/api/list-blobs?prefix=uploads/").get_json()
    assert [b["pathname"] for b in data["pathnames"]] == ["uploads/Tobu - Candyland.mp3"]


def test_list_blobs_error(client, broken_store):
    response = client.get("/api/list-blobs")
    assert response.status_code == 500
    assert response.get_json()["error"] == "bucket unreachable"


def test_blob_resolve(client, store):
    data = client.get("/api/blob-resolve?q=Heroes%20TONIGHT").get_json()
    assert data["found"] is True
    assert data["pathname"] == "music/Janji - Heroes Tonight.mp3"

    data = client.get("/api/blob-resolve?q=heroes%20candyland").get_json()
    assert data["found"] is False
    assert len(data["pathnames"]) == 3


def test_blob_resolve_requires_query(client, store):
    assert client.get("/api/blob-resolve?q=%20").status_code == 400


def test_blob_resolve_failure_is_not_an_error_status(client, broken_store):
    response = client.get("/api/blob-resolve?q=heroes")
    assert response.status_code == 200
    assert response.get_json() == {"found": False, "error": "bucket unreachable"}


def test_audio_tracks_filters_non_audio(client, store):
    tracks = client.get("/api/audio/tracks").get_json()["tracks"]
    assert [t["pathname"] for t in tracks] == [
        "music/Janji - Heroes Tonight.mp3",
        "uploads/Tobu - Candyland.mp3",
    ]


def test_audio_tracks_error(client, broken_store):
    assert client.get("/api/audio/tracks").status_code == 500


def test_audio_resolve_pinned_song(client, store):
    data = client.get("/api/audio/resolve/janji-heroes-tonight").get_json()
    assert data["pathname"] == "music/Janji - Heroes Tonight.mp3"
    assert data["url"].startswith("https://blobs.test/music/")


def test_audio_resolve_unknown_or_unpinned(client, store):
    assert client.get("/api/audio/resolve/nope").status_code == 404
    assert client.get("/api/audio/resolve/S19UcWdOA-I").status_code == 404


def test_upload_to_explicit_path(client, store, tmp_path):
    response = client.post("/api/upload", data={
        "file": (io.BytesIO(b"abc"), "song.mp3"),
        "path": "music/new.mp3",
    }, content_type="multipart/form-data")
    assert response.status_code == 200
    assert response.get_json() == {"url": "https://blobs.test/music/new.mp3"}
    assert (tmp_path / "music" / "new.mp3").read_bytes() == b"abc"


def test_upload_default_path(client, store):
    response = client.post("/api/upload", data={"file": (io.BytesIO(b"abc"), "song.mp3")},
                           content_type="multipart/form-data")
    url = response.get_json()["url"]
    assert url.startswith("https://blobs.test/uploads/")
    assert url.endswith("-song.mp3")


def test_upload_missing_file(client, store):
    response = client.post("/api/upload", data={}, content_type="multipart/form-data")
    assert response.status_code == 400


def test_upload_store_error(client, broken_store):
    response = client.post("/api/upload", data={"file": (io.BytesIO(b"abc"), "song.mp3")},
                           content_type="multipart/form-data")
    assert response.status_code == 500
    assert response.get_json()["error"] == "read only"


def test_library_merges_store_tracks(client, store):
    artists = client.get("/api/library").get_json()["artists"]
    assert [a["name"] for a in artists] == ["Jonas Kroeger", "Janji", "Lost Sky", "Tobu"]
    assert len(artists[1]["albums"]) == 1


def test_library_without_store(client, broken_store):
    artists = client.get("/api/library").get_json()["artists"]
    assert [a["name"] for a in artists] == ["Jonas Kroeger", "Janji", "Lost Sky"]


def test_library_with_unknown_provider(client, monkeypatch):
    api.set_store(None)
    monkeypatch.setenv("BLOB_PROVIDER", "s3")
    response = client.get("/api/library")
    assert response.status_code == 200
    assert [a["name"] for a in response.get_json()["artists"]] == ["Jonas Kroeger", "Janji", "Lost Sky"]

    data = client.get("/api/audio/tracks").get_json()
    assert "Unknown BLOB_PROVIDER 's3'" in data["error"]


def test_playback_relay(client):
    assert client.get("/api/playback").status_code == 404
    assert client.post("/api/playback", json={"type": "other"}).status_code == 400

    message = {
        "type": "playback", "isPlaying": True, "title": "Heroes Tonight", "artist": "Janji",
        "album": "Heroes Tonight", "audioUrl": "https://blobs.test/h.mp3", "artwork": None,
        "device_id": "pod-1",
    }
    assert client.post("/api/playback", json=message).status_code == 200

    state = client.get("/api/playback").get_json()
    assert state["title"] == "Heroes Tonight"
    assert state["isPlaying"] is True
    assert state["device_id"] == "pod-1"
    assert client.get("/api/playback?device_id=pod-2").status_code == 404
