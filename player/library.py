"""
Library management for the pod.

Holds the static catalog and merges in audio files discovered in the blob
store, skipping anything the catalog already has.
"""

import logging
import re
import threading
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

import requests

from shared.catalog import build_catalog
from shared.config import api_url
from shared.constants import (
    BLOB_SONG_ID_PREFIX,
    DEFAULT_NETWORK_TIMEOUT,
    MERGED_ALBUM_NAME,
    UNKNOWN_ARTIST,
)
from shared.models import Album, Artist, Song

logger = logging.getLogger(__name__)

SongRef = Tuple[Artist, Album, Song]

_TRAILING_TAG = re.compile(r"\s*[(\[]([^)\]]*)[)\]]\s*$")
_EXTENSION = re.compile(r"\.[^./]+$")


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def _entry_filename(entry: str) -> str:
    """Filename of a fallback entry; URLs lose their query string."""
    name = _basename(entry)
    if entry.startswith("http"):
        name = name.split("?", 1)[0]
    return name


def norm(s: str) -> str:
    """Normalize for artist/title comparison."""
    return s.strip().lower()


def norm_basename(path: str) -> str:
    """
    Normalize a path or filename for duplicate detection: basename without
    extension, lowercased, with one trailing " (x)" or " [x]" removed.
    """
    base = _EXTENSION.sub("", _basename(path)).strip().lower()
    stripped = _TRAILING_TAG.sub("", base).strip()
    return stripped or base


def _iter_songs(library: Iterable[Artist]):
    for artist in library:
        for album in artist.albums:
            for song in album.songs:
                yield artist, album, song


def static_keys(library: Iterable[Artist]) -> Set[str]:
    """Keys, filenames and fallback entries already present in the library."""
    keys: Set[str] = set()
    for _, _, song in _iter_songs(library):
        if song.r2_key:
            keys.add(song.r2_key)
            keys.add(_basename(song.r2_key))
        for entry in song.audio_url_fallbacks:
            keys.add(entry)
            keys.add(_entry_filename(entry))
    return keys


def static_normalized_basenames(library: Iterable[Artist]) -> Set[str]:
    names: Set[str] = set()
    for _, _, song in _iter_songs(library):
        if song.r2_key:
            names.add(norm_basename(song.r2_key))
        for entry in song.audio_url_fallbacks:
            names.add(norm_basename(_entry_filename(entry)))
    return names


def _has_title(songs: Iterable[Song], title: str) -> bool:
    n_title = norm(title)
    for song in songs:
        existing = norm(song.title)
        if existing == n_title or n_title in existing or existing in n_title:
            return True
    return False


def library_has_artist_title(library: Iterable[Artist], artist: str, title: str) -> bool:
    """True if the artist already has this title, or one containing / contained by it."""
    n_artist = norm(artist)
    for a in library:
        if norm(a.name) != n_artist:
            continue
        for album in a.albums:
            if _has_title(album.songs, title):
                return True
    return False


def parse_blob_filename(pathname: str) -> Tuple[str, str]:
    """
    Split "Artist - Song Title.ext" into (artist, title).

    Without " - " the whole filename is the title and the artist is
    "Unknown Artist".
    """
    base = _EXTENSION.sub("", _basename(pathname)).strip()
    artist, sep, title = base.partition(" - ")
    if sep:
        return artist.strip() or UNKNOWN_ARTIST, title.strip() or base
    return UNKNOWN_ARTIST, base or pathname


def is_known_track(library: List[Artist], pathname: str,
                   keys: Optional[Set[str]] = None,
                   basenames: Optional[Set[str]] = None) -> bool:
    """Whether a blob path duplicates a library song by path, basename or artist+title."""
    keys = keys if keys is not None else static_keys(library)
    basenames = basenames if basenames is not None else static_normalized_basenames(library)
    if pathname in keys or _basename(pathname) in keys:
        return True
    if norm_basename(pathname) in basenames:
        return True
    artist, title = parse_blob_filename(pathname)
    return library_has_artist_title(library, artist, title)


def merge_blob_tracks(library: List[Artist], blob_tracks: Iterable[Mapping[str, str]]) -> List[Artist]:
    """
    Merge store tracks into the library by artist.

    New songs are grouped per artist (case-insensitive, first spelling
    wins). A group becomes one album named after its only song, or
    "Tracks". Groups for an existing artist are appended to that artist's
    albums; other groups become new artists at the end. The input list and
    its artists are not modified.
    """
    keys = static_keys(library)
    basenames = static_normalized_basenames(library)

    by_artist: Dict[str, Tuple[str, List[Song]]] = {}
    for track in blob_tracks:
        pathname = track.get("pathname") or ""
        if not pathname or is_known_track(library, pathname, keys, basenames):
            continue
        artist, title = parse_blob_filename(pathname)
        key = norm(artist)
        # Earlier tracks of the same batch count as known too
        if key in by_artist and _has_title(by_artist[key][1], title):
            continue
        keys.update((pathname, _basename(pathname)))
        basenames.add(norm_basename(pathname))

        song = Song(id=f"{BLOB_SONG_ID_PREFIX}{pathname}", title=title, audio_url=track.get("url"))
        if key in by_artist:
            by_artist[key][1].append(song)
        else:
            by_artist[key] = (artist, [song])

    if not by_artist:
        return list(library)

    artists = list(library)
    for display_name, songs in by_artist.values():
        album_name = songs[0].title if len(songs) == 1 else MERGED_ALBUM_NAME
        album = Album(name=album_name, songs=songs)
        existing = next((i for i, a in enumerate(artists) if norm(a.name) == norm(display_name)), None)
        if existing is not None:
            current = artists[existing]
            artists[existing] = Artist(name=current.name, albums=current.albums + [album],
                                       photo_url=current.photo_url)
        else:
            artists.append(Artist(name=display_name, albums=[album]))
    return artists


def get_all_songs(library: Iterable[Artist]) -> List[SongRef]:
    """Flat list of every (artist, album, song) in library order."""
    return list(_iter_songs(library))


def find_song(library: Iterable[Artist], song_id: str) -> Optional[SongRef]:
    for ref in _iter_songs(library):
        if ref[2].id == song_id:
            return ref
    return None


def fetch_blob_tracks(base_url: Optional[str] = None,
                      session: Optional[requests.Session] = None) -> List[Dict[str, str]]:
    """
    Audio tracks listed by the API server. Failures yield an empty list so
    the pod still starts with the static catalog.
    """
    url = f"{(base_url or api_url()).rstrip('/')}/api/audio/tracks"
    http = session or requests
    try:
        response = http.get(url, timeout=DEFAULT_NETWORK_TIMEOUT)
        if not response.ok:
            logger.warning("Track listing returned %s", response.status_code)
            return []
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("Could not fetch store tracks: %s", e)
        return []
    tracks = data.get("tracks") if isinstance(data, dict) else None
    return [t for t in (tracks or []) if isinstance(t, dict) and t.get("pathname")]


class LibraryManager:
    """Static catalog plus whatever the blob store adds at startup."""

    def __init__(self, catalog: Optional[List[Artist]] = None, base_url: Optional[str] = None):
        self._static = catalog if catalog is not None else build_catalog()
        self._base_url = base_url
        self._blob_tracks: List[Dict[str, str]] = []
        self._library = list(self._static)
        self._lock = threading.Lock()
        self._on_change_callbacks: List[Callable[[], None]] = []

    @property
    def library(self) -> List[Artist]:
        with self._lock:
            return self._library

    @property
    def static_library(self) -> List[Artist]:
        return self._static

    def set_blob_tracks(self, tracks: Iterable[Mapping[str, str]]) -> None:
        tracks = [dict(t) for t in tracks]
        with self._lock:
            self._blob_tracks = tracks
            self._library = merge_blob_tracks(list(self._static), tracks)
        self._notify_change()

    def refresh(self, session: Optional[requests.Session] = None) -> int:
        """Fetch store tracks and re-merge. Returns the number of tracks listed."""
        tracks = fetch_blob_tracks(self._base_url, session=session)
        if tracks:
            self.set_blob_tracks(tracks)
        return len(tracks)

    def get_all_songs(self) -> List[SongRef]:
        return get_all_songs(self.library)

    def search(self, query: str) -> List[SongRef]:
        q = norm(query)
        return [
            ref for ref in self.get_all_songs()
            if q in norm(ref[2].title) or q in norm(ref[0].name) or q in norm(ref[1].name)
        ]

    def add_change_callback(self, callback: Callable[[], None]) -> None:
        if callback not in self._on_change_callbacks:
            self._on_change_callbacks.append(callback)

    def _notify_change(self) -> None:
        for callback in self._on_change_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error("Error in library change callback: %s", e)
