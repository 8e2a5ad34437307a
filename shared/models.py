"""
Data models for the music library, navigation and blob store listings.

This module defines the core data structures shared by the pod, the API
server and the native shell.
"""

import dataclasses
from dataclasses import dataclass, asdict, field, replace
from typing import List, Dict, Optional, Any
from enum import Enum


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    """Filter a dictionary down to the dataclass's field names."""
    field_names = {f.name for f in dataclasses.fields(cls)}
    return {k: v for k, v in data.items() if k in field_names}


class StorageProvider(Enum):
    """Supported blob store backends."""
    CLOUDFLARE_R2 = "r2"
    LOCAL = "local"


class NavigationLevel(Enum):
    """Screens of the pod menu hierarchy."""
    ARTISTS = "artists"
    ALBUMS = "albums"
    SONGS = "songs"
    NOW_PLAYING = "nowPlaying"
    GAMES = "games"


class RepeatMode(Enum):
    OFF = "off"
    ONE = "one"
    ALL = "all"

    def next(self) -> 'RepeatMode':
        """Cycle off -> one -> all -> off."""
        order = [RepeatMode.OFF, RepeatMode.ONE, RepeatMode.ALL]
        return order[(order.index(self) + 1) % len(order)]


@dataclass
class Song:
    """
    A single song in the library.

    Attributes:
        id: Video id used by the video backend (blob songs use "blob-<pathname>")
        title: Song title
        duration: Display duration ("m:ss"), optional
        audio_url: Direct audio URL for the direct backend, optional
        r2_key: Object key under the audio server, preferred over audio_url
        audio_url_fallbacks: Ordered URLs or keys tried when loading fails
        resolve_query: Search terms used to locate the song in the blob store
    """
    id: str
    title: str
    duration: Optional[str] = None
    audio_url: Optional[str] = None
    r2_key: Optional[str] = None
    audio_url_fallbacks: List[str] = field(default_factory=list)
    resolve_query: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Song':
        return cls(**_known_fields(cls, data))


@dataclass
class Album:
    name: str
    songs: List[Song]
    year: Optional[str] = None
    cover_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "year": self.year,
            "cover_url": self.cover_url,
            "songs": [s.to_dict() for s in self.songs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Album':
        filtered = _known_fields(cls, data)
        filtered['songs'] = [Song.from_dict(s) for s in data.get('songs', [])]
        return cls(**filtered)


@dataclass
class Artist:
    name: str
    albums: List[Album]
    photo_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "photo_url": self.photo_url,
            "albums": [a.to_dict() for a in self.albums],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Artist':
        filtered = _known_fields(cls, data)
        filtered['albums'] = [Album.from_dict(a) for a in data.get('albums', [])]
        return cls(**filtered)


@dataclass(frozen=True)
class NavigationState:
    """
    Position in the menu hierarchy.

    Frozen so that listeners always see a consistent snapshot; use
    ``replace`` to derive the next state.
    """
    level: NavigationLevel = NavigationLevel.ARTISTS
    artist: Optional[Artist] = None
    album: Optional[Album] = None
    song: Optional[Song] = None

    def replace(self, **changes) -> 'NavigationState':
        return replace(self, **changes)

    @property
    def has_selection(self) -> bool:
        """True when artist, album and song are all selected."""
        return self.artist is not None and self.album is not None and self.song is not None


@dataclass
class BlobInfo:
    """One object in the blob store."""
    pathname: str
    url: str
    size: int = 0
    uploaded_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_track(self) -> Dict[str, str]:
        """Shape used by the listing routes."""
        return {"pathname": self.pathname, "url": self.url}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BlobInfo':
        return cls(**_known_fields(cls, data))
