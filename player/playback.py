"""
Music playback context.

Owns everything the pod screens share: the library, the navigation
position, play/pause, volume, shuffle and repeat. Selecting a song loads it
on the matching backend (direct audio or video); transport actions walk the
library in artist → album → song order.
"""

import logging
import random
import threading
from typing import Callable, List, Optional

import requests

from shared import analytics
from shared.audio_urls import get_song_audio_url, r2_url
from shared.config import api_url, pinned_track_path
from shared.constants import DEFAULT_NETWORK_TIMEOUT, DEFAULT_VOLUME
from shared.models import Artist, NavigationLevel, NavigationState, RepeatMode, Song
from player.engine import PlaybackBackend, uses_direct_audio
from player.library import LibraryManager, SongRef, get_all_songs

logger = logging.getLogger(__name__)

# Listener topics
STATE = "state"
TIME = "time"


def resolve_via_api(song: Song, base_url: Optional[str] = None) -> Optional[str]:
    """Ask the API server for the current store URL of a pinned song."""
    url = f"{(base_url or api_url()).rstrip('/')}/api/audio/resolve/{song.id}"
    try:
        response = requests.get(url, timeout=DEFAULT_NETWORK_TIMEOUT)
        if not response.ok:
            return None
        return response.json().get("url") or None
    except (requests.RequestException, ValueError) as e:
        logger.warning("Resolve failed for %s: %s", song.id, e)
        return None


class MusicPlaybackContext:
    """
    Shared playback state for the pod.

    Backends are optional: without them (or with ``native_shell`` set) the
    context only tracks state and a companion shell does the playing.
    """

    def __init__(self,
                 library_manager: Optional[LibraryManager] = None,
                 direct_backend: Optional[PlaybackBackend] = None,
                 video_backend: Optional[PlaybackBackend] = None,
                 native_shell: bool = False,
                 resolver: Optional[Callable[[Song], Optional[str]]] = None,
                 rng: Optional[random.Random] = None):
        self.library_manager = library_manager or LibraryManager()
        self.direct_backend = direct_backend
        self.video_backend = video_backend
        self.native_shell = native_shell
        self._resolver = resolver or resolve_via_api
        self._rng = rng or random.Random()

        self.navigation = NavigationState()
        self.selected_index = 0
        self.is_playing = False
        self.volume = DEFAULT_VOLUME
        self.shuffle = False
        self.repeat = RepeatMode.OFF
        self.direct_current_time = 0.0
        self.direct_duration = 0.0

        self._previous_song: Optional[Song] = None
        self._lock = threading.RLock()
        self._listeners: List[Callable[[str], None]] = []

        for backend in self._backends():
            backend.add_track_end_callback(self._on_track_end)
        if self.direct_backend is not None:
            self.direct_backend.set_time_update_callback(self._on_direct_time)
            self.direct_backend.set_duration_callback(self._on_direct_duration)

    @property
    def library(self) -> List[Artist]:
        return self.library_manager.library

    # --- Listeners ---

    def add_listener(self, callback: Callable[[str], None]) -> None:
        """Register ``callback(topic)``; topic is STATE or TIME."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[str], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def notify(self, topic: str = STATE) -> None:
        for callback in list(self._listeners):
            try:
                callback(topic)
            except Exception as e:
                logger.error("Error in playback listener %s: %s", callback, e)

    # --- Plain setters ---

    def set_navigation(self, navigation: NavigationState) -> None:
        with self._lock:
            self.navigation = navigation
            self._sync_song()
            self._apply_play_state()
        self.notify()

    def set_selected_index(self, index: int) -> None:
        with self._lock:
            self.selected_index = index
        self.notify()

    def set_is_playing(self, playing: bool) -> None:
        with self._lock:
            self.is_playing = playing
            self._apply_play_state()
        self.notify()

    def toggle_playing(self) -> None:
        self.set_is_playing(not self.is_playing)

    def set_volume(self, volume: int) -> None:
        with self._lock:
            self.volume = max(0, min(100, int(volume)))
            if not self.native_shell:
                for backend in self._backends():
                    backend.set_volume(self.volume)
        self.notify()

    def set_shuffle(self, value: bool) -> None:
        with self._lock:
            self.shuffle = value
        self.notify()

    def cycle_repeat(self) -> RepeatMode:
        with self._lock:
            self.repeat = self.repeat.next()
        self.notify()
        return self.repeat

    def seek_direct_playback(self, seconds: float) -> None:
        """Seek the direct-audio stream. No-op for video playback."""
        with self._lock:
            if self.native_shell or self.direct_backend is None:
                return
            if not uses_direct_audio(self.navigation.song):
                return
            position = max(0.0, seconds)
            self.direct_backend.seek(position)
            self.direct_current_time = position
        self.notify(TIME)

    # --- Track advancement ---

    def _song_positions(self):
        nav = self.navigation
        library = self.library
        artist_index = next((i for i, a in enumerate(library) if a.name == nav.artist.name), -1)
        album_index = next((i for i, a in enumerate(nav.artist.albums) if a.name == nav.album.name), -1)
        song_index = next((i for i, s in enumerate(nav.album.songs) if s.id == nav.song.id), -1)
        return library, artist_index, album_index, song_index

    def _move_to(self, ref: SongRef, mode: str, keep_level: bool = False) -> None:
        """Select and start ``ref``. Caller holds the lock and notifies."""
        artist, album, song = ref
        analytics.track_autoplay(artist.name, album.name, song.title, mode)
        self.is_playing = True
        level = self.navigation.level if keep_level else NavigationLevel.NOW_PLAYING
        self.navigation = NavigationState(level=level, artist=artist, album=album, song=song)
        self._sync_song()
        self._apply_play_state()

    def _random_ref(self) -> Optional[SongRef]:
        all_songs = get_all_songs(self.library)
        if not all_songs:
            return None
        return all_songs[self._rng.randrange(len(all_songs))]

    def _next_in_order(self) -> Optional[SongRef]:
        """Next song after the current one, or None at the end of the library."""
        nav = self.navigation
        library, artist_index, album_index, song_index = self._song_positions()
        if song_index < len(nav.album.songs) - 1:
            return nav.artist, nav.album, nav.album.songs[song_index + 1]
        if album_index < len(nav.artist.albums) - 1:
            album = nav.artist.albums[album_index + 1]
            return nav.artist, album, album.songs[0]
        if artist_index < len(library) - 1:
            artist = library[artist_index + 1]
            album = artist.albums[0]
            return artist, album, album.songs[0]
        return None

    def _previous_in_order(self) -> Optional[SongRef]:
        nav = self.navigation
        library, artist_index, album_index, song_index = self._song_positions()
        if song_index > 0:
            return nav.artist, nav.album, nav.album.songs[song_index - 1]
        if album_index > 0:
            album = nav.artist.albums[album_index - 1]
            return nav.artist, album, album.songs[-1]
        if artist_index > 0:
            artist = library[artist_index - 1]
            album = artist.albums[-1]
            return artist, album, album.songs[-1]
        return None

    def _advance(self, in_order: Callable[[], Optional[SongRef]],
                 wrap_index: int, autoplay: bool = False) -> None:
        """
        Move to the song ``in_order`` picks, honouring repeat and shuffle.

        The target is chosen and selected under the lock, so a track end
        racing a button press cannot act on a half-updated position.
        ``wrap_index`` is the library position to loop to when ``in_order``
        runs off the end; buttons only loop with repeat-all, autoplay always.
        """
        with self._lock:
            if not self.navigation.has_selection:
                return
            if self.repeat == RepeatMode.ONE:
                self.is_playing = True
                if autoplay:
                    # The ended file is gone; load it again from the top
                    self._previous_song = None
                    self._sync_song()
                self._apply_play_state()
            else:
                ref = self._random_ref() if self.shuffle else None
                if ref is not None:
                    self._move_to(ref, "Shuffle")
                else:
                    ref = in_order()
                    if ref is not None:
                        self._move_to(ref, "Auto", keep_level=ref[0] is self.navigation.artist)
                    elif autoplay or self.repeat == RepeatMode.ALL:
                        all_songs = get_all_songs(self.library)
                        if not all_songs:
                            return
                        self._move_to(all_songs[wrap_index], "Auto")
                    else:
                        return
        self.notify()

    def advance_to_next(self) -> None:
        """Next button: respects repeat-one, shuffle and repeat-all."""
        self._advance(self._next_in_order, 0)

    def advance_to_previous(self) -> None:
        """Previous button: mirror of advance_to_next."""
        self._advance(self._previous_in_order, -1)

    def play_next_song(self) -> None:
        """
        Autoplay after a track ends. Unlike the Next button, reaching the end
        of the library always loops back to the first song.
        """
        self._advance(self._next_in_order, 0, autoplay=True)

    # --- Backend wiring ---

    def _backends(self) -> List[PlaybackBackend]:
        return [b for b in (self.direct_backend, self.video_backend) if b is not None]

    def _active_backend(self) -> Optional[PlaybackBackend]:
        song = self.navigation.song
        if song is None:
            return None
        return self.direct_backend if uses_direct_audio(song) else self.video_backend

    def _sync_song(self) -> None:
        """Load the selected song on its backend when it changed."""
        song = self.navigation.song
        if song is None or self.native_shell:
            return
        if self._previous_song is not None and self._previous_song.id == song.id:
            return
        backend = self._active_backend()
        if backend is None:
            return
        self._previous_song = song

        for other in self._backends():
            if other is not backend and other.current_song is not None:
                other.stop()

        if backend is self.direct_backend:
            self.direct_current_time = 0.0
            self.direct_duration = 0.0
            backend.load(song, autoplay=self.is_playing, url=self._direct_url(song))
        else:
            backend.load(song, autoplay=self.is_playing)

    def _direct_url(self, song: Song) -> Optional[str]:
        """Primary URL, except pinned songs which resolve their current store path."""
        primary = get_song_audio_url(song)
        if not song.resolve_query:
            return primary
        path = pinned_track_path()
        if path:
            return r2_url(path)
        return self._resolver(song) or primary

    def _apply_play_state(self) -> None:
        if self.native_shell:
            return
        backend = self._active_backend()
        if backend is None or backend.current_song is None:
            return
        if self.is_playing:
            backend.play()
        else:
            backend.pause()

    def _on_track_end(self) -> None:
        with self._lock:
            self.is_playing = False
        self.play_next_song()

    def _on_direct_time(self, seconds: float) -> None:
        self.direct_current_time = seconds
        self.notify(TIME)

    def _on_direct_duration(self, seconds: float) -> None:
        self.direct_duration = seconds
        self.notify(TIME)
