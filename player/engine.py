"""
Playback backends using python-mpv.

Two backends drive playback: DirectAudioEngine streams a song's audio URL
(retrying the song's fallback URLs when a load fails) and VideoEngine plays
a song by video id through mpv's ytdl hook. The playback context picks one
per song.
"""

import logging
import time
from typing import Callable, List, Optional

from shared.audio_urls import get_song_audio_url, get_song_audio_url_fallbacks
from shared.constants import TIME_UPDATE_INTERVAL
from shared.models import Song

logger = logging.getLogger(__name__)

VIDEO_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"


def _create_player(ytdl: bool):
    """Audio-only mpv instance. Raises OSError when libmpv is missing."""
    import mpv
    return mpv.MPV(vo='null', ytdl=ytdl, input_default_bindings=False)


class PlaybackBackend:
    """Common mpv wrapper: transport controls, events and callbacks."""

    name = "backend"

    def __init__(self, player=None, ytdl: bool = False):
        self.player = player if player is not None else _create_player(ytdl)

        self.current_song: Optional[Song] = None
        self.is_loading = False

        self._track_end_callbacks: List[Callable[[], None]] = []
        self._on_time_update: Optional[Callable[[float], None]] = None
        self._on_duration: Optional[Callable[[float], None]] = None
        self._last_time_update = 0.0

        self.player.observe_property('time-pos', self._handle_time_update)
        self.player.observe_property('duration', self._handle_duration)
        self.player.register_event_callback(self._handle_event)

    # Transport
    def load(self, song: Song, autoplay: bool, url: Optional[str] = None) -> None:
        raise NotImplementedError

    def play(self) -> None:
        self.player.pause = False

    def pause(self) -> None:
        self.player.pause = True

    def stop(self) -> None:
        self.player.stop()
        self.current_song = None
        self.is_loading = False

    def seek(self, position: float) -> None:
        """Seek to absolute position in seconds."""
        if self.current_song:
            try:
                self.player.seek(max(0.0, position), reference='absolute')
            except Exception as e:
                logger.warning("Error seeking: %s", e)

    def set_volume(self, level: int) -> None:
        """Set volume (0-100)."""
        self.player.volume = max(0, min(100, level))

    def get_time(self) -> float:
        return self.player.time_pos or 0

    def get_duration(self) -> float:
        return self.player.duration or 0

    def _open(self, url: str, autoplay: bool) -> None:
        self.player.play(url)
        # Paused loads cue the media without starting it
        self.player.pause = not autoplay

    # Event handlers
    def _handle_time_update(self, name, value):
        """Time position updates, throttled to TIME_UPDATE_INTERVAL."""
        if value is None:
            return
        if self.is_loading:
            self.is_loading = False
        if self._on_time_update:
            now = time.monotonic()
            if now - self._last_time_update >= TIME_UPDATE_INTERVAL:
                self._last_time_update = now
                self._on_time_update(value)

    def _handle_duration(self, name, value):
        if value and self._on_duration:
            self._on_duration(value)

    def _handle_event(self, event):
        import mpv
        if event.event_id.value != mpv.MpvEventID.END_FILE:
            return
        reason = getattr(event.data, 'reason', None)
        if reason == mpv.MpvEventEndFile.ERROR:
            self.on_load_error()
        elif reason == mpv.MpvEventEndFile.EOF:
            self.on_ended()

    def on_load_error(self) -> None:
        self.is_loading = False
        logger.error("[%s] failed to load %s", self.name,
                     self.current_song.title if self.current_song else "<none>")

    def on_ended(self) -> None:
        """Execute all registered track end callbacks safely."""
        self.is_loading = False
        for callback in self._track_end_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error("Error executing track end callback %s: %s", callback, e)

    # Callback setters
    def add_track_end_callback(self, callback: Callable[[], None]):
        if callback not in self._track_end_callbacks:
            self._track_end_callbacks.append(callback)

    def set_time_update_callback(self, callback: Callable[[float], None]):
        self._on_time_update = callback

    def set_duration_callback(self, callback: Callable[[float], None]):
        self._on_duration = callback


class DirectAudioEngine(PlaybackBackend):
    """
    Streams a song's direct audio URL.

    When a load fails the next fallback URL is tried; the fallback position
    resets whenever a new song is loaded.
    """

    name = "direct"

    def __init__(self, player=None):
        super().__init__(player=player, ytdl=False)
        self.fallback_index = 0
        self.current_url: Optional[str] = None
        self._autoplay = False

    def load(self, song: Song, autoplay: bool, url: Optional[str] = None) -> None:
        """Load ``url`` (default: the song's primary URL)."""
        target = url or get_song_audio_url(song)
        if not target:
            raise ValueError(f"Song {song.id} has no direct audio URL")
        self.current_song = song
        self.fallback_index = 0
        self.is_loading = True
        self._autoplay = autoplay
        self._load_url(target)

    def _load_url(self, url: str) -> None:
        self.current_url = url
        self._open(url, self._autoplay)

    def play(self) -> None:
        self._autoplay = True
        super().play()

    def pause(self) -> None:
        self._autoplay = False
        super().pause()

    def on_load_error(self) -> None:
        fallbacks = get_song_audio_url_fallbacks(self.current_song) if self.current_song else []
        if self.fallback_index < len(fallbacks):
            next_url = fallbacks[self.fallback_index]
            self.fallback_index += 1
            logger.info("[direct] %s failed, trying fallback %d: %s",
                        self.current_url, self.fallback_index, next_url)
            self._load_url(next_url)
            return
        self.is_loading = False
        logger.error("[direct] audio failed to load: %s", self.current_url)


class VideoEngine(PlaybackBackend):
    """Plays a song by video id through mpv's ytdl hook (audio only)."""

    name = "video"

    def __init__(self, player=None):
        super().__init__(player=player, ytdl=True)

    def load(self, song: Song, autoplay: bool, url: Optional[str] = None) -> None:
        """Load and play when ``autoplay``; otherwise cue the video paused."""
        self.current_song = song
        self.is_loading = True
        try:
            self._open(url or VIDEO_URL_TEMPLATE.format(video_id=song.id), autoplay)
        except Exception as e:
            logger.error("Error loading video %s: %s", song.id, e)
            self.is_loading = False


def uses_direct_audio(song: Optional[Song]) -> bool:
    """Direct audio whenever the song has a direct URL; otherwise video."""
    return bool(song and get_song_audio_url(song))
