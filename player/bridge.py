"""
Playback bridge to the native shell.

Publishes a "playback" message whenever the song or play state changes,
and repeats it every PLAYBACK_HEARTBEAT_SECONDS while playing so a shell
that joins late still picks it up.
"""

import logging
import threading
import uuid
from typing import Any, Callable, Dict, Optional

import requests

from shared.audio_urls import get_song_audio_url
from shared.config import api_url
from shared.constants import DEFAULT_NETWORK_TIMEOUT, PLAYBACK_HEARTBEAT_SECONDS
from player.playback import MusicPlaybackContext, STATE

logger = logging.getLogger(__name__)

Transport = Callable[[Dict[str, Any]], None]


def build_playback_message(context: MusicPlaybackContext) -> Dict[str, Any]:
    nav = context.navigation
    song, album, artist = nav.song, nav.album, nav.artist
    artwork = (album.cover_url if album else None) or (artist.photo_url if artist else None)
    return {
        "type": "playback",
        "isPlaying": context.is_playing,
        "title": song.title if song else "",
        "artist": artist.name if artist else "",
        "album": album.name if album else "",
        "audioUrl": (get_song_audio_url(song) if song else None) or "",
        "artwork": artwork,
    }


class HttpTransport:
    """Posts playback messages to the API server's relay."""

    def __init__(self, base_url: Optional[str] = None, device_id: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        self.url = f"{(base_url or api_url()).rstrip('/')}/api/playback"
        self.device_id = device_id or uuid.uuid4().hex
        self.session = session or requests.Session()

    def __call__(self, message: Dict[str, Any]) -> None:
        payload = dict(message, device_id=self.device_id)
        try:
            self.session.post(self.url, json=payload, timeout=DEFAULT_NETWORK_TIMEOUT)
        except requests.RequestException as e:
            logger.debug("Playback relay unreachable: %s", e)


class PlaybackBridge:
    """Sends playback messages from a context through ``transport``."""

    def __init__(self, context: MusicPlaybackContext, transport: Transport,
                 interval: float = PLAYBACK_HEARTBEAT_SECONDS):
        self.context = context
        self.transport = transport
        self.interval = interval
        self._last_message: Optional[Dict[str, Any]] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self.context.add_listener(self._on_change)
        self.send()
        self._thread = threading.Thread(target=self._heartbeat, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self.context.remove_listener(self._on_change)
        self._stop.set()

    def send(self) -> Dict[str, Any]:
        message = build_playback_message(self.context)
        self._last_message = message
        try:
            self.transport(message)
        except Exception as e:
            logger.error("Playback transport failed: %s", e)
        return message

    def _on_change(self, topic: str) -> None:
        if topic != STATE:
            return
        if build_playback_message(self.context) != self._last_message:
            self.send()

    def _heartbeat(self) -> None:
        while not self._stop.wait(self.interval):
            if self.context.is_playing:
                self.send()
