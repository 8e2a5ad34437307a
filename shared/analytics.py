"""
Usage analytics for the pod.

Events are kept in memory (bounded) and written to the log; nothing leaves
the process.
"""

import logging
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List

logger = logging.getLogger(__name__)

MAX_EVENTS = 500

_lock = threading.Lock()
_events: Deque[Dict[str, Any]] = deque(maxlen=MAX_EVENTS)


def track_event(name: str, **properties: Any) -> None:
    event = {"event": name, "ts": time.time(), **properties}
    with _lock:
        _events.append(event)
    logger.debug("analytics %s %s", name, properties)


def recent_events() -> List[Dict[str, Any]]:
    with _lock:
        return list(_events)


def clear_events() -> None:
    with _lock:
        _events.clear()


def track_autoplay(artist: str, album: str, title: str, mode: str) -> None:
    """mode is "Auto" for sequential advance and "Shuffle" for random picks."""
    track_event("autoplay", artist=artist, album=album, title=title, mode=mode)


def track_song_play(artist: str, album: str, title: str, device: str) -> None:
    track_event("song_play", artist=artist, album=album, title=title, device=device)


def track_song_pause(artist: str, album: str, title: str, device: str) -> None:
    track_event("song_pause", artist=artist, album=album, title=title, device=device)


def track_navigation(level: str, item: str, device: str) -> None:
    track_event("navigation", level=level, item=item, device=device)


def track_menu_back(from_level: str, to_level: str, device: str) -> None:
    track_event("menu_back", from_level=from_level, to_level=to_level, device=device)


def track_volume_change(volume: int, device: str) -> None:
    track_event("volume_change", volume=volume, device=device)


def track_button_press(button: str, device: str) -> None:
    track_event("button_press", button=button, device=device)
