"""
Resolving playable URLs for songs.

Song keys are object paths relative to the audio server; fallbacks may mix
keys and absolute URLs.
"""

from typing import List, Optional
from urllib.parse import quote

from shared.config import audio_base_url
from shared.models import Song


def r2_url(object_key: str) -> str:
    """Build the full audio URL for a key such as "music/Artist - Song.mp3"."""
    encoded = "/".join(quote(segment, safe="") for segment in object_key.split("/"))
    return f"{audio_base_url()}/{encoded}"


def _entry_url(entry: str) -> str:
    return entry if entry.startswith("http") else r2_url(entry)


def get_song_audio_url(song: Song) -> Optional[str]:
    """Primary direct-audio URL, or None when the song only has a video id."""
    if song.r2_key:
        return r2_url(song.r2_key)
    return song.audio_url or None


def get_song_audio_url_fallbacks(song: Song) -> List[str]:
    """Ordered fallback URLs, excluding the primary and duplicates."""
    primary = get_song_audio_url(song)
    urls: List[str] = []
    for entry in song.audio_url_fallbacks:
        url = _entry_url(entry)
        if url != primary and url not in urls:
            urls.append(url)
    return urls


def parse_duration(value: Optional[str]) -> int:
    """Parse "m:ss" or "h:mm:ss" into seconds. Anything else is 0."""
    if not value:
        return 0
    try:
        parts = [int(p) for p in value.split(":")]
    except ValueError:
        return 0
    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    return 0


def format_time(seconds: float) -> str:
    s = max(0, int(seconds or 0))
    return f"{s // 60}:{s % 60:02d}"
