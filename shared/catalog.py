"""
The hand-authored music library.

Songs with an ``r2_key`` (or ``audio_url``) stream directly from the audio
server; the rest play through the video backend by id.
"""

from typing import List

from shared.models import Artist, Album, Song


def _yt_thumb(video_id: str, size: str = "mqdefault") -> str:
    return f"https://i.ytimg.com/vi/{video_id}/{size}.jpg"


def build_catalog() -> List[Artist]:
    """Return a fresh copy of the static library."""
    return [
        Artist(
            name="Jonas Kroeger",
            photo_url=_yt_thumb("ACuG31JtcGs", "default"),
            albums=[
                Album(
                    name="Midnight Vibes",
                    year="2024",
                    cover_url=_yt_thumb("ACuG31JtcGs"),
                    songs=[
                        Song(id="ACuG31JtcGs", title="Amor En Ritmo", duration="2:49",
                             r2_key="music/Amor en Ritmo.mp3",
                             audio_url_fallbacks=["music/Amor en Ritmo.wav"]),
                        Song(id="4mkR5XDO8iI", title="Love in the Air", duration="3:58",
                             r2_key="music/Love in the Air.mp3",
                             audio_url_fallbacks=["music/Love in the Air.wav"]),
                        Song(id="8-7LRfXxHY0", title="Endless Nights", duration="3:13",
                             r2_key="music/Endless Nights.mp3",
                             audio_url_fallbacks=["music/Endless Nights.wav"]),
                        Song(id="UZ9sFRpcvNs", title="Lost Vibes", duration="3:31",
                             r2_key="music/Lost Vibes.mp3",
                             audio_url_fallbacks=["music/Lost Vibes.wav"]),
                        Song(id="4AVw8CR8J84", title="Midnight Serenade", duration="2:49",
                             r2_key="music/Midnight Serenade.mp3",
                             audio_url_fallbacks=["music/Midnight Serenade.wav"]),
                        Song(id="-EoJD-oKwg0", title="Neon Nights", duration="2:47",
                             r2_key="music/Neon Nights.mp3",
                             audio_url_fallbacks=["music/Neon Nights.wav"]),
                        Song(id="3rdFW0aHwOs", title="Pulse of the Night", duration="3:20",
                             r2_key="music/Pulse of the Night.mp3",
                             audio_url_fallbacks=["music/Pulse of the Night.wav"]),
                        Song(id="ydmMCdHe-hE", title="Heartstrings Serenade", duration="3:49",
                             r2_key="music/Heartstrings Serenade (Remastered).mp3",
                             audio_url_fallbacks=[
                                 "music/Heartstrings Serenade (Remastered).wav",
                                 "music/Heartstrings Serenade.wav",
                             ]),
                    ],
                ),
            ],
        ),
        Artist(
            name="Janji",
            photo_url=_yt_thumb("3nQNiWdeH2Q", "default"),
            albums=[
                Album(
                    name="Heroes Tonight",
                    year="2015",
                    cover_url=_yt_thumb("3nQNiWdeH2Q"),
                    songs=[
                        Song(id="janji-heroes-tonight", title="Heroes Tonight", duration="3:28",
                             r2_key="music/Janji - Heroes Tonight.mp3",
                             resolve_query="heroes tonight"),
                    ],
                ),
            ],
        ),
        Artist(
            name="Lost Sky",
            photo_url=_yt_thumb("S19UcWdOA-I", "default"),
            albums=[
                Album(
                    name="Fearless pt.II",
                    year="2017",
                    cover_url=_yt_thumb("S19UcWdOA-I"),
                    songs=[
                        Song(id="S19UcWdOA-I", title="Fearless pt.II", duration="3:14"),
                    ],
                ),
            ],
        ),
    ]
