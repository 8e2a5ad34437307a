"""
Native shell companion.

Plays what the pod reports. The pod publishes playback messages to the API
relay; the shell polls the relay and mirrors them on its own audio engine,
swapping the source only when the URL actually changes so a heartbeat never
restarts the track.
"""

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Union

import click
import requests
from rich.console import Console
from rich.panel import Panel

from shared.config import api_url
from shared.constants import (
    APP_NAME,
    DEFAULT_NETWORK_TIMEOUT,
    SHELL_MIN_SPLASH_SECONDS,
    SHELL_POLL_SECONDS,
)
from shared.models import Song

logger = logging.getLogger(__name__)
console = Console()

NowPlayingCallback = Callable[[Dict[str, Any]], None]


def parse_message(raw: Union[str, bytes, Dict[str, Any], None]) -> Optional[Dict[str, Any]]:
    """Decode a playback message; anything else (bad JSON, other types) is None."""
    if raw is None:
        return None
    data = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(data, dict) or data.get("type") != "playback":
        return None
    return data


class NativeShell:
    """
    Mirrors playback messages onto a DirectAudioEngine.

    ``on_now_playing`` receives title/artist/album/artwork whenever the
    playing metadata changes.
    """

    def __init__(self, engine, on_now_playing: Optional[NowPlayingCallback] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.engine = engine
        self.on_now_playing = on_now_playing
        self.current_url: Optional[str] = None
        self.now_playing: Dict[str, Any] = {}
        self._clock = clock
        self._started_at = clock()
        self._loaded = False

    # Splash

    def mark_loaded(self) -> None:
        self._loaded = True

    @property
    def splash_visible(self) -> bool:
        """Splash stays up until the pod has loaded and at least SHELL_MIN_SPLASH_SECONDS passed."""
        if not self._loaded:
            return True
        return self._clock() - self._started_at < SHELL_MIN_SPLASH_SECONDS

    # Messages

    def handle_message(self, raw) -> bool:
        """Apply one message. Returns False when it was ignored."""
        message = parse_message(raw)
        if message is None:
            return False

        url = message.get("audioUrl") or ""
        if message.get("isPlaying") and url:
            if url != self.current_url:
                self.current_url = url
                song = Song(id=url, title=message.get("title") or "", audio_url=url)
                self.engine.load(song, autoplay=True, url=url)
            else:
                self.engine.play()
            info = {
                "title": message.get("title") or "",
                "artist": message.get("artist") or "",
                "album": message.get("album") or "",
                "artwork": message.get("artwork"),
            }
            if info != self.now_playing:
                self.now_playing = info
                if self.on_now_playing:
                    self.on_now_playing(info)
        elif self.current_url:
            self.engine.pause()
        return True


class RelayPoller:
    """Polls GET /api/playback and feeds the result to a NativeShell."""

    def __init__(self, shell: NativeShell, base_url: Optional[str] = None,
                 interval: float = SHELL_POLL_SECONDS, device_id: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        self.shell = shell
        self.url = f"{(base_url or api_url()).rstrip('/')}/api/playback"
        self.interval = interval
        self.device_id = device_id
        self.session = session or requests.Session()
        self._stop = threading.Event()

    def poll_once(self) -> bool:
        params = {"device_id": self.device_id} if self.device_id else None
        try:
            response = self.session.get(self.url, params=params, timeout=DEFAULT_NETWORK_TIMEOUT)
        except requests.RequestException as e:
            logger.debug("Relay unreachable: %s", e)
            return False
        self.shell.mark_loaded()
        if response.status_code != 200:
            return False
        try:
            return self.shell.handle_message(response.json())
        except ValueError:
            return False

    def run(self) -> None:
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self.interval)

    def stop(self) -> None:
        self._stop.set()


@click.command()
@click.option('--api', 'base_url', default=None, help='API server URL (default: SOLANAPOD_API_URL)')
@click.option('--device', 'device_id', default=None, help='Follow one pod device only')
@click.option('--interval', default=SHELL_POLL_SECONDS, type=float, show_default=True,
              help='Seconds between relay polls')
def main(base_url, device_id, interval):
    """Native shell: play whatever the pod is playing."""
    from player.engine import DirectAudioEngine

    try:
        engine = DirectAudioEngine()
    except OSError as e:
        console.print(f"[red]libmpv is required for the native shell: {e}[/red]")
        return

    def show(info):
        console.print(Panel.fit(
            f"[bold]{info['title']}[/bold]\n[green]{info['artist']}[/green] · {info['album']}",
            title="Now Playing", border_style="magenta"))

    shell = NativeShell(engine, on_now_playing=show)
    poller = RelayPoller(shell, base_url=base_url, interval=interval, device_id=device_id)
    console.print(f"[cyan]{APP_NAME} shell[/cyan] following [bold]{poller.url}[/bold]")
    try:
        poller.run()
    except KeyboardInterrupt:
        poller.stop()
        engine.stop()
        console.print("\n[yellow]Stopped.[/yellow]")


if __name__ == '__main__':
    main()
