"""
Terminal front end for the pod.

``list`` and ``tracks`` print the library; ``play`` runs the pod in a Live
screen driven by single key presses.
"""

import logging
import threading

import click
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from shared.constants import DEFAULT_DEVICE_NAME, SNAKE_TICK_SECONDS
from shared.models import NavigationLevel
from player.click_wheel import ClickWheel
from player.display import render
from player.library import LibraryManager
from player.playback import MusicPlaybackContext
from player.pod import PowerState, SolanaIPod

logger = logging.getLogger(__name__)
console = Console()

# Turn far enough for exactly one wheel step
WHEEL_TURN = 0.35

KEY_HELP = (
    "[cyan]j/k[/cyan] turn wheel · [cyan]enter[/cyan] select · [cyan]m[/cyan] menu · "
    "[cyan]space[/cyan] play/pause · [cyan]n/p[/cyan] next/prev · [cyan]s[/cyan] shuffle · "
    "[cyan]r[/cyan] repeat · [cyan]g[/cyan] snake · [cyan]q[/cyan] quit"
)

MPV_MISSING = (
    "[red bold]Missing System Dependency: libmpv[/red bold]\n\n"
    "Local playback requires the [cyan]libmpv[/cyan] library.\n\n"
    "Please install it:\n"
    "• Ubuntu/Debian: [green]sudo apt install libmpv2[/green]\n"
    "• Fedora: [green]sudo dnf install mpv-libs[/green]\n"
    "• Arch: [green]sudo pacman -S mpv[/green]\n\n"
    "Or run with [yellow]--shell[/yellow] and let the native shell play."
)


def _library(offline: bool) -> LibraryManager:
    lib = LibraryManager()
    if not offline:
        added = lib.refresh()
        logger.info("Merged %d blob tracks", added)
    return lib


@click.group()
def cli():
    """🎵 SolanaPod"""
    pass


@cli.command(name='list')
@click.option('--offline', is_flag=True, help='Skip the blob store and show the catalog only')
def list_cmd(offline):
    """List songs in the library."""
    lib = _library(offline)
    songs = lib.get_all_songs()
    if not songs:
        console.print("[yellow]Library is empty.[/yellow]")
        return

    table = Table(title=f"Library ({len(songs)} songs)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Artist", style="green")
    table.add_column("Album", style="yellow")
    table.add_column("Duration", style="magenta")
    for artist, album, song in songs:
        table.add_row(song.id[:24], song.title, artist.name, album.name, song.duration or "-")
    console.print(table)


@cli.command()
@click.argument('query')
def search(query):
    """Find songs whose title, artist or album contains QUERY."""
    results = _library(False).search(query)
    if not results:
        console.print("[yellow]No matching songs found.[/yellow]")
        return
    for artist, album, song in results:
        console.print(f"[bold]{song.title}[/bold] [green]{artist.name}[/green] · [yellow]{album.name}[/yellow]")


def _make_backends():
    from player.engine import DirectAudioEngine, VideoEngine
    return DirectAudioEngine(), VideoEngine()


def _handle_key(key: str, pod: SolanaIPod, wheel: ClickWheel) -> bool:
    """Dispatch one key press. Returns False to quit."""
    ctx = pod.context
    if key in ('q', '\x03'):
        return False
    if key == 'j':
        wheel.rotate(WHEEL_TURN)
    elif key == 'k':
        wheel.rotate(-WHEEL_TURN)
    elif key in ('\r', '\n'):
        pod.handle_select()
    elif key in ('m', '\x7f'):
        pod.handle_menu()
    elif key == ' ':
        pod.handle_play_pause()
    elif key == 'n':
        pod.handle_next()
    elif key == 'p':
        pod.handle_previous()
    elif key in ('+', '='):
        pod.volume_up()
    elif key == '-':
        pod.volume_down()
    elif key == 's':
        ctx.set_shuffle(not ctx.shuffle)
    elif key == 'r':
        ctx.cycle_repeat()
    elif key == 'g' and pod.navigation.level != NavigationLevel.GAMES:
        pod.open_game()
    return True


def _snake_loop(pod: SolanaIPod, stop: threading.Event) -> None:
    while not stop.wait(SNAKE_TICK_SECONDS):
        if pod.snake is not None and pod.navigation.level == NavigationLevel.GAMES:
            pod.snake.tick()


@cli.command()
@click.option('--offline', is_flag=True, help='Skip the blob store and play the catalog only')
@click.option('--shell', 'native_shell', is_flag=True,
              help='Do not play locally; the native shell plays what the pod reports')
@click.option('--relay/--no-relay', default=False,
              help='Report playback to the API server for the native shell')
@click.option('--boot/--no-boot', default=True, help='Show the boot sequence')
@click.option('--name', 'device_name', default=DEFAULT_DEVICE_NAME, help='Device name')
def play(offline, native_shell, relay, boot, device_name):
    """Run the pod."""
    direct = video = None
    if not native_shell:
        try:
            direct, video = _make_backends()
        except OSError:
            console.print(Panel.fit(MPV_MISSING, border_style="red"))
            return

    lib = _library(offline)
    context = MusicPlaybackContext(lib, direct_backend=direct, video_backend=video,
                                   native_shell=native_shell)
    pod = SolanaIPod(context, device_name=device_name,
                     power_state=PowerState.OFF if boot else PowerState.ON)
    wheel = ClickWheel(pod)

    bridge = None
    if relay or native_shell:
        from player.bridge import HttpTransport, PlaybackBridge
        bridge = PlaybackBridge(context, HttpTransport())
        bridge.start()

    stop = threading.Event()
    threading.Thread(target=_snake_loop, args=(pod, stop), daemon=True).start()
    if boot:
        pod.power_on()

    console.print(KEY_HELP)
    try:
        with Live(render(pod), console=console, refresh_per_second=8) as live:
            def redraw():
                while not stop.wait(1 / 8):
                    live.update(render(pod))
            threading.Thread(target=redraw, daemon=True).start()

            while _handle_key(click.getchar(), pod, wheel):
                pass
    except KeyboardInterrupt:
        pass
    finally:
        stop.set()
        if bridge:
            bridge.stop()
        for backend in (direct, video):
            if backend is not None:
                backend.stop()
        console.print("\n[yellow]Stopped.[/yellow]")
