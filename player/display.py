"""
Terminal rendering of the pod screen with rich.
"""

from typing import Optional

from rich.align import Align
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from shared.audio_urls import format_time, parse_duration
from shared.models import NavigationLevel, RepeatMode
from player.engine import uses_direct_audio
from player.pod import BootPhase, PowerState, SolanaIPod
from player.snake import Point

PURPLE = "#9945FF"
GREEN = "#14F195"
TITLES = {
    NavigationLevel.ARTISTS: "Artists",
    NavigationLevel.ALBUMS: "Albums",
    NavigationLevel.SONGS: "Songs",
    NavigationLevel.NOW_PLAYING: "Now Playing",
    NavigationLevel.GAMES: "Snake",
}
PROGRESS_WIDTH = 30


def progress_bar(current: float, total: float, width: int = PROGRESS_WIDTH) -> Text:
    filled = int(width * min(1.0, current / total)) if total > 0 else 0
    bar = Text()
    bar.append(format_time(current) + " ", style="cyan")
    bar.append("━" * filled, style=GREEN)
    bar.append("─" * (width - filled), style="grey37")
    bar.append(" " + format_time(total), style="cyan")
    return bar


def playback_times(pod: SolanaIPod):
    """(current, total) seconds for the now playing screen."""
    ctx = pod.context
    song = ctx.navigation.song
    if song is None:
        return 0.0, 0.0
    if uses_direct_audio(song) and ctx.direct_backend is not None and not ctx.native_shell:
        return ctx.direct_current_time, ctx.direct_duration
    backend = ctx.video_backend
    if backend is not None and not ctx.native_shell and backend.current_song is song:
        return backend.get_time(), backend.get_duration()
    return 0.0, float(parse_duration(song.duration))


def _menu(pod: SolanaIPod) -> Table:
    table = Table.grid(expand=True)
    table.add_column()
    for index, item in enumerate(pod.current_list()):
        label = getattr(item, "title", None) or item.name
        if index == pod.context.selected_index:
            table.add_row(Text(f" {label} ›", style=f"bold white on {PURPLE}"))
        else:
            table.add_row(Text(f" {label}"))
    return table


def _now_playing(pod: SolanaIPod) -> Group:
    ctx = pod.context
    nav = ctx.navigation
    lines = []
    if nav.song:
        lines.append(Align.center(Text(nav.song.title, style="bold")))
        lines.append(Align.center(Text(nav.artist.name if nav.artist else "", style=GREEN)))
        lines.append(Align.center(Text(nav.album.name if nav.album else "", style="dim")))
    current, total = playback_times(pod)
    lines.append(Text(""))
    lines.append(Align.center(progress_bar(current, total)))
    if not pod.hide_ui:
        status = Text()
        status.append("▶ " if ctx.is_playing else "❚❚ ", style="bold")
        status.append("⤮ " if ctx.shuffle else "  ", style=GREEN)
        repeat_icon = {RepeatMode.OFF: "  ", RepeatMode.ONE: "↻1", RepeatMode.ALL: "↻ "}[ctx.repeat]
        status.append(repeat_icon + "  ", style=GREEN)
        status.append(f"vol {ctx.volume:3d}", style="cyan")
        lines.append(Align.center(status))
    return Group(*lines)


def _snake(pod: SolanaIPod) -> Group:
    game = pod.snake
    if game is None:
        return Group(Text(""))
    body = set(game.snake)
    rows = []
    for y in range(game.grid_size):
        row = Text()
        for x in range(game.grid_size):
            cell = Point(x, y)
            if cell in body:
                row.append("██", style=GREEN)
            elif cell == game.food:
                row.append("🍎")
            else:
                row.append("  ", style="on grey7")
        rows.append(row)
    header = Text(f"Score: {game.score}", style="white")
    parts = [header, *rows]
    if game.is_game_over:
        parts.append(Text("Game Over · Select to play again · Menu to exit", style="bold red"))
    return Group(*parts)


def render(pod: SolanaIPod, title: Optional[str] = None) -> Panel:
    """The whole screen for the current power state and navigation level."""
    if pod.power_state == PowerState.OFF:
        return Panel(Text(""), title=title or pod.device_name, border_style="grey23")
    if pod.power_state == PowerState.BOOTING:
        style = f"bold {PURPLE}" if pod.boot_phase == BootPhase.HOLD else "dim"
        return Panel(Align.center(Text("◎ SOLANA", style=style), vertical="middle"),
                     title=title or pod.device_name, border_style=PURPLE)

    level = pod.navigation.level
    if level == NavigationLevel.NOW_PLAYING:
        body = _now_playing(pod)
    elif level == NavigationLevel.GAMES:
        body = _snake(pod)
    else:
        body = _menu(pod)
    return Panel(body, title=title or TITLES.get(level, ""), subtitle=pod.device_name,
                 border_style=PURPLE)
