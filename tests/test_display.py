from rich.console import Console

from shared.models import NavigationLevel, NavigationState
from player.display import progress_bar, render
from player.library import LibraryManager
from player.playback import MusicPlaybackContext
from player.pod import PowerState, SolanaIPod
from player.snake import Point


def screen(pod):
    console = Console(record=True, width=60, color_system=None)
    console.print(render(pod))
    return console.export_text()


def make_pod(**kwargs):
    ctx = MusicPlaybackContext(LibraryManager(), resolver=lambda s: None)
    return SolanaIPod(ctx, **kwargs)


def test_menu_lists_artists():
    text = screen(make_pod())
    assert "Artists" in text
    assert "Jonas Kroeger ›" in text
    assert "Lost Sky" in text


def test_now_playing_shows_song_and_status():
    pod = make_pod()
    artist = pod.context.library[1]
    album = artist.albums[0]
    pod.context.set_navigation(NavigationState(NavigationLevel.NOW_PLAYING, artist, album, album.songs[0]))
    pod.context.set_shuffle(True)
    text = screen(pod)
    assert "Heroes Tonight" in text
    assert "Janji" in text
    assert "3:28" in text
    assert "vol  50" in text


def test_off_and_boot_screens():
    pod = make_pod(power_state=PowerState.OFF)
    assert "Artists" not in screen(pod)
    pod.power_state = PowerState.BOOTING
    assert "SOLANA" in screen(pod)


def test_snake_screen():
    pod = make_pod()
    game = pod.open_game()
    game.food = Point(0, 0)
    game.is_game_over = True
    text = screen(pod)
    assert "Score: 0" in text
    assert "Game Over" in text


def test_progress_bar():
    assert progress_bar(30, 120, width=8).plain == "0:30 ━━────── 2:00"
    assert progress_bar(5, 0, width=4).plain == "0:05 ──── 0:00"
