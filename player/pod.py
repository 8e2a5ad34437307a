"""
The iPod controller: maps click-wheel buttons onto the playback context.

Menus go artists → albums → songs → now playing; Menu walks back up and
re-selects the item that was left. The Snake game takes over the wheel
while it is open.
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, List, Optional, Union

from shared import analytics
from shared.constants import DEFAULT_DEVICE_NAME, HIDE_UI_DELAY, VOLUME_STEP
from shared.models import Album, Artist, NavigationLevel, NavigationState, Song
from player.playback import MusicPlaybackContext
from player.snake import Direction, SnakeGame

logger = logging.getLogger(__name__)

BOOT_FADE_SECONDS = 0.6
BOOT_LOGO_HOLD_SECONDS = 2.5

MenuItem = Union[Artist, Album, Song]


class PowerState(Enum):
    OFF = "off"
    BOOTING = "booting"
    ON = "on"


class BootPhase(Enum):
    FADE_IN = "fadeIn"
    HOLD = "hold"
    FADE_OUT = "fadeOut"


class SolanaIPod:
    """
    Button handlers for one pod device.

    ``clock`` is injectable so the hide-UI timer can be driven in tests;
    ``on_click`` fires for every audible wheel click.
    """

    def __init__(self, context: MusicPlaybackContext,
                 device_name: str = DEFAULT_DEVICE_NAME,
                 power_state: PowerState = PowerState.ON,
                 on_click: Optional[Callable[[float], None]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.context = context
        self.device_name = device_name
        self.power_state = power_state
        self.boot_phase = BootPhase.FADE_IN
        self.snake: Optional[SnakeGame] = None
        self._on_click = on_click
        self._clock = clock
        self._last_activity = clock()
        self._menu_level_before_game = NavigationLevel.ARTISTS
        self._boot_thread: Optional[threading.Thread] = None

    # --- Helpers ---

    @property
    def navigation(self) -> NavigationState:
        return self.context.navigation

    @property
    def is_in_menu(self) -> bool:
        return self.navigation.level not in (NavigationLevel.NOW_PLAYING, NavigationLevel.GAMES)

    @property
    def is_active(self) -> bool:
        return self.power_state == PowerState.ON

    def _click(self, intensity: float = 1.0) -> None:
        if self._on_click:
            self._on_click(intensity)

    def show_ui(self) -> None:
        self._last_activity = self._clock()

    @property
    def hide_ui(self) -> bool:
        """Chrome hides after HIDE_UI_DELAY of untouched playback in now playing."""
        if self.navigation.level != NavigationLevel.NOW_PLAYING or not self.context.is_playing:
            return False
        return self._clock() - self._last_activity >= HIDE_UI_DELAY

    def current_list(self) -> List[MenuItem]:
        nav = self.navigation
        if nav.level == NavigationLevel.ARTISTS:
            return list(self.context.library)
        if nav.level == NavigationLevel.ALBUMS:
            return list(nav.artist.albums) if nav.artist else []
        if nav.level == NavigationLevel.SONGS:
            return list(nav.album.songs) if nav.album else []
        return []

    def _artist_name(self) -> str:
        return self.navigation.artist.name if self.navigation.artist else "Unknown"

    def _album_name(self) -> str:
        return self.navigation.album.name if self.navigation.album else "Unknown"

    # --- Power ---

    def power_on(self, wait: bool = False) -> None:
        """Run the boot sequence (fade in, hold the logo, fade out) then turn on."""
        if self.power_state != PowerState.OFF:
            return
        self.power_state = PowerState.BOOTING
        self._boot_thread = threading.Thread(target=self._boot_sequence, daemon=True)
        self._boot_thread.start()
        if wait:
            self._boot_thread.join()

    def _boot_sequence(self) -> None:
        for phase, delay in ((BootPhase.FADE_IN, BOOT_FADE_SECONDS),
                             (BootPhase.HOLD, BOOT_LOGO_HOLD_SECONDS),
                             (BootPhase.FADE_OUT, BOOT_FADE_SECONDS)):
            self.boot_phase = phase
            self.context.notify()
            time.sleep(delay)
        self.power_state = PowerState.ON
        self.show_ui()
        self.context.notify()

    def handle_play_pause_long_press(self) -> None:
        if self.power_state == PowerState.OFF:
            self.power_on()

    # --- Buttons ---

    def handle_select(self) -> None:
        if not self.is_active:
            return
        self._click()
        analytics.track_button_press("select", self.device_name)
        self.show_ui()
        nav = self.navigation

        if nav.level == NavigationLevel.GAMES:
            if self.snake and self.snake.is_game_over:
                self.snake.restart()
            return
        if nav.level == NavigationLevel.NOW_PLAYING:
            self.context.toggle_playing()
            return

        items = self.current_list()
        if not items:
            return
        index = max(0, min(self.context.selected_index, len(items) - 1))
        item = items[index]

        if nav.level == NavigationLevel.ARTISTS:
            analytics.track_navigation("artists", item.name, self.device_name)
            self.context.set_navigation(NavigationState(level=NavigationLevel.ALBUMS, artist=item))
            self.context.set_selected_index(0)
        elif nav.level == NavigationLevel.ALBUMS:
            analytics.track_navigation("albums", item.name, self.device_name)
            self.context.set_navigation(nav.replace(level=NavigationLevel.SONGS, album=item, song=None))
            self.context.set_selected_index(0)
        elif nav.level == NavigationLevel.SONGS:
            analytics.track_navigation("songs", item.title, self.device_name)
            analytics.track_song_play(self._artist_name(), self._album_name(), item.title, self.device_name)
            self.context.set_navigation(nav.replace(level=NavigationLevel.NOW_PLAYING, song=item))
            self.context.set_is_playing(True)

    def handle_menu(self) -> None:
        if not self.is_active:
            return
        self._click()
        analytics.track_button_press("menu", self.device_name)
        self.show_ui()
        nav = self.navigation

        if nav.level == NavigationLevel.GAMES:
            if self.snake is None or self.snake.is_game_over:
                self.close_game()
            else:
                self.snake.queue_direction(Direction.UP)
        elif nav.level == NavigationLevel.NOW_PLAYING:
            analytics.track_menu_back("nowPlaying", "songs", self.device_name)
            self.context.set_navigation(nav.replace(level=NavigationLevel.SONGS))
            songs = nav.album.songs if nav.album else []
            index = next((i for i, s in enumerate(songs) if nav.song and s.id == nav.song.id), 0)
            self.context.set_selected_index(index)
        elif nav.level == NavigationLevel.SONGS:
            analytics.track_menu_back("songs", "albums", self.device_name)
            self.context.set_navigation(nav.replace(level=NavigationLevel.ALBUMS, album=None, song=None))
            albums = nav.artist.albums if nav.artist else []
            index = next((i for i, a in enumerate(albums) if nav.album and a.name == nav.album.name), 0)
            self.context.set_selected_index(index)
        elif nav.level == NavigationLevel.ALBUMS:
            analytics.track_menu_back("albums", "artists", self.device_name)
            self.context.set_navigation(NavigationState(level=NavigationLevel.ARTISTS))
            index = next((i for i, a in enumerate(self.context.library)
                          if nav.artist and a.name == nav.artist.name), 0)
            self.context.set_selected_index(index)

    def handle_scroll_up(self) -> None:
        if not self.is_active:
            return
        self.show_ui()
        if self.is_in_menu:
            self.context.set_selected_index(max(0, self.context.selected_index - 1))

    def handle_scroll_down(self) -> None:
        if not self.is_active:
            return
        self.show_ui()
        if self.is_in_menu:
            last = len(self.current_list()) - 1
            self.context.set_selected_index(max(0, min(last, self.context.selected_index + 1)))

    def handle_next(self) -> None:
        if not self.is_active:
            return
        self._click()
        analytics.track_button_press("next", self.device_name)
        self.show_ui()
        if self.navigation.level == NavigationLevel.GAMES and self.snake:
            self.snake.queue_direction(Direction.RIGHT)
        elif self.navigation.level == NavigationLevel.NOW_PLAYING:
            self.context.advance_to_next()

    def handle_previous(self) -> None:
        if not self.is_active:
            return
        self._click()
        analytics.track_button_press("previous", self.device_name)
        self.show_ui()
        if self.navigation.level == NavigationLevel.GAMES and self.snake:
            self.snake.queue_direction(Direction.LEFT)
        elif self.navigation.level == NavigationLevel.NOW_PLAYING:
            self.context.advance_to_previous()

    def handle_play_pause(self) -> None:
        if not self.is_active:
            return
        self._click()
        analytics.track_button_press("play_pause", self.device_name)
        self.show_ui()
        nav = self.navigation
        if nav.level == NavigationLevel.GAMES and self.snake:
            self.snake.queue_direction(Direction.DOWN)
            return
        if nav.level != NavigationLevel.NOW_PLAYING:
            return
        if nav.song:
            if self.context.is_playing:
                analytics.track_song_pause(self._artist_name(), self._album_name(), nav.song.title, self.device_name)
            else:
                analytics.track_song_play(self._artist_name(), self._album_name(), nav.song.title, self.device_name)
        self.context.toggle_playing()

    def handle_volume_change(self, volume: int) -> None:
        if not self.is_active:
            return
        self.show_ui()
        final = max(0, min(100, volume))
        analytics.track_volume_change(final, self.device_name)
        self.context.set_volume(final)

    def volume_up(self) -> None:
        self.handle_volume_change(self.context.volume + VOLUME_STEP)

    def volume_down(self) -> None:
        self.handle_volume_change(self.context.volume - VOLUME_STEP)

    # --- Games ---

    def open_game(self) -> SnakeGame:
        """Swap the screen for Snake. Music keeps playing underneath."""
        self._menu_level_before_game = self.navigation.level
        self.snake = SnakeGame()
        self.context.set_navigation(self.navigation.replace(level=NavigationLevel.GAMES))
        return self.snake

    def close_game(self) -> None:
        self.snake = None
        self.context.set_navigation(self.navigation.replace(level=self._menu_level_before_game))
