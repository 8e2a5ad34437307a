"""
Click wheel gesture handling.

Turns pointer positions around the wheel into scroll steps (in menus) or
volume steps (while playing), and times the long press on play/pause.
"""

import math
import time
from typing import Callable, Optional, Tuple

from shared.constants import DEFAULT_SCROLL_THRESHOLD, LONG_PRESS_SECONDS, VOLUME_STEP


def normalize_angle_delta(diff: float) -> float:
    """Wrap an angle difference into (-pi, pi] so crossing the seam is continuous."""
    if diff > math.pi:
        return diff - 2 * math.pi
    if diff < -math.pi:
        return diff + 2 * math.pi
    return diff


class ClickWheel:
    """
    Rotation state for one drag on the wheel.

    ``pod`` is the SolanaIPod whose handlers receive the steps; ``center`` is
    the wheel centre in the same coordinates as the pointer events.
    """

    def __init__(self, pod, center: Tuple[float, float] = (0.0, 0.0),
                 scroll_threshold: float = DEFAULT_SCROLL_THRESHOLD,
                 invert_scroll_direction: bool = False,
                 on_click: Optional[Callable[[float], None]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.pod = pod
        self.center = center
        self.scroll_threshold = scroll_threshold
        self.invert_scroll_direction = invert_scroll_direction
        self._on_click = on_click
        self._clock = clock

        self.is_rotating = False
        self.last_angle = 0.0
        self.rotation_delta = 0.0
        self._last_move_time = 0.0
        self._press_started: Optional[float] = None

    def angle_of(self, x: float, y: float) -> float:
        cx, cy = self.center
        return math.atan2(y - cy, x - cx)

    def start(self, x: float, y: float) -> None:
        self.is_rotating = True
        self.last_angle = self.angle_of(x, y)
        self.rotation_delta = 0.0
        self._last_move_time = self._clock()

    def move(self, x: float, y: float) -> int:
        """
        Feed a pointer position. Returns +1 / -1 when a step fired
        (clockwise / counter-clockwise), 0 otherwise.
        """
        if not self.is_rotating:
            return 0

        current = self.angle_of(x, y)
        step_delta = normalize_angle_delta(current - self.last_angle)
        self.rotation_delta += step_delta
        self.last_angle = current

        now = self._clock()
        elapsed = now - self._last_move_time
        velocity = abs(step_delta) / elapsed if elapsed > 0 else 0.0
        self._last_move_time = now

        if self.rotation_delta > self.scroll_threshold:
            step = 1
        elif self.rotation_delta < -self.scroll_threshold:
            step = -1
        else:
            return 0

        self._apply_step(step)
        if self._on_click:
            self._on_click(min(1.0, velocity / 5))
        self.rotation_delta = 0.0
        return step

    def _apply_step(self, step: int) -> None:
        if self.pod.is_in_menu:
            forward = step > 0
            if self.invert_scroll_direction:
                forward = not forward
            if forward:
                self.pod.handle_scroll_down()
            else:
                self.pod.handle_scroll_up()
        else:
            volume = self.pod.context.volume
            if step > 0:
                self.pod.handle_volume_change(min(100, volume + VOLUME_STEP))
            else:
                self.pod.handle_volume_change(max(0, volume - VOLUME_STEP))

    def end(self) -> None:
        self.is_rotating = False
        self.rotation_delta = 0.0

    def rotate(self, radians: float) -> int:
        """Synthetic drag of ``radians`` around the centre (keyboard turns)."""
        cx, cy = self.center
        self.start(cx + 1.0, cy)
        step = self.move(cx + math.cos(radians), cy + math.sin(radians))
        self.end()
        return step

    # Play/pause button

    def press_play_pause(self) -> None:
        self._press_started = self._clock()

    def release_play_pause(self) -> None:
        """
        A press held for LONG_PRESS_SECONDS while the pod is off powers it
        on; any other press is a normal play/pause.
        """
        started, self._press_started = self._press_started, None
        held = self._clock() - started if started is not None else 0.0
        if not self.pod.is_active:
            if held >= LONG_PRESS_SECONDS:
                self.pod.handle_play_pause_long_press()
            return
        self.pod.handle_play_pause()
