import math
from unittest.mock import MagicMock

import pytest

from player.click_wheel import ClickWheel, normalize_angle_delta


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_pod(in_menu=True, active=True, volume=50):
    pod = MagicMock()
    pod.is_in_menu = in_menu
    pod.is_active = active
    pod.context.volume = volume
    return pod


def point(angle, radius=10.0):
    return radius * math.cos(angle), radius * math.sin(angle)


def test_normalize_wraps_across_the_seam():
    assert normalize_angle_delta(0.2) == pytest.approx(0.2)
    assert normalize_angle_delta(2 * math.pi - 0.1) == pytest.approx(-0.1)
    assert normalize_angle_delta(-2 * math.pi + 0.1) == pytest.approx(0.1)


def test_small_moves_accumulate_until_threshold():
    pod = make_pod()
    wheel = ClickWheel(pod)
    wheel.start(*point(0.0))
    assert wheel.move(*point(0.2)) == 0
    assert wheel.move(*point(0.35)) == 1
    pod.handle_scroll_down.assert_called_once()
    assert wheel.rotation_delta == 0.0


def test_counter_clockwise_scrolls_up():
    pod = make_pod()
    wheel = ClickWheel(pod)
    wheel.start(*point(0.0))
    assert wheel.move(*point(-0.4)) == -1
    pod.handle_scroll_up.assert_called_once()
    pod.handle_scroll_down.assert_not_called()


def test_crossing_pi_counts_as_small_step():
    pod = make_pod()
    wheel = ClickWheel(pod)
    wheel.start(*point(math.pi - 0.1))
    # atan2 jumps from ~pi to ~-pi here; the real movement is 0.2 rad
    assert wheel.move(*point(-math.pi + 0.1)) == 0
    assert wheel.rotation_delta == pytest.approx(0.2)


def test_invert_scroll_direction():
    pod = make_pod()
    wheel = ClickWheel(pod, invert_scroll_direction=True)
    wheel.rotate(0.4)
    pod.handle_scroll_up.assert_called_once()


def test_outside_menu_wheel_changes_volume():
    pod = make_pod(in_menu=False, volume=95)
    wheel = ClickWheel(pod)
    wheel.rotate(0.4)
    pod.handle_volume_change.assert_called_with(100)

    pod.context.volume = 5
    wheel.rotate(-0.4)
    pod.handle_volume_change.assert_called_with(0)


def test_click_intensity_follows_speed():
    clock = FakeClock()
    clicks = []
    wheel = ClickWheel(make_pod(), on_click=clicks.append, clock=clock)

    wheel.start(*point(0.0))
    clock.now = 1.0
    wheel.move(*point(0.5))
    clock.now = 1.01
    wheel.move(*point(1.0))

    assert clicks[0] == pytest.approx(0.1)
    assert clicks[1] == 1.0


def test_moves_ignored_when_not_rotating():
    pod = make_pod()
    wheel = ClickWheel(pod)
    assert wheel.move(*point(1.0)) == 0
    wheel.start(*point(0.0))
    wheel.end()
    assert wheel.move(*point(1.0)) == 0
    pod.handle_scroll_down.assert_not_called()


def test_long_press_powers_on_when_off():
    clock = FakeClock()
    pod = make_pod(active=False)
    wheel = ClickWheel(pod, clock=clock)

    wheel.press_play_pause()
    clock.now = 1.0
    wheel.release_play_pause()
    pod.handle_play_pause_long_press.assert_not_called()

    wheel.press_play_pause()
    clock.now = 4.5
    wheel.release_play_pause()
    pod.handle_play_pause_long_press.assert_called_once()
    pod.handle_play_pause.assert_not_called()


def test_short_press_when_on_is_play_pause():
    pod = make_pod()
    wheel = ClickWheel(pod)
    wheel.press_play_pause()
    wheel.release_play_pause()
    pod.handle_play_pause.assert_called_once()
