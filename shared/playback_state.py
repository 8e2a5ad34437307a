"""
Last playback message reported by a pod, per scope.

The pod posts a playback message on every change and as a heartbeat while
playing; the native shell reads it back. Devices that stop reporting drop
out after ACTIVE_DEVICE_TTL_SEC.
"""
import threading
import time
from typing import Any, Optional

DEFAULT_SCOPE = "default"
ACTIVE_DEVICE_TTL_SEC = 90

PLAYBACK_FIELDS = ("isPlaying", "title", "artist", "album", "audioUrl", "artwork")

_lock = threading.Lock()
_states: dict[str, dict[str, dict[str, Any]]] = {}  # scope -> device_id -> state


def _cleanup_scope(scope: str, now: float) -> None:
    """Remove devices with last_seen older than ACTIVE_DEVICE_TTL_SEC."""
    devices = _states.get(scope, {})
    to_drop = [
        device_id
        for device_id, data in devices.items()
        if (now - data.get("updated_at", 0)) > ACTIVE_DEVICE_TTL_SEC
    ]
    for device_id in to_drop:
        devices.pop(device_id, None)


def get_scope_from_request() -> str:
    """Resolve scope from request context. Single-user: always default."""
    return DEFAULT_SCOPE


def is_playback_message(payload: Any) -> bool:
    return isinstance(payload, dict) and payload.get("type") == "playback"


def get_state(scope: str, device_id: Optional[str] = None) -> Optional[dict[str, Any]]:
    """
    Most recent playback message for this scope, or for ``device_id`` when
    given. None when nothing active has been reported.
    """
    with _lock:
        now = time.time()
        _cleanup_scope(scope, now)
        devices = _states.get(scope, {})
        if device_id:
            state = devices.get(device_id)
            return dict(state) if state else None
        if not devices:
            return None
        latest = max(devices.values(), key=lambda d: d.get("updated_at", 0))
        return dict(latest)


def put_state(scope: str, payload: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Store a playback message. Returns the stored state, None if rejected."""
    if not is_playback_message(payload):
        return None
    device_id = payload.get("device_id") or "default"
    state: dict[str, Any] = {"type": "playback"}
    for key in PLAYBACK_FIELDS:
        state[key] = payload.get(key)
    state["isPlaying"] = bool(state["isPlaying"])
    state["device_id"] = device_id
    state["updated_at"] = time.time()
    with _lock:
        _states.setdefault(scope, {})[device_id] = state
        _cleanup_scope(scope, state["updated_at"])
    return dict(state)


def clear_states() -> None:
    with _lock:
        _states.clear()
