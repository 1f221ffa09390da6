"""
Per-IP rate limiting for POST /sign. In-memory sliding window, per process.

Keys whose newest request has left the window are swept out periodically, so the store only
holds clients seen within roughly one window.
"""
import math
import threading
import time

SWEEP_INTERVAL_SECONDS = 60.0

_history: dict[str, list[float]] = {}
_lock = threading.Lock()
_last_sweep: float | None = None
_clock = time.monotonic


def _sweep(cutoff: float) -> None:
    stale = [key for key, stamps in _history.items() if not stamps or stamps[-1] <= cutoff]
    for key in stale:
        del _history[key]


def check_and_consume(key: str, limit: int, window_seconds: int) -> tuple[bool, int | None]:
    """
    Count one request for key unless it already has limit requests inside the window.
    Returns (allowed, retry_after_seconds); retry_after is >= 1 when not allowed.
    A limit of 0 or less disables limiting.
    """
    global _last_sweep
    if limit <= 0:
        return True, None
    now = _clock()
    cutoff = now - window_seconds
    with _lock:
        if _last_sweep is None or now - _last_sweep >= SWEEP_INTERVAL_SECONDS:
            _sweep(cutoff)
            _last_sweep = now
        recent = [t for t in _history.get(key, ()) if t > cutoff]
        if len(recent) >= limit:
            _history[key] = recent
            return False, max(1, math.ceil(recent[0] + window_seconds - now))
        recent.append(now)
        _history[key] = recent
        return True, None


def tracked_keys() -> int:
    with _lock:
        return len(_history)


def reset() -> None:
    global _last_sweep
    with _lock:
        _history.clear()
        _last_sweep = None
