"""Identifier and lease token helpers."""

from __future__ import annotations

import secrets
import threading
import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

# Monotonic counter state shared by all generators in the process
_state = {"millis": 0, "counter": 0}
_lock = threading.Lock()


def _base36(value: int) -> str:
    digits = ""
    while True:
        value, remainder = divmod(value, 36)
        digits = _ALPHABET[remainder] + digits
        if value == 0:
            return digits


def _random_suffix(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(max(length, 0)))


def generate_cuid(length: int = 24) -> str:
    """Generate a sortable lowercase identifier with a `c` prefix.

    Layout: base36 millis, a 4 char per-millisecond counter, random padding.
    """
    now_millis = int(time.time() * 1000)
    with _lock:
        if now_millis == _state["millis"]:
            _state["counter"] += 1
        else:
            _state["millis"] = now_millis
            _state["counter"] = 0
        counter = _state["counter"]

    body_len = max(length - 1, 8)
    prefix = _base36(now_millis) + _base36(counter).rjust(4, "0")
    body = (prefix + _random_suffix(body_len - len(prefix)))[:body_len]
    return f"c{body}"


def generate_lease_token() -> str:
    """Return an opaque token identifying one advance invocation."""
    return secrets.token_hex(16)
