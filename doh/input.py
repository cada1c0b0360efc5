"""Low-level terminal input decoding.

Reads raw bytes from stdin and translates them into normalized key tokens.
Handles ESC-sequence timing on POSIX and prefixed scan codes on Windows.
"""

from __future__ import annotations

import os
import select
from collections.abc import Callable

ESC_SEQUENCE_TIMEOUT_MS = 25
_PENDING_BYTES: list[bytes] = []
# Complete escape sequences doh has no binding for.
UNKNOWN_KEY = "UNKNOWN"

_CSI_FINAL_KEYS = {
    b"A": "UP",
    b"B": "DOWN",
    b"C": "RIGHT",
    b"D": "LEFT",
    b"H": "HOME",
    b"F": "END",
}
_CSI_TILDE_KEYS = {
    b"1": "HOME",
    b"3": "DELETE",
    b"4": "END",
    b"5": "PAGE_UP",
    b"6": "PAGE_DOWN",
    b"7": "HOME",
    b"8": "END",
}

# Windows console: special keys arrive as a prefix followed by a scan code.
CONSOLE_SPECIAL_PREFIXES = ("\x00", "\xe0")
CONSOLE_SCAN_CODES = {
    72: "UP",
    80: "DOWN",
    75: "LEFT",
    77: "RIGHT",
    71: "HOME",
    79: "END",
    73: "PAGE_UP",
    81: "PAGE_DOWN",
    83: "DELETE",
}


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def _control_key(ch: bytes) -> str | None:
    if ch in {b"\r", b"\n"}:
        return "ENTER"
    if ch == b"\t":
        return "TAB"
    if ch in {b"\x08", b"\x7f"}:
        return "BACKSPACE"
    return None


def _read_utf8_char(fd: int, first: bytes) -> str:
    lead = first[0]
    if lead < 0x80:
        return first.decode("ascii")
    if lead >= 0xF0:
        extra = 3
    elif lead >= 0xE0:
        extra = 2
    elif lead >= 0xC0:
        extra = 1
    else:
        extra = 0
    data = first
    for _ in range(extra):
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            break
        data += nxt
    return data.decode("utf-8", errors="replace")


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Block for one key on ``fd`` and return its token.

    Returns ``""`` when ``timeout_ms`` elapses or the input is closed.
    """
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""

        ch = os.read(fd, 1)
        if not ch:
            return ""

    control = _control_key(ch)
    if control is not None:
        return control
    if ch != b"\x1b":
        return _read_utf8_char(fd, ch)

    # Escape / arrow key sequences.
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq == b"O":
        # SS3 form sent by some terminals in application cursor mode.
        final = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if final is None:
            return "ESC"
        return _CSI_FINAL_KEYS.get(final, UNKNOWN_KEY)
    if seq != b"[":
        _PENDING_BYTES.append(seq)
        return "ESC"
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq in _CSI_FINAL_KEYS:
        return _CSI_FINAL_KEYS[seq]
    if seq in _CSI_TILDE_KEYS:
        tail = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if tail == b"~":
            return _CSI_TILDE_KEYS[seq]
        # Modified and function keys (e.g. ESC [ 1 ; 5 A) are drained.
        while tail is not None and not (tail.isalpha() or tail == b"~"):
            tail = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        return UNKNOWN_KEY
    return UNKNOWN_KEY


def read_console_key(getwch: Callable[[], str]) -> str:
    """Decode one key from a Windows-console ``getwch`` style reader.

    The scan code following a special-key prefix is always consumed, so one
    arrow press yields exactly one token.
    """
    ch = getwch()
    if ch in CONSOLE_SPECIAL_PREFIXES:
        code = getwch()
        return CONSOLE_SCAN_CODES.get(ord(code), UNKNOWN_KEY)
    if ch == "\x1b":
        return "ESC"
    if ch in {"\r", "\n"}:
        return "ENTER"
    if ch == "\t":
        return "TAB"
    if ch in {"\x08", "\x7f"}:
        return "BACKSPACE"
    return ch
