"""Terminal capability used by the navigator and pager.

Cursor movement and visibility, key input and size queries live behind one
interface with POSIX and Windows-console implementers.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import sys
from collections.abc import Iterator
from typing import TextIO

from .input import read_console_key, read_key

DEFAULT_SIZE = (80, 24)


class TerminalCapability:
    """Interface consumed by the navigator; movement helpers return printable text."""

    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out if out is not None else sys.stdout

    def move_cursor_up(self, n: int) -> str:
        return f"\x1b[{n}A" if n > 0 else ""

    def move_cursor_down(self, n: int) -> str:
        return f"\x1b[{n}B" if n > 0 else ""

    def move_cursor_back(self, n: int) -> str:
        return f"\x1b[{n}D" if n > 0 else ""

    def show_cursor(self, visible: bool) -> None:
        self.out.write("\x1b[?25h" if visible else "\x1b[?25l")
        self.out.flush()

    @contextlib.contextmanager
    def hidden_cursor(self) -> Iterator[None]:
        """Hide the cursor for the duration of the block, restoring it on any exit."""
        self.show_cursor(False)
        try:
            yield
        finally:
            self.show_cursor(True)

    def size(self) -> tuple[int, int]:
        """Return ``(columns, rows)`` of the attached terminal."""
        term = shutil.get_terminal_size(DEFAULT_SIZE)
        return max(1, term.columns), max(1, term.lines)

    @contextlib.contextmanager
    def key_input(self) -> Iterator[None]:
        """Put the terminal into unechoed single-key mode for the block."""
        yield

    @contextlib.contextmanager
    def line_input(self) -> Iterator[None]:
        """Temporarily restore line-buffered echoing input inside ``key_input``."""
        yield

    def read_key(self) -> str:
        raise NotImplementedError


class AnsiTerminal(TerminalCapability):
    """POSIX terminal driven by escape sequences and termios."""

    def __init__(self, stdin_fd: int | None = None, out: TextIO | None = None) -> None:
        super().__init__(out)
        self.stdin_fd = stdin_fd if stdin_fd is not None else sys.stdin.fileno()
        self._saved_tty_state: list | None = None

    @contextlib.contextmanager
    def key_input(self) -> Iterator[None]:
        import termios
        import tty

        self._saved_tty_state = termios.tcgetattr(self.stdin_fd)
        # cbreak keeps output post-processing, so "\n" still returns the carriage.
        tty.setcbreak(self.stdin_fd, termios.TCSAFLUSH)
        try:
            yield
        finally:
            termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)
            self._saved_tty_state = None

    @contextlib.contextmanager
    def line_input(self) -> Iterator[None]:
        if self._saved_tty_state is None:
            yield
            return
        import termios
        import tty

        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)
        self.show_cursor(True)
        try:
            yield
        finally:
            self.show_cursor(False)
            tty.setcbreak(self.stdin_fd, termios.TCSAFLUSH)

    def read_key(self) -> str:
        return read_key(self.stdin_fd)


class WindowsTerminal(TerminalCapability):
    """Windows console: VT escape sequences for output, ``msvcrt`` for keys."""

    def __init__(self, out: TextIO | None = None) -> None:
        super().__init__(out)
        # An empty system() call switches the console into VT processing mode.
        os.system("")

    def read_key(self) -> str:
        import msvcrt

        return read_console_key(msvcrt.getwch)


def create_terminal() -> TerminalCapability:
    """Pick the terminal implementer for the running platform."""
    if sys.platform == "win32":
        return WindowsTerminal()
    return AnsiTerminal()
