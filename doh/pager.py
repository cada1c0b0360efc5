"""Screen-at-a-time text pager.

Wraps arbitrary text to the terminal and shows it one screen per key press,
each screen closed by a status footer. Content that is not UTF-8 text is
rejected before anything is printed so callers can offer a download instead.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from typing import TextIO

from .config import DEFAULT_TAB_WIDTH


# Outcomes of one paging run.
PAGE_COMPLETED = "completed"
PAGE_STOPPED = "stopped"
PAGE_NOT_TEXT = "not_text"


END_OF_FILE_FOOTER = "<End of file> <press any key to stop>"
PROGRESS_FOOTER = "<{percent}%> <press any key for {which} screen> <press Escape to stop>"
STOP_KEY = "ESC"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def footer_text(label: str, index: int, count: int) -> str:
    """Footer printed under screen ``index`` of ``count``."""
    if index == count - 1:
        return f"<{label}> {END_OF_FILE_FOOTER}"
    percent = _round_half_up((index + 1) / count * 100)
    which = "last" if index + 1 == count - 1 else "next"
    return f"<{label}> " + PROGRESS_FOOTER.format(percent=percent, which=which)


def footer_rows(label: str, width: int) -> int:
    """Rows reserved on every screen for the widest footer ``label`` can produce."""
    widest = len(f"<{label}> " + PROGRESS_FOOTER.format(percent=100, which="next"))
    return widest // max(1, width)


def read_text_lines(stream: Iterable[bytes], tab_width: int = DEFAULT_TAB_WIDTH) -> list[str] | None:
    """Decode ``stream`` line by line; ``None`` means it is not UTF-8 text."""
    spacing = " " * tab_width
    lines: list[str] = []
    for raw in stream:
        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
        lines.append(line.replace("\r", "").replace("\n", "").replace("\t", spacing))
    return lines


def wrap_lines(lines: Iterable[str], width: int) -> list[str]:
    """Hard-wrap each line into ``width``-sized chunks, keeping empty lines."""
    width = max(1, width)
    wrapped: list[str] = []
    for line in lines:
        if not line:
            wrapped.append("")
            continue
        wrapped.extend(line[start : start + width] for start in range(0, len(line), width))
    return wrapped


def split_screens(lines: list[str], label: str, term_size: tuple[int, int]) -> list[list[str]]:
    """Group wrapped lines into screens, always producing at least one."""
    width, height = term_size
    per_screen = max(1, height - footer_rows(label, width))
    screens = [lines[start : start + per_screen] for start in range(0, len(lines), per_screen)]
    return screens or [[]]


def paginate(
    stream: Iterable[bytes],
    out: TextIO,
    label: str,
    read_key: Callable[[], str],
    term_size: tuple[int, int],
    tab_width: int = DEFAULT_TAB_WIDTH,
) -> str:
    """Show ``stream`` screen by screen, waiting on ``read_key`` after each.

    Escape on a non-final screen stops early; any key after the final
    screen ends paging.
    """
    lines = read_text_lines(stream, tab_width)
    if lines is None:
        return PAGE_NOT_TEXT

    width, _ = term_size
    screens = split_screens(wrap_lines(lines, width), label, term_size)
    result = PAGE_COMPLETED
    for index, screen in enumerate(screens):
        if index != 0:
            out.write("\n")
        for line in screen:
            out.write(line + "\n")
        out.write(footer_text(label, index, len(screens)))
        out.flush()

        key = read_key()
        if index != len(screens) - 1 and key == STOP_KEY:
            result = PAGE_STOPPED
            break

    out.write("\n")
    out.flush()
    return result
