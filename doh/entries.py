"""Display-ready listing entries.

Converts raw protocol items into rows the navigator can print: directories
first, a synthetic parent entry, human sizes and local timestamps.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from .protocol import Listing, RawEntry

SIZE_SUFFIXES = ("B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB", "ZiB", "YiB")
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
COLUMN_PADDING = 2


@dataclass(frozen=True)
class Entry:
    """One listing row; directories end with ``/`` and carry no size."""

    name: str
    size: int | None = None
    human_size: str | None = None
    last_modified: datetime | None = None

    @property
    def is_directory(self) -> bool:
        return self.size is None


PARENT_ENTRY = Entry(name="../")


def human_readable_size(size: int) -> str:
    """Format ``size`` bytes with a base-1024 suffix, e.g. ``2297 -> "2.2KiB"``."""
    if size <= 0:
        return "0B"
    # floor(log1024(size)) computed exactly on the integer.
    exponent = min((size.bit_length() - 1) // 10, len(SIZE_SUFFIXES) - 1)
    if exponent == 0:
        return f"{size}B"
    value = math.floor(size / 1024**exponent * 10 + 0.5) / 10
    text = f"{value:.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return text + SIZE_SUFFIXES[exponent]


def entry_from_raw(raw: RawEntry) -> Entry:
    last_modified = raw.last_modified.astimezone()
    if not raw.is_file:
        return Entry(name=raw.name + "/", last_modified=last_modified)
    return Entry(
        name=raw.name,
        size=raw.size,
        human_size=human_readable_size(raw.size),
        last_modified=last_modified,
    )


def build_display_list(listing: Listing) -> list[Entry]:
    """Derive the rows shown for ``listing``.

    A file listing yields no rows. Otherwise directories precede files with
    server order kept inside each group, and non-root listings start with
    ``PARENT_ENTRY``.
    """
    if listing.is_file:
        return []
    ordered = sorted(listing.files, key=lambda raw: raw.is_file)
    entries = [entry_from_raw(raw) for raw in ordered]
    if not listing.is_root:
        entries.insert(0, PARENT_ENTRY)
    return entries


def format_rows(entries: Sequence[Entry]) -> list[str]:
    """Render entries as aligned ``name  size  timestamp`` columns."""
    cells = [
        (
            entry.name,
            entry.human_size or "",
            entry.last_modified.strftime(TIMESTAMP_FORMAT) if entry.last_modified else "",
        )
        for entry in entries
    ]
    if not cells:
        return []
    name_width = max(len(name) for name, _, _ in cells) + COLUMN_PADDING
    size_width = max(len(size) for _, size, _ in cells) + COLUMN_PADDING
    return [
        f"{name:<{name_width}}{size:<{size_width}}{stamp}".rstrip()
        for name, size, stamp in cells
    ]
