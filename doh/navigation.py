"""Listing navigation state machine.

Owns the current remote location, the displayed entries and the selection.
Each ``step`` fetches the current location once and then either pages a
file, or shows the listing and dispatches keys until the location changes.
Marker moves inside one page are repainted in place; only page changes
reprint the listing.
"""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from . import config, transfer
from .client import RawFsClient, is_success
from .config import Settings
from .entries import PARENT_ENTRY, Entry, build_display_list, format_rows
from .errors import HttpStatusError, ProtocolError, TransportError, status_text
from .location import display_location, is_root, join_location, location_path, parent_location
from .pager import PAGE_NOT_TEXT, paginate
from .pickers import DialogPicker, PromptPicker
from .terminal import TerminalCapability

logger = logging.getLogger(__name__)

# Consecutive unparsable listings after which the server is deemed incompatible.
BAD_RESPONSE_LIMIT = 3
# Header row plus one spare row below the listing.
LISTING_CHROME_ROWS = 2
MARKER = ">"
NO_WRITES_MESSAGE = "<Server doesn't permit write requests>"

# Outcomes of one key dispatch.
KEY_STAY = "stay"
KEY_REFETCH = "refetch"
KEY_QUIT = "quit"

QUIT_KEYS = frozenset({"ESC", "q", "Q", ""})


@dataclass
class NavigationState:
    location: str
    entries: list[Entry] = field(default_factory=list)
    selected: int = 0
    writes_supported: bool = False
    bad_responses: int = 0

    def selected_entry(self) -> Entry | None:
        if not self.entries:
            return None
        return self.entries[self.selected]


def lines_per_screen(term_rows: int) -> int:
    return max(1, term_rows - LISTING_CHROME_ROWS)


def page_count(total: int, per_screen: int) -> int:
    return max(1, math.ceil(total / per_screen))


def failure_line(exc: TransportError | HttpStatusError) -> str:
    """Status line describing a failed request."""
    if isinstance(exc, HttpStatusError):
        return f"<Got {status_text(exc.status)}...>"
    return f"<Couldn't reach server: {exc.reason}...>"


class Navigator:
    """Drive one browsing session against a raw-filesystem server."""

    def __init__(
        self,
        location: str,
        client: RawFsClient,
        terminal: TerminalCapability,
        picker: DialogPicker | PromptPicker,
        out: TextIO | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.state = NavigationState(location)
        self.client = client
        self.terminal = terminal
        self.picker = picker
        self.out = out if out is not None else sys.stdout
        self.settings = settings if settings is not None else Settings()
        self.local_dir = self.settings.last_local_dir
        self.incompatible = False
        self.unreachable = False

    # Session loop

    def run(self) -> bool:
        """Browse until the user quits; ``False`` when the server could not be used."""
        with self.terminal.hidden_cursor(), self.terminal.key_input():
            while self.step():
                pass
        return not (self.incompatible or self.unreachable)

    def step(self) -> bool:
        """Fetch the current location and react to it; ``False`` ends the session."""
        state = self.state
        try:
            listing = self.client.fetch_listing(state.location)
        except (TransportError, HttpStatusError) as exc:
            self._print_status(failure_line(exc))
            if not self.ascend():
                # Nothing above root to fall back to.
                self.unreachable = True
                return False
            return True
        except ProtocolError as exc:
            self._print_status(f"<Couldn't parse server response: {exc}...>")
            state.bad_responses += 1
            logger.warning("bad response %d/%d from %s: %s", state.bad_responses, BAD_RESPONSE_LIMIT, state.location, exc)
            if state.bad_responses >= BAD_RESPONSE_LIMIT:
                self.out.write(f"<Server at {state.location} doesn't support RFSAPI.>\n")
                self.out.flush()
                self.incompatible = True
                return False
            self.ascend()
            return True

        state.bad_responses = 0
        state.writes_supported = listing.writes_supported
        if listing.is_file:
            self.show_file()
            state.location = parent_location(state.location)
            state.selected = 0
            return True

        state.entries = build_display_list(listing)
        state.selected = max(0, min(state.selected, len(state.entries) - 1))
        logger.debug("listed %s: %d entries", state.location, len(state.entries))
        self.draw_listing()
        return self.input_loop()

    def input_loop(self) -> bool:
        while True:
            outcome = self.handle_key(self.terminal.read_key())
            if outcome == KEY_QUIT:
                return False
            if outcome == KEY_REFETCH:
                return True

    # Location changes

    def ascend(self) -> bool:
        """Move to the parent location; ``False`` when already at root."""
        if is_root(self.state.location):
            return False
        parent = parent_location(self.state.location)
        logger.debug("ascend %s -> %s", self.state.location, parent)
        self.state.location = parent
        self.state.selected = 0
        return True

    def descend(self) -> bool:
        entry = self.state.selected_entry()
        if entry is None:
            return False
        target = join_location(self.state.location, entry.name)
        logger.debug("descend %s -> %s", self.state.location, target)
        self.state.location = target
        self.state.selected = 0
        return True

    # Key dispatch

    def handle_key(self, key: str) -> str:
        """Apply one key token and report whether to stay, re-fetch or quit."""
        state = self.state
        if key in QUIT_KEYS:
            return KEY_QUIT
        if key in ("ENTER", "RIGHT"):
            return KEY_REFETCH if self.descend() else KEY_STAY
        if key == "LEFT":
            return KEY_REFETCH if self.ascend() else KEY_STAY
        if key == "UP":
            self.select(state.selected - 1)
        elif key == "DOWN":
            self.select(state.selected + 1)
        elif key == "PAGE_UP":
            self.select(state.selected - self._per_screen())
        elif key == "PAGE_DOWN":
            self.select(state.selected + self._per_screen())
        elif key == "HOME":
            self.select(0)
        elif key == "END":
            self.select(len(state.entries) - 1)
        elif key in ("d", "D"):
            self.download_selected()
        elif key in ("u", "U"):
            return self.upload_here()
        elif key == "DELETE":
            return self.delete_selected()
        return KEY_STAY

    def select(self, target: int) -> None:
        """Move the selection, clamped to the list, with the cheapest repaint."""
        total = len(self.state.entries)
        if not total:
            return
        target = max(0, min(total - 1, target))
        previous = self.state.selected
        if target == previous:
            return
        self.state.selected = target
        per_screen = self._per_screen()
        if previous // per_screen != target // per_screen:
            self.draw_listing()
        else:
            self.repaint_selection(previous, target)

    # Rendering

    def _per_screen(self) -> int:
        _, rows = self.terminal.size()
        return lines_per_screen(rows)

    def _print_status(self, message: str) -> None:
        self.out.write(f"Contents of {display_location(self.state.location)}:\n")
        self.out.write(message + "\n")
        self.out.flush()

    def draw_listing(self) -> None:
        """Print the header and every row of the page holding the selection."""
        state = self.state
        per_screen = self._per_screen()
        page = state.selected // per_screen
        first = page * per_screen
        self.out.write(
            f"Contents of {display_location(state.location)} -- page "
            f"{page + 1}/{page_count(len(state.entries), per_screen)}:\n"
        )
        rows = format_rows(state.entries[first : first + per_screen])
        for offset, row in enumerate(rows):
            marker = MARKER if first + offset == state.selected else " "
            self.out.write(f"{marker}{row}\n")
        self.out.flush()

    def _rows_below(self, index: int, per_screen: int) -> int:
        """Distance from row ``index`` to the line under the listing."""
        first = (index // per_screen) * per_screen
        rows_on_page = min(per_screen, len(self.state.entries) - first)
        return rows_on_page - (index - first)

    def _marker_update(self, index: int, marker: str, per_screen: int) -> str:
        distance = self._rows_below(index, per_screen)
        term = self.terminal
        return term.move_cursor_up(distance) + marker + term.move_cursor_back(1) + term.move_cursor_down(distance)

    def repaint_selection(self, previous: int, current: int) -> None:
        """Move the marker between two rows of the visible page in place."""
        per_screen = self._per_screen()
        self.out.write(self._marker_update(previous, " ", per_screen))
        self.out.write(self._marker_update(current, MARKER, per_screen))
        self.out.flush()

    # Files and transfers

    def show_file(self) -> None:
        """Page the current file, offering a download when it is not text."""
        location = self.state.location
        try:
            with self.client.fetch_raw(location) as raw:
                result = paginate(
                    raw.stream,
                    self.out,
                    location_path(location),
                    self.terminal.read_key,
                    self.terminal.size(),
                    self.settings.tab_width,
                )
        except (TransportError, HttpStatusError) as exc:
            self._print_status(failure_line(exc))
            return
        if result == PAGE_NOT_TEXT:
            self._print_status("<Not UTF-8, select download destination>")
            self._download(location)

    def _remember_dir(self, path: Path) -> None:
        self.local_dir = path.parent
        config.save_last_local_dir(self.local_dir)

    def _download(self, location: str) -> None:
        columns, _ = self.terminal.size()
        try:
            saved = transfer.download(
                self.client,
                location,
                self.out,
                self.picker,
                show_progress=self.settings.show_progress,
                initial_dir=self.local_dir,
                width=columns,
            )
        except (TransportError, HttpStatusError) as exc:
            self.out.write(failure_line(exc) + "\n")
            self.out.flush()
            return
        if saved is not None:
            self._remember_dir(saved)

    def download_selected(self) -> None:
        entry = self.state.selected_entry()
        if entry is None or entry.is_directory:
            return
        self._download(join_location(self.state.location, entry.name))
        self.draw_listing()

    def upload_here(self) -> str:
        if not self.state.writes_supported:
            self.out.write(NO_WRITES_MESSAGE + "\n")
            self.draw_listing()
            return KEY_STAY
        try:
            uploaded = transfer.upload(
                self.client,
                self.state.location,
                self.out,
                self.picker,
                initial_dir=self.local_dir,
            )
        except (TransportError, HttpStatusError) as exc:
            self.out.write(failure_line(exc) + "\n")
            self.out.flush()
            return KEY_REFETCH
        if uploaded is None:
            self.draw_listing()
            return KEY_STAY
        self._remember_dir(uploaded[0])
        return KEY_REFETCH

    def delete_selected(self) -> str:
        state = self.state
        if not state.writes_supported:
            self.out.write(NO_WRITES_MESSAGE + "\n")
            self.draw_listing()
            return KEY_STAY
        entry = state.selected_entry()
        if entry is None or entry == PARENT_ENTRY:
            return KEY_STAY
        target = join_location(state.location, entry.name)
        self.out.write(f"<Deleting {display_location(target)}...>\n")
        self.out.flush()
        try:
            status = self.client.delete_resource(target)
        except TransportError as exc:
            self.out.write(failure_line(exc) + "\n")
            self.out.flush()
            return KEY_REFETCH
        if is_success(status):
            self.out.write("<Success!>\n")
            state.selected = 0
        else:
            self.out.write(f"<Got {status_text(status)}...>\n")
        self.out.flush()
        return KEY_REFETCH
