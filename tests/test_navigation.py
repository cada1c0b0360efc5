"""Tests for the listing navigator driven by scripted keys.

The HTTP client is a mock returning prepared listings; the terminal is a
``TerminalCapability`` with a fixed size that replays a key script and
renders into a ``StringIO``.
"""

from __future__ import annotations

import io
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest import mock

from doh.entries import PARENT_ENTRY, Entry, entry_from_raw
from doh.errors import HttpStatusError, ProtocolError, TransportError
from doh.navigation import (
    KEY_QUIT,
    KEY_REFETCH,
    KEY_STAY,
    NO_WRITES_MESSAGE,
    Navigator,
    failure_line,
    lines_per_screen,
    page_count,
)
from doh.protocol import Listing, RawEntry
from doh.terminal import TerminalCapability

STAMP = datetime(2012, 2, 22, 14, 53, 18, tzinfo=timezone.utc)


class FakeTerminal(TerminalCapability):
    def __init__(self, keys: list[str] | None = None, size: tuple[int, int] = (80, 24)) -> None:
        super().__init__(io.StringIO())
        self.keys = list(keys or [])
        self._size = size

    def size(self) -> tuple[int, int]:
        return self._size

    def read_key(self) -> str:
        # An exhausted script behaves like a closed stdin.
        return self.keys.pop(0) if self.keys else ""


class FakeRaw:
    def __init__(self, payload: bytes) -> None:
        self.stream = io.BytesIO(payload)
        self.content_length = len(payload)

    def __enter__(self) -> "FakeRaw":
        return self

    def __exit__(self, *exc_info) -> None:
        pass


class BrokenLines:
    """Body iterator that drops the connection after the first line."""

    def __iter__(self):
        yield b"first line\n"
        raise TransportError("http://h/docs/cut.txt", "Connection broken")


def raw_entry(name: str, is_file: bool = True, size: int = 10) -> RawEntry:
    return RawEntry(name=name, mime_type="text/plain", size=size, is_file=is_file, last_modified=STAMP)


def raw_to_entry(name: str) -> Entry:
    return entry_from_raw(raw_entry(name))


def dir_listing(names: list[str], is_root: bool = True, writes: bool = False, dirs: list[str] | None = None) -> Listing:
    files = [raw_entry(name, is_file=False) for name in dirs or []]
    files += [raw_entry(name) for name in names]
    return Listing(writes_supported=writes, is_root=is_root, is_file=False, files=files)


def file_listing() -> Listing:
    return Listing(writes_supported=False, is_root=False, is_file=True, files=[])


def make_navigator(
    location: str,
    listings: list | None = None,
    keys: list[str] | None = None,
    size: tuple[int, int] = (80, 24),
) -> tuple[Navigator, mock.Mock, FakeTerminal]:
    client = mock.Mock()
    if listings is not None:
        client.fetch_listing.side_effect = listings
    terminal = FakeTerminal(keys, size)
    picker = mock.Mock()
    return Navigator(location, client, terminal, picker, terminal.out), client, terminal


def fetched_locations(client: mock.Mock) -> list[str]:
    return [call.args[0] for call in client.fetch_listing.call_args_list]


class HelperTests(unittest.TestCase):
    def test_lines_per_screen_leaves_room_for_header(self) -> None:
        self.assertEqual(lines_per_screen(24), 22)
        self.assertEqual(lines_per_screen(2), 1)
        self.assertEqual(lines_per_screen(1), 1)

    def test_page_count_is_at_least_one(self) -> None:
        self.assertEqual(page_count(0, 22), 1)
        self.assertEqual(page_count(22, 22), 1)
        self.assertEqual(page_count(23, 22), 2)

    def test_failure_lines(self) -> None:
        self.assertEqual(failure_line(HttpStatusError("http://h/", 404)), "<Got 404 Not Found...>")
        self.assertEqual(
            failure_line(TransportError("http://h/", "refused")),
            "<Couldn't reach server: refused...>",
        )


class ListingRenderTests(unittest.TestCase):
    def test_listing_header_and_marker(self) -> None:
        navigator, _, terminal = make_navigator("http://h/", [dir_listing(["a.txt", "b.txt"])], ["q"])

        self.assertTrue(navigator.run())

        output = terminal.out.getvalue()
        self.assertIn("Contents of http://h/ -- page 1/1:\n", output)
        self.assertIn(">a.txt  10B  ", output)
        self.assertIn(" b.txt  10B  ", output)
        self.assertTrue(output.startswith("\x1b[?25l"))
        self.assertTrue(output.endswith("\x1b[?25h"))

    def test_header_is_percent_decoded(self) -> None:
        navigator, _, terminal = make_navigator("http://h/my%20dir/", [dir_listing([], is_root=False)], ["q"])

        navigator.run()

        self.assertIn("Contents of http://h/my dir/ -- page 1/1:\n>../\n", terminal.out.getvalue())

    def test_move_within_page_repaints_only_marker(self) -> None:
        names = [f"f{i}.txt" for i in range(5)]
        navigator, _, terminal = make_navigator("http://h/", [dir_listing(names)], ["DOWN", "UP", "q"])
        navigator.state.selected = 2

        navigator.run()

        output = terminal.out.getvalue()
        self.assertEqual(output.count("Contents of"), 1)
        down = "\x1b[3A \x1b[1D\x1b[3B" + "\x1b[2A>\x1b[1D\x1b[2B"
        up = "\x1b[2A \x1b[1D\x1b[2B" + "\x1b[3A>\x1b[1D\x1b[3B"
        self.assertIn(down + up, output)
        self.assertEqual(navigator.state.selected, 2)

    def test_move_across_page_redraws_listing(self) -> None:
        names = [f"f{i}.txt" for i in range(5)]
        navigator, _, terminal = make_navigator("http://h/", [dir_listing(names)], ["DOWN", "q"], size=(80, 5))
        navigator.state.selected = 2

        navigator.run()

        output = terminal.out.getvalue()
        self.assertIn("Contents of http://h/ -- page 1/2:\n", output)
        self.assertIn("Contents of http://h/ -- page 2/2:\n>f3.txt", output)
        self.assertEqual(navigator.state.selected, 3)

    def test_selection_clamps_at_edges(self) -> None:
        navigator, _, terminal = make_navigator("http://h/", [dir_listing(["a", "b"])], ["UP", "DOWN", "DOWN", "DOWN", "q"])

        navigator.run()

        self.assertEqual(navigator.state.selected, 1)
        # One repaint for the single effective move.
        self.assertEqual(terminal.out.getvalue().count(">"), 2)


class KeyDispatchTests(unittest.TestCase):
    def _navigator(self, count: int = 7, writes: bool = False) -> Navigator:
        navigator, _, _ = make_navigator("http://h/", size=(80, 5))
        navigator.state.entries = [raw_to_entry(f"f{i}.txt") for i in range(count)]
        navigator.state.writes_supported = writes
        return navigator

    def test_quit_keys(self) -> None:
        navigator = self._navigator()
        for key in ("ESC", "q", "Q", ""):
            self.assertEqual(navigator.handle_key(key), KEY_QUIT)

    def test_unknown_key_stays(self) -> None:
        navigator = self._navigator()
        self.assertEqual(navigator.handle_key("UNKNOWN"), KEY_STAY)
        self.assertEqual(navigator.handle_key("x"), KEY_STAY)

    def test_page_keys_move_by_screen(self) -> None:
        navigator = self._navigator()

        navigator.handle_key("PAGE_DOWN")
        self.assertEqual(navigator.state.selected, 3)
        navigator.handle_key("PAGE_DOWN")
        self.assertEqual(navigator.state.selected, 6)
        navigator.handle_key("PAGE_DOWN")
        self.assertEqual(navigator.state.selected, 6)
        navigator.handle_key("PAGE_UP")
        self.assertEqual(navigator.state.selected, 3)

    def test_home_and_end(self) -> None:
        navigator = self._navigator()

        navigator.handle_key("END")
        self.assertEqual(navigator.state.selected, 6)
        navigator.handle_key("HOME")
        self.assertEqual(navigator.state.selected, 0)

    def test_left_at_root_stays(self) -> None:
        navigator = self._navigator()
        self.assertEqual(navigator.handle_key("LEFT"), KEY_STAY)
        self.assertEqual(navigator.state.location, "http://h/")

    def test_ascend_stops_at_root_in_either_spelling(self) -> None:
        for root in ("http://h", "http://h/"):
            navigator, _, _ = make_navigator(root)
            self.assertFalse(navigator.ascend())
            self.assertEqual(navigator.state.location, root)

        navigator, _, _ = make_navigator("http://h/a/")
        navigator.state.selected = 3
        self.assertTrue(navigator.ascend())
        self.assertEqual((navigator.state.location, navigator.state.selected), ("http://h", 0))

    def test_movement_on_empty_listing_is_ignored(self) -> None:
        navigator = self._navigator(count=0)
        navigator.handle_key("DOWN")
        navigator.handle_key("END")
        self.assertEqual(navigator.state.selected, 0)
        self.assertEqual(navigator.handle_key("ENTER"), KEY_STAY)


class LocationChangeTests(unittest.TestCase):
    def test_enter_descends_into_directory(self) -> None:
        listings = [
            dir_listing(["f.txt"], dirs=["sub"]),
            dir_listing(["inner.txt"], is_root=False),
        ]
        navigator, client, _ = make_navigator("http://h/", listings, ["ENTER", "q"])

        navigator.run()

        self.assertEqual(fetched_locations(client), ["http://h/", "http://h/sub/"])

    def test_parent_entry_ascends(self) -> None:
        listings = [dir_listing([], is_root=False), dir_listing([])]
        navigator, client, _ = make_navigator("http://h/sub/", listings, ["RIGHT", "q"])

        navigator.run()

        self.assertEqual(fetched_locations(client), ["http://h/sub/", "http://h/"])

    def test_left_goes_to_parent(self) -> None:
        listings = [dir_listing(["x"], is_root=False), dir_listing([])]
        navigator, client, _ = make_navigator("http://h/a/b/", listings, ["LEFT", "q"])

        navigator.run()

        self.assertEqual(fetched_locations(client), ["http://h/a/b/", "http://h/a"])

    def test_transport_failure_falls_back_to_parent(self) -> None:
        listings = [TransportError("http://h/a/", "refused"), dir_listing([])]
        navigator, client, terminal = make_navigator("http://h/a/", listings, ["q"])

        self.assertTrue(navigator.run())

        self.assertIn("Contents of http://h/a/:\n<Couldn't reach server: refused...>\n", terminal.out.getvalue())
        self.assertEqual(fetched_locations(client), ["http://h/a/", "http://h"])

    def test_error_status_falls_back_to_parent(self) -> None:
        listings = [HttpStatusError("http://h/a/", 404), dir_listing([])]
        navigator, _, terminal = make_navigator("http://h/a/", listings, ["q"])

        self.assertTrue(navigator.run())

        self.assertIn("<Got 404 Not Found...>\n", terminal.out.getvalue())

    def test_failure_at_root_ends_session(self) -> None:
        navigator, client, _ = make_navigator("http://h/", [TransportError("http://h/", "refused")])

        self.assertFalse(navigator.run())

        self.assertTrue(navigator.unreachable)
        self.assertEqual(client.fetch_listing.call_count, 1)


class IncompatibleServerTests(unittest.TestCase):
    def test_three_bad_responses_end_session(self) -> None:
        listings = [ProtocolError("bad")] * 3
        navigator, client, terminal = make_navigator("http://h/a/b/", listings)

        self.assertFalse(navigator.run())

        output = terminal.out.getvalue()
        self.assertTrue(navigator.incompatible)
        self.assertEqual(output.count("<Couldn't parse server response: bad...>"), 3)
        self.assertIn("<Server at http://h doesn't support RFSAPI.>\n", output)
        self.assertEqual(fetched_locations(client), ["http://h/a/b/", "http://h/a", "http://h"])

    def test_successful_listing_resets_counter(self) -> None:
        bad = ProtocolError("bad")
        listings = [bad, bad, dir_listing([], is_root=False), bad, bad, bad]
        navigator, client, _ = make_navigator("http://h/a/b/c/", listings, ["ENTER"])

        self.assertFalse(navigator.run())

        self.assertEqual(client.fetch_listing.call_count, 6)
        self.assertTrue(navigator.incompatible)


class FileViewTests(unittest.TestCase):
    def test_text_file_is_paged_then_parent_listed(self) -> None:
        listings = [file_listing(), dir_listing(["readme.txt"], is_root=False)]
        navigator, client, terminal = make_navigator("http://h/docs/readme.txt", listings, ["x", "q"])
        client.fetch_raw.return_value = FakeRaw(b"hello\nworld\n")

        navigator.run()

        output = terminal.out.getvalue()
        self.assertIn("hello\nworld\n<docs/readme.txt> <End of file> <press any key to stop>\n", output)
        self.assertEqual(fetched_locations(client), ["http://h/docs/readme.txt", "http://h/docs"])
        client.fetch_raw.assert_called_once_with("http://h/docs/readme.txt")

    def test_binary_file_offers_download(self) -> None:
        listings = [file_listing(), dir_listing([])]
        navigator, client, terminal = make_navigator("http://h/blob.bin", listings, ["q"])
        client.fetch_raw.return_value = FakeRaw(b"\xff\xfe\x00\x01")

        with tempfile.TemporaryDirectory() as tmp:
            saved = Path(tmp) / "blob.bin"
            with mock.patch("doh.config.CONFIG_PATH", Path(tmp) / "config.json"), mock.patch(
                "doh.navigation.transfer.download", return_value=saved
            ) as download:
                navigator.run()

            download.assert_called_once()
            self.assertEqual(download.call_args.args[1], "http://h/blob.bin")
            self.assertEqual(navigator.local_dir, Path(tmp))
            self.assertIn(tmp, (Path(tmp) / "config.json").read_text(encoding="utf-8"))
        self.assertIn("<Not UTF-8, select download destination>\n", terminal.out.getvalue())

    def test_download_key_on_file_entry(self) -> None:
        navigator, client, terminal = make_navigator("http://h/pub/", [dir_listing(["a.txt"], is_root=False)], ["DOWN", "d", "q"])

        with mock.patch("doh.navigation.transfer.download", return_value=None) as download:
            navigator.run()

        self.assertEqual(download.call_args.args[1], "http://h/pub/a.txt")
        self.assertEqual(terminal.out.getvalue().count("Contents of"), 2)

    def test_broken_file_body_falls_back_to_parent(self) -> None:
        listings = [file_listing(), dir_listing(["cut.txt"], is_root=False)]
        navigator, client, terminal = make_navigator("http://h/docs/cut.txt", listings, ["q"])
        client.fetch_raw.return_value = FakeRaw(b"")
        client.fetch_raw.return_value.stream = BrokenLines()

        self.assertTrue(navigator.run())

        output = terminal.out.getvalue()
        self.assertIn("Contents of http://h/docs/cut.txt:\n<Couldn't reach server: Connection broken...>\n", output)
        self.assertEqual(fetched_locations(client), ["http://h/docs/cut.txt", "http://h/docs"])

    def test_broken_download_is_reported(self) -> None:
        navigator, _, terminal = make_navigator("http://h/pub/", [dir_listing(["a.txt"], is_root=False)], ["DOWN", "d", "q"])

        with mock.patch(
            "doh.navigation.transfer.download",
            side_effect=TransportError("http://h/pub/a.txt", "Connection broken"),
        ):
            self.assertTrue(navigator.run())

        output = terminal.out.getvalue()
        self.assertIn("<Couldn't reach server: Connection broken...>\nContents of http://h/pub/", output)

    def test_download_key_on_directory_is_ignored(self) -> None:
        navigator, _, _ = make_navigator("http://h/", [dir_listing([], dirs=["sub"])], ["d", "q"])

        with mock.patch("doh.navigation.transfer.download") as download:
            navigator.run()

        download.assert_not_called()


class WriteRequestTests(unittest.TestCase):
    def test_upload_refused_without_write_support(self) -> None:
        navigator, _, terminal = make_navigator("http://h/", [dir_listing(["a"])], ["u", "q"])

        navigator.run()

        output = terminal.out.getvalue()
        self.assertIn(NO_WRITES_MESSAGE + "\nContents of http://h/ -- page 1/1:\n", output)
        navigator.picker.open_load_picker.assert_not_called()

    def test_delete_refused_without_write_support(self) -> None:
        navigator, client, terminal = make_navigator("http://h/", [dir_listing(["a"])], ["DELETE", "q"])

        navigator.run()

        self.assertIn(NO_WRITES_MESSAGE, terminal.out.getvalue())
        client.delete_resource.assert_not_called()

    def test_successful_upload_refetches(self) -> None:
        listings = [dir_listing([], writes=True), dir_listing(["new.txt"], writes=True)]
        navigator, client, _ = make_navigator("http://h/", listings, ["u", "q"])

        with tempfile.TemporaryDirectory() as tmp, mock.patch(
            "doh.config.CONFIG_PATH", Path(tmp) / "config.json"
        ), mock.patch("doh.navigation.transfer.upload", return_value=(Path(tmp) / "new.txt", 201)) as upload:
            navigator.run()

            self.assertEqual(navigator.local_dir, Path(tmp))
        self.assertEqual(upload.call_args.args[1], "http://h/")
        self.assertEqual(client.fetch_listing.call_count, 2)

    def test_cancelled_upload_redraws_without_refetch(self) -> None:
        navigator, client, terminal = make_navigator("http://h/", [dir_listing([], writes=True)], ["u", "q"])

        with mock.patch("doh.navigation.transfer.upload", return_value=None):
            navigator.run()

        self.assertEqual(client.fetch_listing.call_count, 1)
        self.assertEqual(terminal.out.getvalue().count("Contents of"), 2)

    def test_delete_success_refetches_and_resets_selection(self) -> None:
        listings = [dir_listing(["a.txt", "b.txt"], writes=True), dir_listing(["a.txt"], writes=True)]
        navigator, client, terminal = make_navigator("http://h/", listings, ["DOWN", "DELETE", "q"])
        client.delete_resource.return_value = 204

        navigator.run()

        client.delete_resource.assert_called_once_with("http://h/b.txt")
        self.assertIn("<Deleting http://h/b.txt...>\n<Success!>\n", terminal.out.getvalue())
        self.assertEqual(navigator.state.selected, 0)
        self.assertEqual(client.fetch_listing.call_count, 2)

    def test_delete_rejected_status_is_reported(self) -> None:
        listings = [dir_listing(["a.txt"], writes=True), dir_listing(["a.txt"], writes=True)]
        navigator, client, terminal = make_navigator("http://h/", listings, ["DELETE", "q"])
        client.delete_resource.return_value = 403

        navigator.run()

        self.assertIn("<Got 403 Forbidden...>\n", terminal.out.getvalue())

    def test_delete_ignores_parent_entry(self) -> None:
        navigator, client, _ = make_navigator("http://h/sub/", [dir_listing([], is_root=False, writes=True)], ["DELETE", "q"])

        navigator.run()

        self.assertEqual(navigator.state.selected_entry(), PARENT_ENTRY)
        client.delete_resource.assert_not_called()


if __name__ == "__main__":
    unittest.main()
