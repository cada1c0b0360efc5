"""Exception hierarchy shared by the protocol client and the navigator.

Transport and status failures send the user back to a parent listing.
Protocol failures are counted; local I/O errors are never wrapped.
"""

from __future__ import annotations

from http import HTTPStatus


class DohError(Exception):
    """Base class for errors raised by doh itself."""


class TransportError(DohError):
    """The request never produced an HTTP response."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"{location}: {reason}")
        self.location = location
        self.reason = reason


class HttpStatusError(DohError):
    """The server answered with a non-success status code."""

    def __init__(self, location: str, status: HTTPStatus | int) -> None:
        super().__init__(f"{location}: {status_text(status)}")
        self.location = location
        self.status = status


class ProtocolError(DohError):
    """The response body is not a valid raw-filesystem listing."""


class HeaderParseError(ProtocolError):
    """An ``X-Raw-Filesystem-API`` header value is malformed."""


def status_text(status: HTTPStatus | int) -> str:
    """Render a status as ``"404 Not Found"``, tolerating unknown codes."""
    try:
        status = HTTPStatus(int(status))
    except ValueError:
        return str(int(status))
    return f"{status.value} {status.phrase}"
