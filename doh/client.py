"""HTTP client for raw-filesystem servers.

Wraps one ``requests.Session`` carrying the fixed client headers.
Every call blocks until a response or error arrives; nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

import requests
import urllib3

from . import __version__
from .errors import HttpStatusError, TransportError
from .protocol import RAW_FS_API_HEADER, Listing, format_raw_fs_api_header, parse_listing

logger = logging.getLogger(__name__)

USER_AGENT = f"doh/{__version__}"


def is_success(status: int) -> bool:
    return 200 <= status < 300


class RawStream:
    """Body stream that reports mid-body network failures as ``TransportError``."""

    def __init__(self, raw: BinaryIO, location: str) -> None:
        self._raw = raw
        self.location = location

    def _failed(self, exc: Exception) -> TransportError:
        logger.warning("reading %s failed: %s", self.location, exc)
        return TransportError(self.location, str(exc))

    def read(self, amt: int | None = None) -> bytes:
        try:
            return self._raw.read(amt)
        except (urllib3.exceptions.HTTPError, requests.RequestException) as exc:
            raise self._failed(exc) from exc

    def __iter__(self) -> Iterator[bytes]:
        try:
            yield from self._raw
        except (urllib3.exceptions.HTTPError, requests.RequestException) as exc:
            raise self._failed(exc) from exc


class RawResponse:
    """Streamed raw body of one GET; use as a context manager to release it."""

    def __init__(self, response: requests.Response, location: str) -> None:
        self._response = response
        self._stream = RawStream(response.raw, location)
        # urllib3 only un-gzips the raw stream when asked to.
        response.raw.decode_content = True

    @property
    def status(self) -> int:
        return self._response.status_code

    @property
    def content_length(self) -> int | None:
        value = self._response.headers.get("Content-Length")
        if value is None or not value.isdigit():
            return None
        return int(value)

    @property
    def stream(self) -> RawStream:
        return self._stream

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> RawResponse:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class RawFsClient:
    """Issue RFSAPI requests against arbitrary locations."""

    def __init__(self, timeout: float | None = None, session: requests.Session | None = None) -> None:
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT

    def close(self) -> None:
        self.session.close()

    def _send(self, method: str, location: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, location, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, location, exc)
            raise TransportError(location, str(exc)) from exc
        logger.debug("%s %s -> %s", method, location, response.status_code)
        return response

    def _get(self, location: str, structured: bool, stream: bool) -> requests.Response:
        headers = {
            RAW_FS_API_HEADER: format_raw_fs_api_header(structured),
            "Accept-Encoding": "gzip",
        }
        response = self._send("GET", location, headers=headers, stream=stream)
        if not is_success(response.status_code):
            response.close()
            raise HttpStatusError(location, response.status_code)
        return response

    def fetch_listing(self, location: str) -> Listing:
        """GET the JSON listing of ``location``.

        Raises ``TransportError``, ``HttpStatusError`` or ``ProtocolError``.
        """
        response = self._get(location, structured=True, stream=False)
        return parse_listing(response.content)

    def fetch_raw(self, location: str) -> RawResponse:
        """GET the plain bytes of ``location`` as a transparently decompressed stream."""
        return RawResponse(self._get(location, structured=False, stream=True), location)

    def upload_file(self, location: str, local_path: Path) -> int:
        """PUT the contents of ``local_path`` to ``location`` and return the status."""
        with open(local_path, "rb") as body:
            response = self._send("PUT", location, data=body)
        logger.info("uploaded %s to %s: %s", local_path, location, response.status_code)
        return response.status_code

    def delete_resource(self, location: str) -> int:
        """DELETE ``location`` and return the status."""
        response = self._send("DELETE", location)
        logger.info("deleted %s: %s", location, response.status_code)
        return response.status_code
