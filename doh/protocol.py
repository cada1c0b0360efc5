"""Raw-filesystem (RFSAPI) wire format.

Defines the ``X-Raw-Filesystem-API`` header codec and the JSON listing
schema servers return when that header is ``1``.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import HeaderParseError, ProtocolError

RAW_FS_API_HEADER = "X-Raw-Filesystem-API"


def format_raw_fs_api_header(structured: bool) -> str:
    """Header value asking for a JSON listing (``"1"``) or raw bytes (``"0"``)."""
    return "1" if structured else "0"


def parse_raw_fs_api_header(values: Sequence[bytes]) -> bool:
    """Decode raw header values; exactly one single-byte ``1``/``0`` is valid."""
    if len(values) != 1:
        raise HeaderParseError(f"expected one {RAW_FS_API_HEADER} value, got {len(values)}")
    value = bytes(values[0])
    if value == b"1":
        return True
    if value == b"0":
        return False
    raise HeaderParseError(f"invalid {RAW_FS_API_HEADER} value: {value!r}")


class RawEntry(BaseModel):
    """One item of a listing as sent by the server."""

    model_config = ConfigDict(frozen=True)

    name: str
    mime_type: str
    size: int = Field(ge=0)
    is_file: bool
    last_modified: datetime


class Listing(BaseModel):
    """Server snapshot of one location."""

    model_config = ConfigDict(frozen=True)

    writes_supported: bool
    is_root: bool
    is_file: bool
    files: list[RawEntry]


def parse_listing(body: bytes | str) -> Listing:
    """Validate a listing body, raising ``ProtocolError`` on any mismatch."""
    try:
        return Listing.model_validate_json(body)
    except ValidationError as exc:
        raise ProtocolError(_summarize(exc)) from exc


def _summarize(exc: ValidationError) -> str:
    first = exc.errors()[0]
    where = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"{where}: {first.get('msg', 'invalid')}"
