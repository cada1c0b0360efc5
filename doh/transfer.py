"""Download and upload flows.

Each flow asks a picker for the local side, streams the bytes and reports
progress as status lines. Local I/O errors propagate to the caller.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO, TextIO

from tqdm import tqdm

from .client import RawFsClient, RawResponse, is_success
from .errors import TransportError, status_text
from .location import display_location, join_location, last_segment
from .pickers import DialogPicker, PromptPicker

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

Picker = DialogPicker | PromptPicker


def suggested_download_name(location: str) -> tuple[str, str | None]:
    """File name and extension (without dot) to offer for ``location``."""
    name = last_segment(location) or "download"
    extension = Path(name).suffix.lstrip(".")
    return name, extension or None


def _copy_body(raw: RawResponse, sink: BinaryIO, out: TextIO, show_progress: bool, width: int | None) -> None:
    if not show_progress or raw.content_length is None:
        shutil.copyfileobj(raw.stream, sink, CHUNK_SIZE)
        return
    with tqdm(
        total=raw.content_length,
        unit="B",
        unit_scale=True,
        unit_divisor=1024,
        file=out,
        ncols=width,
        mininterval=1.0,
    ) as bar:
        while True:
            chunk = raw.stream.read(CHUNK_SIZE)
            if not chunk:
                break
            sink.write(chunk)
            bar.update(len(chunk))


def download(
    client: RawFsClient,
    location: str,
    out: TextIO,
    picker: Picker,
    *,
    show_progress: bool = True,
    initial_dir: Path | None = None,
    width: int | None = None,
) -> Path | None:
    """Save the raw bytes of ``location`` where the user picks.

    Returns the written path, or ``None`` when the picker was cancelled.
    """
    name, extension = suggested_download_name(location)
    target = picker.open_save_picker(name, extension, initial_dir)
    if target is None:
        logger.debug("download of %s cancelled", location)
        return None

    out.write(f"<Downloading to {target}...>\n")
    out.flush()
    with client.fetch_raw(location) as raw:
        try:
            with open(target, "wb") as sink:
                _copy_body(raw, sink, out, show_progress, width)
        except TransportError:
            # A broken body leaves no partial file behind.
            target.unlink(missing_ok=True)
            raise
    logger.info("downloaded %s to %s", location, target)
    out.write("<Done!>\n")
    out.flush()
    return target


def upload(
    client: RawFsClient,
    directory: str,
    out: TextIO,
    picker: Picker,
    *,
    initial_dir: Path | None = None,
) -> tuple[Path, int] | None:
    """PUT a picked local file into ``directory`` under its own name.

    Returns the local path and response status, or ``None`` when cancelled.
    """
    source = picker.open_load_picker(initial_dir)
    if source is None:
        logger.debug("upload to %s cancelled", directory)
        return None

    out.write(f"<Uploading {source} to {display_location(directory)}...>\n")
    out.flush()
    status = client.upload_file(join_location(directory, source.name), source)
    if is_success(status):
        out.write("<Success!>\n")
    else:
        out.write(f"<Got {status_text(status)}...>\n")
    out.flush()
    return source, status
