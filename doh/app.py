"""Session wiring.

Builds the HTTP client, terminal, picker and navigator for one run and
guarantees the HTTP session is closed afterwards.
"""

from __future__ import annotations

import logging

from .client import RawFsClient
from .config import Settings, load_settings
from .navigation import Navigator
from .pickers import create_picker
from .terminal import TerminalCapability, create_terminal

logger = logging.getLogger(__name__)


def run_session(
    location: str,
    settings: Settings | None = None,
    terminal: TerminalCapability | None = None,
    client: RawFsClient | None = None,
) -> bool:
    """Browse ``location`` interactively; ``False`` when the server was unusable."""
    if settings is None:
        settings = load_settings()
    if terminal is None:
        terminal = create_terminal()
    if client is None:
        client = RawFsClient(timeout=settings.request_timeout)
    picker = create_picker(settings.picker, terminal)

    logger.info("starting session at %s", location)
    try:
        navigator = Navigator(location, client, terminal, picker, terminal.out, settings)
        return navigator.run()
    finally:
        client.close()
        logger.info("session at %s ended", location)
