"""Local file pickers for downloads and uploads.

Either Tk's native dialogs or a plain prompt on the terminal; both return
``None`` when the user cancels.
"""

from __future__ import annotations

import importlib.util
import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TextIO

from .terminal import TerminalCapability

logger = logging.getLogger(__name__)


class DialogPicker:
    """Native open/save dialogs through ``tkinter.filedialog``.

    When Tk cannot start (no tkinter build, dead display) each call is
    answered by ``fallback`` instead.
    """

    def __init__(self, fallback: PromptPicker) -> None:
        self.fallback = fallback

    def _open_root(self) -> object | None:
        try:
            import tkinter
        except ImportError as exc:
            logger.warning("tkinter unavailable, prompting on the terminal: %s", exc)
            return None
        try:
            root = tkinter.Tk()
        except tkinter.TclError as exc:
            logger.warning("cannot open a Tk window, prompting on the terminal: %s", exc)
            return None
        root.withdraw()
        return root

    def open_save_picker(self, suggested_name: str, extension: str | None, initial_dir: Path | None = None) -> Path | None:
        root = self._open_root()
        if root is None:
            return self.fallback.open_save_picker(suggested_name, extension, initial_dir)
        from tkinter import filedialog

        filetypes = [("All files", "*")]
        if extension:
            filetypes.insert(0, (f"{extension.upper()} files", f"*.{extension}"))
        try:
            chosen = filedialog.asksaveasfilename(
                parent=root,
                title="Save remote file as",
                initialfile=suggested_name,
                initialdir=str(initial_dir) if initial_dir else None,
                defaultextension=f".{extension}" if extension else "",
                filetypes=filetypes,
            )
        finally:
            root.destroy()
        return Path(chosen) if chosen else None

    def open_load_picker(self, initial_dir: Path | None = None) -> Path | None:
        root = self._open_root()
        if root is None:
            return self.fallback.open_load_picker(initial_dir)
        from tkinter import filedialog

        try:
            chosen = filedialog.askopenfilename(
                parent=root,
                title="Select file to upload",
                initialdir=str(initial_dir) if initial_dir else None,
            )
        finally:
            root.destroy()
        return Path(chosen) if chosen else None


class PromptPicker:
    """Ask for a local path on the terminal; an empty answer cancels."""

    def __init__(
        self,
        terminal: TerminalCapability,
        out: TextIO | None = None,
        read_line: Callable[[str], str] = input,
    ) -> None:
        self.terminal = terminal
        self.out = out if out is not None else sys.stdout
        self.read_line = read_line

    def _ask(self, prompt: str) -> str:
        self.out.flush()
        with self.terminal.line_input():
            try:
                return self.read_line(prompt).strip()
            except EOFError:
                return ""

    @staticmethod
    def _resolve(answer: str, initial_dir: Path | None) -> Path:
        path = Path(answer).expanduser()
        if not path.is_absolute() and initial_dir is not None:
            path = initial_dir / path
        return path

    def open_save_picker(self, suggested_name: str, extension: str | None, initial_dir: Path | None = None) -> Path | None:
        where = f" in {initial_dir}" if initial_dir else ""
        answer = self._ask(f"Save {suggested_name}{where} as (empty to cancel): ")
        if not answer:
            return None
        path = self._resolve(answer, initial_dir)
        if path.is_dir():
            path = path / suggested_name
        return path

    def open_load_picker(self, initial_dir: Path | None = None) -> Path | None:
        where = f" (relative to {initial_dir})" if initial_dir else ""
        answer = self._ask(f"File to upload{where}, empty to cancel: ")
        if not answer:
            return None
        path = self._resolve(answer, initial_dir)
        if not path.is_file():
            self.out.write(f"<No such file: {path}>\n")
            return None
        return path


def display_available() -> bool:
    """True when Tk is installed and a display to open dialogs on is likely."""
    if importlib.util.find_spec("tkinter") is None:
        return False
    if sys.platform in ("win32", "darwin"):
        return True
    return bool(os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))


def create_picker(kind: str, terminal: TerminalCapability) -> DialogPicker | PromptPicker:
    """Build the picker named by ``kind`` (``auto``, ``dialog`` or ``prompt``)."""
    prompt = PromptPicker(terminal, terminal.out)
    if kind == "dialog" or (kind == "auto" and display_available()):
        logger.debug("using native file dialogs")
        return DialogPicker(prompt)
    logger.debug("using terminal prompt picker")
    return prompt
