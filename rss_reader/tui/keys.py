"""Keyboard input for the terminal UI.

A background thread puts stdin into cbreak mode and turns raw bytes into
key tokens (``"ENTER"``, ``"UP"``, ``"q"``...). ``key_to_event`` maps tokens
to navigation events for the view currently on screen.
"""

import logging
import os
import select
import sys
import termios
import threading
import tty
from typing import Callable, Optional

from rss_reader.tui.controller import ArticleView, NavEvent, View

logger = logging.getLogger(__name__)

_ESCAPE_SEQUENCES = {
    "[A": "UP",
    "[B": "DOWN",
    "OA": "UP",
    "OB": "DOWN",
    "[5~": "PGUP",
    "[6~": "PGDN",
}

_KEY_EVENTS = {
    "ENTER": NavEvent.SELECT,
    "ESC": NavEvent.BACK,
    "UP": NavEvent.UP,
    "k": NavEvent.UP,
    "DOWN": NavEvent.DOWN,
    "j": NavEvent.DOWN,
    "PGUP": NavEvent.PAGE_UP,
    "u": NavEvent.PAGE_UP,
    "PGDN": NavEvent.PAGE_DOWN,
    "d": NavEvent.PAGE_DOWN,
    "r": NavEvent.REFRESH,
    "s": NavEvent.SAVE,
    "QUIT": NavEvent.QUIT,
}


class TerminalError(Exception):
    """Raised when the terminal cannot be put into interactive mode."""


def key_to_event(token: str, view: View) -> Optional[NavEvent]:
    """Map a key token to an event. ``q`` closes an article, quits elsewhere."""
    if token == "q":
        return NavEvent.BACK if isinstance(view, ArticleView) else NavEvent.QUIT
    return _KEY_EVENTS.get(token)


def decode_escape(sequence: str) -> str:
    return _ESCAPE_SEQUENCES.get(sequence, "ESC")


class KeyReader:
    """Reads keys from stdin on a daemon thread while active."""

    def __init__(self, on_key: Callable[[str], None], stream=None):
        self._on_key = on_key
        self._stream = stream or sys.stdin
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._fd: Optional[int] = None
        self._old_settings = None

    def __enter__(self) -> "KeyReader":
        if not self._stream.isatty():
            raise TerminalError("stdin is not a terminal")
        try:
            self._fd = self._stream.fileno()
            self._old_settings = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        except (termios.error, OSError, ValueError) as e:
            raise TerminalError(f"Failed to initialise terminal: {e}") from e

        self._thread = threading.Thread(target=self._run, name="key-reader", daemon=True)
        self._thread.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        if self._fd is not None and self._old_settings is not None:
            try:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._old_settings)
            except termios.error as e:
                logger.warning("Failed to restore terminal settings: %s", e)

    def _run(self) -> None:
        fd = self._fd
        while not self._stop.is_set():
            ready, _, _ = select.select([fd], [], [], 0.2)
            if not ready:
                continue
            data = os.read(fd, 1)
            if not data:
                continue
            key = data.decode("utf-8", errors="ignore")
            if not key:
                continue
            if key in {"\r", "\n"}:
                self._on_key("ENTER")
            elif key == "\x03":
                self._on_key("QUIT")
            elif key == "\x1b":
                sequence = ""
                while select.select([fd], [], [], 0.01)[0]:
                    sequence += os.read(fd, 1).decode("utf-8", errors="ignore")
                    if len(sequence) > 1 and (sequence[-1].isalpha() or sequence.endswith("~")):
                        break
                    if len(sequence) >= 6:
                        break
                self._on_key(decode_escape(sequence))
            else:
                self._on_key(key)
