"""Keyboard input for watch mode."""

import asyncio
import logging
import os
import sys
import termios
from collections.abc import Callable
from typing import Protocol, TextIO

log = logging.getLogger(__name__)


class InputSource(Protocol):
    def close(self) -> None: ...


class InputService:
    """Delivers key presses from a terminal as they are typed.

    While open, the terminal is switched out of canonical mode with echo and
    signal keys disabled, so ``Ctrl+C`` arrives as input instead of
    interrupting the process. ``close`` restores the terminal.
    """

    def __init__(
        self, on_input: Callable[[str], None], stream: TextIO | None = None
    ) -> None:
        self._on_input = on_input
        self._stream = stream or sys.stdin
        self._fd = self._stream.fileno()
        self._saved_attributes: list | None = None
        self._loop = asyncio.get_running_loop()

        if self._stream.isatty():
            self._saved_attributes = termios.tcgetattr(self._fd)
            attributes = termios.tcgetattr(self._fd)
            attributes[3] &= ~(termios.ICANON | termios.ECHO | termios.ISIG)
            termios.tcsetattr(self._fd, termios.TCSANOW, attributes)

        self._loop.add_reader(self._fd, self._on_readable)
        self._is_reading = True

    def close(self) -> None:
        if self._is_reading:
            self._loop.remove_reader(self._fd)
            self._is_reading = False
        if self._saved_attributes is not None:
            termios.tcsetattr(self._fd, termios.TCSANOW, self._saved_attributes)
            self._saved_attributes = None

    def _on_readable(self) -> None:
        data = os.read(self._fd, 1024)
        if not data:
            log.debug("Input stream closed")
            self._loop.remove_reader(self._fd)
            self._is_reading = False
            return
        self._on_input(data.decode(errors="ignore"))
