# common/progress.py
# -*- coding: utf-8 -*-
"""
Console progress indicator for long-running installer stages.

The spinner is decoration only: it runs on a daemon thread, is always
stopped and joined before the next line is written, and carries no state the
installer depends on.
"""

import logging
import sys
import threading
from typing import Optional, TextIO

module_logger = logging.getLogger(__name__)

SPINNER_CHARS = "/-\\|"


class ProgressIndicator:
    """
    Prints one summary line per stage, with a spinner on interactive consoles.

    Three rendering modes:
    - verbose: every summary is printed as "=== message" (the log is
      already mirrored on the console, a spinner would garble it).
    - interactive: "message... [/]" with an animated spinner, finished by
      "done" or "failed".
    - plain: the message on its own line.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        verbose: bool = False,
        interactive: Optional[bool] = None,
        delay: float = 0.75,
    ):
        self.stream = stream if stream is not None else sys.stdout
        self.verbose = verbose
        if interactive is None:
            isatty = getattr(self.stream, "isatty", None)
            interactive = bool(isatty and isatty())
        self.interactive = interactive and not verbose
        self.delay = delay
        self._lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._line_open = False

    @property
    def running(self) -> bool:
        return self._thread is not None

    def _write(self, text: str) -> None:
        with self._lock:
            self.stream.write(text)
            self.stream.flush()

    def _spin(self, stop_event: threading.Event) -> None:
        index = 0
        while True:
            self._write(f"[{SPINNER_CHARS[index % len(SPINNER_CHARS)]}]")
            index += 1
            if stop_event.wait(self.delay):
                break
            self._write("\b\b\b")
        self._write("\b\b\b")

    def start(self, message: str) -> None:
        """Finish any running stage as done and announce a new one."""
        self.stop()
        module_logger.info(message)
        if self.verbose:
            self._write(f"=== {message}\n")
            return
        if not self.interactive:
            self._write(f"{message}\n")
            return

        self._write(f"{message}... ")
        self._line_open = True
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._spin, args=(self._stop_event,), daemon=True
        )
        self._thread.start()

    def stop(self, result: str = "done") -> None:
        """Stop the spinner (if any) and close the current line with `result`."""
        if self._thread is not None and self._stop_event is not None:
            self._stop_event.set()
            self._thread.join()
            self._thread = None
            self._stop_event = None
        if self._line_open:
            self._write(f"{result}\n")
            self._line_open = False

    def fail(self) -> None:
        self.stop("failed")

    def message(self, text: str) -> None:
        """Print a line that is not a stage, after stopping the spinner."""
        self.stop()
        self._write(f"{text}\n")
