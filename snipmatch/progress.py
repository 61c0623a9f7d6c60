"""Terminal progress bar for concurrently processed windows.

The bar tracks two counters, ``started`` and ``finished``, and draws them as
two layers of one arrow::

    Progress: [=======------>          ] 07+10/25 01:42

``=`` marks finished windows, ``-`` windows that are being processed.
"""

from __future__ import annotations

import shutil
import sys
import threading
import time
from typing import TextIO


class SimpleArrow:
    """ASCII arrow: ``[===--->   ]``."""

    prefix = "["
    suffix = "]"
    chars = ("=", "-")
    tip = ">"

    @property
    def padding(self) -> int:
        return len(self.prefix) + len(self.suffix)

    def build(self, fractions: tuple[float, float], length: int) -> str:
        inner = max(0, length - self.padding)
        body = ""
        last = 0.0
        for char, fraction in zip(self.chars, fractions):
            body += char * round((fraction - last) * inner)
            last = fraction
        body = body[:inner]
        if len(body) < inner:
            body += self.tip
        return f"{self.prefix}{body.ljust(inner)}{self.suffix}"


class FancyArrow:
    """Arrow drawn with the progress glyphs of the Fira Code font."""

    empty = ("\uee00", "\uee01", "\uee02")
    full = ("\uee03", "\uee04", "\uee05")
    padding = 0

    def build(self, fractions: tuple[float, float], length: int) -> str:
        if length < 2:
            return ""
        filled = round(length * fractions[0])
        middle = min(max(filled - 1, 0), length - 2)
        head = (self.full if filled else self.empty)[0]
        tail = (self.full if filled == length else self.empty)[2]
        return head + self.full[1] * middle + self.empty[1] * (length - 2 - middle) + tail


class ProgressBar:
    """Thread-safe progress display with ``started`` and ``finished`` counters.

    Both counters are only changed under one lock, and the line is redrawn
    while holding it so every frame shows a consistent pair.  Drawing is
    purely observational; a disabled bar still counts.

    Args:
        total: Number of work items expected
        prefix: Text in front of the bar
        stream: Output stream, ``sys.stderr`` by default
        timed: Append the elapsed time as ``MM:SS``
        fancy: Use ``FancyArrow`` instead of ``SimpleArrow``
        enabled: Force drawing on or off; by default only on a terminal
        max_width: Line width, by default the terminal width
    """

    def __init__(
        self,
        total: int,
        prefix: str = "Progress: ",
        stream: TextIO | None = None,
        timed: bool = True,
        fancy: bool = False,
        enabled: bool | None = None,
        max_width: int | None = None,
    ):
        self.total = total
        self.prefix = prefix
        self.stream = stream if stream is not None else sys.stderr
        self.timed = timed
        self.arrow = FancyArrow() if fancy else SimpleArrow()
        if enabled is None:
            enabled = bool(getattr(self.stream, "isatty", lambda: False)())
        self.enabled = enabled
        self.max_width = max_width if max_width is not None else shutil.get_terminal_size().columns

        self.started = 0
        self.finished = 0
        self._start_time = time.monotonic()
        self._closed = False
        self._lock = threading.Lock()

    def snapshot(self) -> tuple[int, int]:
        with self._lock:
            return self.started, self.finished

    def start(self) -> None:
        """Count one more started item and redraw."""
        self._increment(started=True)

    def finish(self) -> None:
        """Count one more finished item and redraw."""
        self._increment(started=False)

    def _increment(self, started: bool) -> None:
        with self._lock:
            if started:
                if self.started >= self.total:
                    raise RuntimeError(f"progress exceeds its bound of {self.total}")
                self.started += 1
            else:
                if self.finished >= self.total:
                    raise RuntimeError(f"progress exceeds its bound of {self.total}")
                self.finished += 1
                # a finished item has always been started
                self.started = max(self.started, self.finished)
            self._draw()
            if self.finished == self.total:
                self._close_locked()

    def elapsed(self) -> str:
        seconds = int(time.monotonic() - self._start_time)
        return f"{(seconds // 60) % 60:02d}:{seconds % 60:02d}"

    def render(self) -> str:
        """Return the current line without the leading carriage return."""
        width = len(str(self.total))
        counts = f"{self.finished:0{width}d}+{self.started:0{width}d}/{self.total}"
        suffix = f" {self.elapsed()}" if self.timed else ""
        if self.total > 0:
            fractions = (self.finished / self.total, self.started / self.total)
        else:
            fractions = (1.0, 1.0)
        length = self.max_width - 1 - len(self.prefix) - len(counts) - 1 - len(suffix)
        length = max(length, self.arrow.padding)
        return f"{self.prefix}{self.arrow.build(fractions, length)} {counts}{suffix}"

    def _draw(self) -> None:
        if not self.enabled or self._closed:
            return
        self.stream.write("\r" + self.render())
        self.stream.flush()

    def _close_locked(self) -> None:
        if self.enabled and not self._closed:
            self.stream.write("\n")
            self.stream.flush()
        self._closed = True

    def close(self) -> None:
        """End the progress line."""
        with self._lock:
            self._close_locked()
