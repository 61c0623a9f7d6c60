"""Split a sample stream into overlapping fixed-size windows."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Window:
    """A slice of the main stream.

    Attributes:
        index: Position of the window in the sequence of windows
        start: Offset of the first sample within the main stream
        samples: The window's own copy of the samples
    """

    index: int
    start: int
    samples: np.ndarray

    @property
    def end(self) -> int:
        return self.start + len(self.samples)

    def __len__(self) -> int:
        return len(self.samples)


def _iter_blocks(source: Iterable | np.ndarray) -> Iterator[np.ndarray]:
    if isinstance(source, np.ndarray):
        yield source.ravel()
        return
    for block in source:
        yield np.atleast_1d(np.asarray(block)).ravel()


def chunked(
    source: Iterable | np.ndarray,
    window_size: int,
    hop_length: int,
) -> Iterator[Window]:
    """Lazily cut ``source`` into windows of ``window_size`` samples.

    Consecutive windows start ``hop_length`` samples apart; the last window
    is truncated to whatever remains.  ``source`` is consumed once and may be
    either a flat array or an iterable of sample blocks of any length (a
    streaming decoder), so at most ``window_size`` samples plus one block are
    buffered at a time.

    Args:
        source: Samples, or an iterable of sample blocks or single samples
        window_size: Maximum number of samples per window
        hop_length: Distance between the starts of two windows

    Yields:
        Window objects in stream order

    Raises:
        ValueError: If ``window_size`` or ``hop_length`` is not positive, or
            ``hop_length`` exceeds ``window_size``
    """
    if window_size <= 0 or hop_length <= 0:
        raise ValueError(f"window_size and hop_length must be positive, got {window_size}, {hop_length}")
    if hop_length > window_size:
        raise ValueError(f"hop_length {hop_length} exceeds window_size {window_size}")

    blocks = _iter_blocks(source)
    pending: list[np.ndarray] = []
    buffered = 0
    start = 0
    index = 0
    exhausted = False

    while True:
        while buffered < window_size and not exhausted:
            block = next(blocks, None)
            if block is None:
                exhausted = True
            elif len(block):
                pending.append(block)
                buffered += len(block)

        if buffered == 0:
            return

        buffer = np.concatenate(pending) if len(pending) > 1 else pending[0]
        yield Window(index=index, start=start, samples=buffer[:window_size].copy())

        drop = min(hop_length, len(buffer))
        rest = buffer[drop:]
        pending = [rest] if len(rest) else []
        buffered = len(rest)
        start += drop
        index += 1


def window_count(length: int, hop_length: int) -> int:
    """Number of windows ``chunked`` yields for a source of ``length`` samples."""
    return -(-length // hop_length)
