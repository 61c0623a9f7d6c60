"""Audacity label tracks built from detected offsets.

An Audacity label file has one label per line, ``start<TAB>end<TAB>name``,
with times in seconds.  The segments between two consecutive occurrences of
the snippet become one label each.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from .peaks import Peak

logger = logging.getLogger(__name__)

NUMBER_PLACEHOLDER = "#"


@dataclass(frozen=True)
class TimeLabel:
    """A named time range in seconds."""

    start: float
    end: float
    name: str | None = None

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"label starts after it ends ({self.start} > {self.end})")
        if self.name == "":
            object.__setattr__(self, "name", None)

    @classmethod
    def with_pattern(cls, start: float, end: float, number: int, pattern: str) -> TimeLabel:
        """Create a label named after ``pattern`` with ``#`` replaced by ``number``."""
        return cls(start, end, pattern.replace(NUMBER_PLACEHOLDER, str(number)))

    @classmethod
    def parse(cls, line: str) -> TimeLabel:
        """Parse one line of a label file.

        Raises:
            ValueError: If the line does not hold three tab-separated fields,
                the times are not numbers, or the label ends before it starts
        """
        parts = line.split("\t", 2)
        if len(parts) != 3:
            raise ValueError(f"missing element in label {line!r}")
        start, end, name = parts
        try:
            return cls(float(start), float(end), name)
        except ValueError as e:
            raise ValueError(f"invalid time in label {line!r}: {e}") from e

    @property
    def duration(self) -> float:
        return self.end - self.start

    def __str__(self) -> str:
        return f"{self.start:.4f}\t{self.end:.4f}\t{self.name or ''}"


def timelabels_from_peaks(
    peaks: Iterable[Peak],
    sample_rate: int,
    delay_start: float = 7.0,
    name_pattern: str = "Segment #",
) -> Iterator[TimeLabel]:
    """Turn consecutive offsets into labels.

    The label between the ``i``-th and ``i+1``-th offset is named after
    ``name_pattern`` with ``#`` replaced by ``i`` (starting at 1), and starts
    ``delay_start`` seconds after its offset so the snippet itself is skipped.

    Args:
        peaks: Offsets sorted by start
        sample_rate: Samples per second of the recording
        delay_start: Seconds to skip after each offset
        name_pattern: Label name, ``#`` is replaced by the running number

    Yields:
        One label per pair of consecutive offsets
    """
    starts = [peak.start_seconds(sample_rate) for peak in peaks]
    for number, (start, end) in enumerate(zip(starts, starts[1:]), start=1):
        yield TimeLabel.with_pattern(min(start + delay_start, end), end, number, name_pattern)


def write_labels(labels: Iterable[TimeLabel], path: str | Path, dry_run: bool = False) -> None:
    """Write ``labels`` to ``path`` as an Audacity label file.

    Args:
        labels: Labels to write
        path: Destination file
        dry_run: Only log what would be written

    Raises:
        OSError: If the file cannot be written
    """
    path = Path(path)
    labels = list(labels)
    content = "\n".join(str(label) for label in labels)
    if dry_run:
        logger.info('[Labels] Would write:\n"""\n%s\n""" > %s', content, path)
        return
    path.write_text(content, encoding="utf-8")
    logger.info("[Labels] Wrote %d labels to %s", len(labels), path)


def read_labels(path: str | Path) -> list[TimeLabel]:
    """Read an Audacity label file.

    Lines starting with ``#`` are ignored.  Lines that cannot be parsed,
    including labels that end before they start, are logged and skipped.

    Raises:
        OSError: If the file cannot be read
    """
    labels: list[TimeLabel] = []
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        try:
            labels.append(TimeLabel.parse(line))
        except ValueError as e:
            logger.warning("[Labels] Couldn't parse label %r: %s", line, e)
    return labels


def format_offset(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS``.

    Example:
        >>> format_offset(1003.9)
        '00:16:43'
    """
    total = int(seconds)
    return f"{total // 3600:02d}:{(total % 3600) // 60:02d}:{total % 60:02d}"
