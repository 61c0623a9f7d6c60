"""Peak picking on correlation sequences.

Candidates are the local maxima found by ``scipy.signal.find_peaks`` together
with their topographic prominence.  The minimum distance between peaks is
then enforced greedily, keeping the most prominent peak of any disputed
neighbourhood.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np
from scipy.signal import find_peaks as _scipy_find_peaks


@dataclass(frozen=True)
class Peak:
    """A candidate alignment of the snippet.

    Attributes:
        start: First sample of the peak (inclusive)
        end: Last sample of the peak (exclusive), wider than one sample on plateaus
        prominence: Height drop to the nearest higher point on either side
        height: Correlation value at the peak
    """

    start: int
    end: int
    prominence: float
    height: float | None = None

    def shifted(self, offset: int) -> Peak:
        """Return the same peak moved by ``offset`` samples."""
        return replace(self, start=self.start + offset, end=self.end + offset)

    def start_seconds(self, sample_rate: int) -> float:
        return self.start / float(sample_rate)


def distance_in_samples(min_distance: float, sample_rate: int) -> int:
    """Convert a minimum distance in seconds to samples, in whole seconds."""
    return int(min_distance) * int(sample_rate)


def _select_by_distance(positions: np.ndarray, priority: np.ndarray, distance: int) -> np.ndarray:
    """Boolean mask keeping the highest-priority peaks at least ``distance`` apart."""
    keep = np.ones(len(positions), dtype=bool)
    # stable sort: on equal priority the earlier peak wins
    for i in np.argsort(-priority, kind="stable"):
        if not keep[i]:
            continue
        j = i - 1
        while j >= 0 and positions[i] - positions[j] < distance:
            keep[j] = False
            j -= 1
        j = i + 1
        while j < len(positions) and positions[j] - positions[i] < distance:
            keep[j] = False
            j += 1
    return keep


def find_peaks(
    correlation: np.ndarray,
    sample_rate: int,
    min_distance: float = 0.0,
    min_prominence: float = 0.0,
) -> list[Peak]:
    """Find the local maxima of ``correlation``.

    Args:
        correlation: Correlation sequence of one window
        sample_rate: Samples per second, used to convert ``min_distance``
        min_distance: Minimum spacing between two peaks in seconds
        min_prominence: Peaks less prominent than this are discarded

    Returns:
        Peaks in window-local sample coordinates, ordered by position
    """
    y = np.asarray(correlation, dtype=np.float64)
    if y.ndim != 1 or len(y) < 3:
        return []

    positions, props = _scipy_find_peaks(y, prominence=min_prominence, plateau_size=1)
    if len(positions) == 0:
        return []

    prominences = props["prominences"]
    distance = distance_in_samples(min_distance, sample_rate)
    if distance > 1:
        keep = _select_by_distance(positions, prominences, distance)
    else:
        keep = np.ones(len(positions), dtype=bool)

    return [
        Peak(
            start=int(props["left_edges"][i]),
            end=int(props["right_edges"][i]) + 1,
            prominence=float(prominences[i]),
            height=float(y[positions[i]]),
        )
        for i in np.flatnonzero(keep)
    ]
