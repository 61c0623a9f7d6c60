"""Tests for snipmatch.peaks."""

import numpy as np
import pytest

from snipmatch.correlate import Correlator
from snipmatch.peaks import Peak, distance_in_samples, find_peaks

# peaks at 1, 3 and 5 with prominences 0.2, 1.0 and 0.3
THREE_PEAKS = np.array([0.0, 0.7, 0.5, 1.0, 0.5, 0.8, 0.0])


class TestFindPeaks:
    """Test find_peaks()."""

    def test_three_peaks(self) -> None:
        peaks = find_peaks(THREE_PEAKS, sample_rate=1)

        assert [p.start for p in peaks] == [1, 3, 5]
        assert [p.end for p in peaks] == [2, 4, 6]
        assert [p.prominence for p in peaks] == pytest.approx([0.2, 1.0, 0.3])
        assert [p.height for p in peaks] == pytest.approx([0.7, 1.0, 0.8])

    def test_min_prominence(self) -> None:
        peaks = find_peaks(THREE_PEAKS, sample_rate=1, min_prominence=0.25)

        assert [p.start for p in peaks] == [3, 5]

    def test_distance_keeps_most_prominent(self) -> None:
        peaks = find_peaks(THREE_PEAKS, sample_rate=1, min_distance=3)

        assert [p.start for p in peaks] == [3]

    def test_distance_is_exclusive(self) -> None:
        """Peaks exactly min_distance apart are both kept."""
        peaks = find_peaks(THREE_PEAKS, sample_rate=1, min_distance=2)

        assert [p.start for p in peaks] == [1, 3, 5]

    def test_distance_in_seconds(self) -> None:
        """At 100 Hz, 2 s are 200 samples."""
        y = np.zeros(1000)
        y[100], y[250], y[600] = 0.5, 1.0, 0.8

        peaks = find_peaks(y, sample_rate=100, min_distance=2.0)

        assert [p.start for p in peaks] == [250, 600]

    def test_plateau(self) -> None:
        peaks = find_peaks(np.array([0.0, 1.0, 1.0, 1.0, 0.0]), sample_rate=1)

        assert len(peaks) == 1
        assert (peaks[0].start, peaks[0].end) == (1, 4)
        assert peaks[0].prominence == pytest.approx(1.0)

    def test_exact_match_prominence(self) -> None:
        """A zero-padded copy of [1, 2, 3] gives one peak as prominent as its auto-correlation."""
        correlator = Correlator([1.0, 2.0, 3.0])
        window = np.concatenate([np.zeros(10), [1.0, 2.0, 3.0], np.zeros(10)])

        unscaled = find_peaks(correlator.correlate(window), sample_rate=1, min_prominence=0.1)
        scaled = find_peaks(correlator.correlate(window, scale=True), sample_rate=1, min_prominence=0.1)

        assert [p.start for p in unscaled] == [10]
        assert unscaled[0].prominence == pytest.approx(14.0, abs=1e-6)
        assert [p.start for p in scaled] == [10]
        assert scaled[0].prominence == pytest.approx(1.0, abs=1e-6)

    def test_retained_peaks_respect_distance(self, rng: np.random.Generator) -> None:
        peaks = find_peaks(rng.standard_normal(2000), sample_rate=10, min_distance=3)

        starts = np.array([p.start for p in peaks])
        assert len(starts) > 1
        assert np.all(np.diff(starts) >= 30)

    def test_too_short(self) -> None:
        assert find_peaks(np.array([]), sample_rate=1) == []
        assert find_peaks(np.array([1.0, 0.0]), sample_rate=1) == []

    def test_no_peaks(self) -> None:
        assert find_peaks(np.arange(10.0), sample_rate=1) == []

    def test_boundary_maximum_is_not_a_peak(self) -> None:
        assert find_peaks(np.array([5.0, 1.0, 0.0]), sample_rate=1) == []


class TestPeak:
    """Test the Peak value type."""

    def test_shifted(self) -> None:
        peak = Peak(start=3, end=5, prominence=0.4, height=0.9)

        moved = peak.shifted(100)

        assert (moved.start, moved.end) == (103, 105)
        assert moved.prominence == 0.4
        assert peak.start == 3

    def test_start_seconds(self) -> None:
        assert Peak(start=441000, end=441001, prominence=1.0).start_seconds(44100) == 10.0


class TestDistanceInSamples:
    """Fractional seconds are truncated."""

    def test_whole_seconds(self) -> None:
        assert distance_in_samples(480, 44100) == 480 * 44100

    def test_fraction_truncated(self) -> None:
        assert distance_in_samples(2.9, 100) == 200
