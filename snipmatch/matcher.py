"""Locate every occurrence of a snippet in a long recording.

Public API
----------
``Matcher.find_offsets(main_samples, main_duration, config)``
    Full pipeline for one recording: chunks the stream, correlates the
    windows on a thread pool, and returns the deduplicated peaks in
    main-stream sample coordinates.

``run_windows(windows, task, total, max_workers)``
    The bounded-concurrency coordinator on its own.

``dedupe(peaks, sample_rate, min_distance)``
    Cross-window overshadow filter.

Internal pipeline
-----------------
1. Cut the main stream into windows of ``chunk_size + overlap_length``
   samples, ``chunk_size`` apart, so a match straddling a boundary is fully
   inside the next window
2. Correlate each window with the snippet (``valid`` mode) and pick peaks
3. Shift the peaks by the window start
4. Sort globally and drop peaks overshadowed by a stronger neighbour
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

import numpy as np

from .chunker import Window, chunked
from .correlate import Correlator, Mode
from .peaks import Peak, find_peaks
from .progress import ProgressBar

logger = logging.getLogger(__name__)


class SampleRateMismatchError(ValueError):
    """Raised when the snippet and the main stream have different sample rates."""

    def __init__(self, snippet_rate: int, main_rate: int):
        super().__init__(
            f"Files have different sample rates ({snippet_rate}, {main_rate}), "
            "resampling is not supported"
        )
        self.snippet_rate = snippet_rate
        self.main_rate = main_rate


@dataclass(frozen=True)
class PeakConfig:
    """Peak selection thresholds.

    Attributes:
        distance: Minimum distance between two matches in seconds
        prominence: Minimum prominence of a match, in correlation units
    """

    distance: float = 8 * 60.0
    prominence: float = 0.13


@dataclass(frozen=True)
class Config:
    """Parameters of one matching run.

    ``overlap_length`` should be at least the snippet duration, otherwise
    occurrences spanning a window boundary are missed.
    """

    chunk_size: float = 60.0
    overlap_length: float = 0.0
    peak_config: PeakConfig = PeakConfig()
    scale: bool = True
    workers: int = 4
    fancy_bar: bool = False
    fail_fast: bool = False

    @classmethod
    def from_settings(cls, settings, snippet_duration: float) -> Config:
        """Build a run configuration from a ``MatcherConfig``.

        Args:
            settings: Matcher section of the application config
            snippet_duration: Duration of the snippet in seconds, used when
                no overlap is configured

        Returns:
            Config instance
        """
        overlap = settings.overlap_length
        if overlap is None:
            overlap = snippet_duration
        elif overlap < snippet_duration:
            logger.warning(
                "[Matcher] Overlap %.2fs is shorter than the snippet (%.2fs), "
                "matches on window boundaries can be missed",
                overlap,
                snippet_duration,
            )
        return cls(
            chunk_size=settings.chunk_size,
            overlap_length=overlap,
            peak_config=PeakConfig(
                distance=settings.distance,
                prominence=settings.prominence / 100.0,
            ),
            scale=settings.scale,
            workers=settings.workers,
            fancy_bar=settings.fancy_bar,
            fail_fast=settings.fail_fast,
        )

    def chunk_samples(self, sample_rate: int) -> int:
        return max(round(self.chunk_size * sample_rate), 1)

    def overlap_samples(self, sample_rate: int) -> int:
        return round(self.overlap_length * sample_rate)

    def expected_windows(self, main_duration: float, sample_rate: int) -> int:
        """Number of windows a recording of ``main_duration`` seconds yields.

        Counted in whole samples, with the same rounding as the hop the
        chunker uses.
        """
        return math.ceil(round(main_duration * sample_rate) / self.chunk_samples(sample_rate))


def run_windows(
    windows: Iterable[Window],
    task: Callable[[Window], list[Peak]],
    total: int,
    max_workers: int = 4,
    progress: ProgressBar | None = None,
    fail_fast: bool = False,
) -> list[Peak]:
    """Run ``task`` on every window using a bounded thread pool.

    At most ``max_workers`` windows are in flight, so memory stays bounded by
    ``max_workers`` windows no matter how long the recording is.  Results are
    collected in completion order; callers sort them.

    Args:
        windows: Lazy sequence of windows, produced on the calling thread
        task: Work for one window, returning its peaks in global coordinates
        total: Number of windows announced up front
        max_workers: Size of the thread pool
        progress: Optional progress bar. A window counts as started when it is
            handed to the pool and as finished when its task returns or fails
        fail_fast: Re-raise the first task failure instead of skipping the window

    Returns:
        Unordered list of all peaks

    Raises:
        RuntimeError: If ``windows`` yields more than ``total`` windows
    """

    def run(window: Window) -> list[Peak]:
        try:
            return task(window)
        finally:
            if progress is not None:
                progress.finish()

    peaks: list[Peak] = []
    failed = 0
    collected = 0

    def collect(future: Future, window: Window) -> None:
        nonlocal failed, collected
        collected += 1
        try:
            peaks.extend(future.result())
        except Exception as e:
            if fail_fast:
                raise
            failed += 1
            logger.warning(
                "[Matcher] Window %d (samples %d-%d) failed, skipping it: %s",
                window.index,
                window.start,
                window.end,
                e,
            )

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="snipmatch") as executor:
        in_flight: dict[Future, Window] = {}
        try:
            for window in windows:
                if window.index >= total:
                    raise RuntimeError(
                        f"too many windows: got window {window.index + 1}, expected {total}"
                    )
                while len(in_flight) >= max_workers:
                    done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                    for future in done:
                        collect(future, in_flight.pop(future))
                if progress is not None:
                    progress.start()
                in_flight[executor.submit(run, window)] = window

            while in_flight:
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    collect(future, in_flight.pop(future))
        except BaseException:
            for future in in_flight:
                future.cancel()
            raise

    if collected < total:
        logger.debug("[Matcher] Stream ended after %d of %d expected windows", collected, total)
    if failed:
        logger.warning("[Matcher] %d of %d windows failed and were skipped", failed, collected)
    return peaks


def is_overshadowed(
    element: Peak,
    other: Peak | None,
    sample_rate: int,
    max_distance: float,
) -> bool:
    """Whether ``other`` is closer than ``max_distance`` seconds and more prominent."""
    if other is None:
        return False
    gap = abs(element.start_seconds(sample_rate) - other.start_seconds(sample_rate))
    return gap < max_distance and other.prominence > element.prominence


def dedupe(peaks: list[Peak], sample_rate: int, min_distance: float) -> list[Peak]:
    """Drop peaks overshadowed by one of their immediate neighbours.

    Each peak is compared with its predecessor and successor in the input
    (not in the filtered output), so one pass over a sorted list suffices.
    Equal prominences never overshadow each other.

    Args:
        peaks: Peaks sorted by start position
        sample_rate: Samples per second
        min_distance: Distance in seconds below which a stronger neighbour wins

    Returns:
        Filtered peaks, still sorted
    """
    kept: list[Peak] = []
    for i, peak in enumerate(peaks):
        before = peaks[i - 1] if i > 0 else None
        after = peaks[i + 1] if i + 1 < len(peaks) else None
        if not (
            is_overshadowed(peak, before, sample_rate, min_distance)
            or is_overshadowed(peak, after, sample_rate, min_distance)
        ):
            kept.append(peak)
    return kept


class Matcher:
    """Search one snippet in any number of recordings.

    Args:
        snippet: Snippet samples (mono)
        sample_rate: Sample rate of the snippet
        correlator: Pre-built correlator, mainly for tests
    """

    def __init__(
        self,
        snippet: np.ndarray,
        sample_rate: int,
        correlator: Correlator | None = None,
    ):
        self.sample_rate = sample_rate
        self.correlator = correlator if correlator is not None else Correlator(snippet)

    @property
    def snippet_duration(self) -> float:
        return len(self.correlator) / float(self.sample_rate)

    def check_sample_rate(self, main_rate: int) -> None:
        if main_rate != self.sample_rate:
            raise SampleRateMismatchError(self.sample_rate, main_rate)

    def _window_peaks(self, window: Window, config: Config) -> list[Peak]:
        correlation = self.correlator.correlate(window.samples, Mode.VALID, scale=config.scale)
        return [
            peak.shifted(window.start)
            for peak in find_peaks(
                correlation,
                self.sample_rate,
                min_distance=config.peak_config.distance,
                min_prominence=config.peak_config.prominence,
            )
        ]

    def find_offsets(
        self,
        main_samples: Iterable | Iterator | np.ndarray,
        main_duration: float,
        config: Config,
        progress: ProgressBar | None = None,
    ) -> list[Peak]:
        """Find all occurrences of the snippet in a recording.

        Args:
            main_samples: Samples or sample blocks of the recording
            main_duration: Duration of the recording in seconds
            config: Run configuration
            progress: Progress bar to drive; by default one is created on stderr

        Returns:
            Peaks in main-stream sample coordinates, sorted by start
        """
        chunk = config.chunk_samples(self.sample_rate)
        overlap = config.overlap_samples(self.sample_rate)
        total = config.expected_windows(main_duration, self.sample_rate)
        if progress is None:
            progress = ProgressBar(total, fancy=config.fancy_bar)

        logger.info(
            "[Matcher] Correlating %d windows (%.0fs + %.2fs overlap) with %d workers",
            total,
            config.chunk_size,
            config.overlap_length,
            config.workers,
        )
        try:
            peaks = run_windows(
                chunked(main_samples, chunk + overlap, chunk),
                lambda window: self._window_peaks(window, config),
                total,
                max_workers=config.workers,
                progress=progress,
                fail_fast=config.fail_fast,
            )
        finally:
            progress.close()

        peaks.sort(key=lambda p: p.start)
        logger.debug("[Matcher] %d raw peaks before deduplication", len(peaks))
        result = dedupe(peaks, self.sample_rate, config.peak_config.distance)
        logger.info("[Matcher] Found %d offsets", len(result))
        return result
