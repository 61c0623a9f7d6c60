"""FFT based cross-correlation of audio windows against a fixed snippet.

The snippet is held by a ``Correlator`` for the whole run and shared by all
worker threads.  Its spectra are cached per transform length, so windows of
the nominal size only transform the snippet once.

Two numerically equivalent strategies are available:

- **conjugation** (default): transform both sequences and multiply the
  window spectrum by the complex conjugate of the snippet spectrum.
- **reversal**: time-reverse the snippet and multiply the spectra directly,
  i.e. a plain FFT convolution.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)


class CorrelationError(ValueError):
    """Raised when a window cannot be transformed."""


class Mode(Enum):
    """Output length convention of a correlation."""

    FULL = "full"  # len(window) + len(snippet) - 1
    SAME = "same"  # len(window)
    VALID = "valid"  # len(window) - len(snippet) + 1, snippet fully inside


def _as_samples(data: np.ndarray | list[float], what: str) -> np.ndarray:
    samples = np.asarray(data, dtype=np.float64)
    if samples.ndim != 1:
        raise CorrelationError(f"{what} must be one-dimensional, got shape {samples.shape}")
    if samples.size == 0:
        raise CorrelationError(f"{what} is empty")
    if not np.all(np.isfinite(samples)):
        raise CorrelationError(f"{what} contains non-finite values")
    return samples


def _centered(arr: np.ndarray, length: int) -> np.ndarray:
    """Return a slice of ``length`` elements from the middle of ``arr``."""
    start = (len(arr) - length) // 2
    return arr[start : start + length]


class Correlator:
    """Correlate windows of the main stream with one snippet.

    Args:
        snippet: Snippet samples, kept as an immutable float64 array
        use_conjugation: Select the conjugation strategy (``True``) or the
            reversal strategy (``False``)

    Raises:
        CorrelationError: If the snippet is empty, not finite, or silent
    """

    def __init__(self, snippet: np.ndarray | list[float], use_conjugation: bool = True):
        samples = _as_samples(snippet, "snippet").copy()
        samples.setflags(write=False)
        self._snippet = samples
        self.use_conjugation = use_conjugation

        self._spectra: dict[tuple[int, bool], np.ndarray] = {}
        self._lock = threading.Lock()

        # zero-lag auto-correlation, the maximum any window can reach
        self.auto_correlation = float(np.dot(samples, samples))
        if self.auto_correlation <= 0.0:
            raise CorrelationError("snippet is silent, its auto-correlation is zero")

    @property
    def snippet(self) -> np.ndarray:
        return self._snippet

    def __len__(self) -> int:
        return len(self._snippet)

    def _snippet_spectrum(self, n_fft: int) -> np.ndarray:
        key = (n_fft, self.use_conjugation)
        spectrum = self._spectra.get(key)
        if spectrum is None:
            with self._lock:
                spectrum = self._spectra.get(key)
                if spectrum is None:
                    if self.use_conjugation:
                        spectrum = np.conj(np.fft.rfft(self._snippet, n=n_fft))
                    else:
                        spectrum = np.fft.rfft(self._snippet[::-1], n=n_fft)
                    spectrum.setflags(write=False)
                    self._spectra[key] = spectrum
                    logger.debug("[Correlator] Cached snippet spectrum for n_fft=%d", n_fft)
        return spectrum

    def correlate(
        self,
        window: np.ndarray | list[float],
        mode: Mode = Mode.VALID,
        scale: bool = False,
    ) -> np.ndarray:
        """Cross-correlate ``window`` with the snippet.

        Element ``k`` of the ``full`` result is the dot product of the snippet
        with the window shifted by ``k - (len(snippet) - 1)`` samples.

        Args:
            window: Window samples
            mode: Output length convention
            scale: Divide by the snippet's auto-correlation, so that an exact
                copy of the snippet scores 1.0

        Returns:
            Correlation sequence as a float64 array

        Raises:
            CorrelationError: If the window is empty or contains non-finite values
        """
        within = _as_samples(window, "window")
        n_within = len(within)
        n_snippet = len(self._snippet)
        n_fft = n_within + n_snippet - 1

        if self.use_conjugation:
            # window goes behind the zeros, so lag 0 lands on index len(snippet) - 1
            padded = np.concatenate([np.zeros(n_snippet - 1), within])
            window_spectrum = np.fft.rfft(padded, n=n_fft)
        else:
            window_spectrum = np.fft.rfft(within, n=n_fft)

        # numpy's inverse transform already divides by n_fft
        out = np.fft.irfft(window_spectrum * self._snippet_spectrum(n_fft), n=n_fft)

        if scale:
            out /= self.auto_correlation

        if mode is Mode.FULL:
            return out
        if mode is Mode.SAME:
            return _centered(out, n_within)
        if n_within < n_snippet:
            return out[:0]
        return _centered(out, n_within - n_snippet + 1)


def correlate(
    window: np.ndarray | list[float],
    snippet: np.ndarray | list[float],
    mode: Mode = Mode.VALID,
    scale: bool = False,
    use_conjugation: bool = True,
) -> np.ndarray:
    """One-shot correlation of ``window`` against ``snippet``."""
    return Correlator(snippet, use_conjugation=use_conjugation).correlate(window, mode, scale)
