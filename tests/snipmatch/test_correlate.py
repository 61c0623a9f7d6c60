"""Tests for snipmatch.correlate."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from snipmatch.correlate import CorrelationError, Correlator, Mode, correlate

# Both strategies go through different FFT paths
TOLERANCE = 1.2e-5


class TestStrategies:
    """Conjugation and reversal must agree."""

    @pytest.mark.parametrize("scale", [False, True])
    def test_ramp_against_short_snippet(self, scale: bool) -> None:
        """Ramp -10..9 against [1, 2, 3]."""
        data = np.arange(-10, 10, dtype=np.float64)
        snippet = [1.0, 2.0, 3.0]

        conj = correlate(data, snippet, Mode.VALID, scale=scale, use_conjugation=True)
        rev = correlate(data, snippet, Mode.VALID, scale=scale, use_conjugation=False)

        assert len(conj) == 18
        np.testing.assert_allclose(conj, rev, atol=TOLERANCE)

    @pytest.mark.parametrize("scale", [False, True])
    def test_random_data(self, rng: np.random.Generator, scale: bool) -> None:
        """Random window of 1000 samples against a random snippet of 37."""
        window = rng.standard_normal(1000)
        snippet = rng.standard_normal(37)

        conj = correlate(window, snippet, Mode.VALID, scale=scale, use_conjugation=True)
        rev = correlate(window, snippet, Mode.VALID, scale=scale, use_conjugation=False)

        np.testing.assert_allclose(conj, rev, atol=TOLERANCE)

    def test_full_mode_agrees(self, rng: np.random.Generator) -> None:
        window = rng.standard_normal(200)
        snippet = rng.standard_normal(20)

        conj = correlate(window, snippet, Mode.FULL, use_conjugation=True)
        rev = correlate(window, snippet, Mode.FULL, use_conjugation=False)

        np.testing.assert_allclose(conj, rev, atol=TOLERANCE)


class TestCorrelator:
    """Values and shapes of Correlator.correlate()."""

    def test_ramp_values(self) -> None:
        """Valid correlation of the ramp is 6j - 52."""
        data = np.arange(-10, 10, dtype=np.float64)

        out = Correlator([1.0, 2.0, 3.0]).correlate(data)

        np.testing.assert_allclose(out, 6 * np.arange(18) - 52, atol=1e-9)

    @pytest.mark.parametrize("mode", [Mode.FULL, Mode.SAME, Mode.VALID])
    def test_matches_numpy(self, rng: np.random.Generator, mode: Mode) -> None:
        """Odd snippet length so that 'same' is centred identically."""
        window = rng.standard_normal(64)
        snippet = rng.standard_normal(9)

        out = Correlator(snippet).correlate(window, mode)

        np.testing.assert_allclose(out, np.correlate(window, snippet, mode.value), atol=1e-9)

    def test_exact_match_unscaled(self) -> None:
        """An exact copy scores the snippet's auto-correlation."""
        out = Correlator([1.0, 2.0, 3.0]).correlate([0, 0, 1, 2, 3, 0, 0])

        assert len(out) == 5
        assert int(np.argmax(out)) == 2
        assert out[2] == pytest.approx(14.0)

    def test_exact_match_scaled(self, rng: np.random.Generator) -> None:
        """Scaled, an exact copy scores 1.0 and nothing scores higher."""
        snippet = rng.standard_normal(50)
        window = np.zeros(400)
        window[120:170] = snippet

        out = Correlator(snippet).correlate(window, scale=True)

        assert int(np.argmax(out)) == 120
        assert out[120] == pytest.approx(1.0, abs=1e-9)

    def test_output_lengths(self) -> None:
        correlator = Correlator(np.ones(4))
        window = np.ones(10)

        assert len(correlator.correlate(window, Mode.FULL)) == 13
        assert len(correlator.correlate(window, Mode.SAME)) == 10
        assert len(correlator.correlate(window, Mode.VALID)) == 7

    def test_valid_window_shorter_than_snippet_is_empty(self) -> None:
        correlator = Correlator([1.0, 2.0, 3.0])

        assert len(correlator.correlate([1.0, 2.0], Mode.VALID)) == 0
        assert len(correlator.correlate([1.0, 2.0], Mode.FULL)) == 4

    def test_auto_correlation(self) -> None:
        assert Correlator([1.0, 2.0, 3.0]).auto_correlation == pytest.approx(14.0)

    def test_snippet_is_read_only(self) -> None:
        source = np.array([1.0, 2.0, 3.0])
        correlator = Correlator(source)
        source[0] = 100.0

        assert correlator.snippet[0] == 1.0
        with pytest.raises(ValueError):
            correlator.snippet[0] = 5.0

    def test_spectrum_cached_per_length(self, rng: np.random.Generator) -> None:
        correlator = Correlator(rng.standard_normal(8))

        correlator.correlate(rng.standard_normal(32))
        correlator.correlate(rng.standard_normal(32))
        assert len(correlator._spectra) == 1

        correlator.correlate(rng.standard_normal(20))
        assert len(correlator._spectra) == 2

    def test_shared_between_threads(self, rng: np.random.Generator) -> None:
        """Concurrent use gives the same results as sequential use."""
        correlator = Correlator(rng.standard_normal(16))
        windows = [rng.standard_normal(128) for _ in range(16)]

        expected = [correlator.correlate(w) for w in windows]
        with ThreadPoolExecutor(max_workers=4) as executor:
            results = list(executor.map(correlator.correlate, windows))

        for got, want in zip(results, expected):
            np.testing.assert_allclose(got, want)


class TestErrors:
    """Invalid input raises CorrelationError."""

    def test_empty_snippet(self) -> None:
        with pytest.raises(CorrelationError, match="empty"):
            Correlator([])

    def test_silent_snippet(self) -> None:
        with pytest.raises(CorrelationError, match="silent"):
            Correlator([0.0, 0.0, 0.0])

    def test_non_finite_snippet(self) -> None:
        with pytest.raises(CorrelationError, match="non-finite"):
            Correlator([1.0, np.nan, 2.0])

    def test_two_dimensional_window(self) -> None:
        with pytest.raises(CorrelationError, match="one-dimensional"):
            Correlator([1.0, 2.0]).correlate(np.ones((4, 2)))

    def test_empty_window(self) -> None:
        with pytest.raises(CorrelationError, match="empty"):
            Correlator([1.0, 2.0]).correlate([])

    def test_infinite_window(self) -> None:
        with pytest.raises(CorrelationError):
            Correlator([1.0, 2.0]).correlate([1.0, np.inf, 0.0])

    def test_is_a_value_error(self) -> None:
        assert issubclass(CorrelationError, ValueError)
