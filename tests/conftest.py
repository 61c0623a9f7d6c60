"""Pytest configuration and fixtures."""

import numpy as np
import pytest


@pytest.fixture
def sample_rate() -> int:
    """Low sample rate so that seconds stay readable as sample counts."""
    return 100


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def snippet(rng: np.random.Generator) -> np.ndarray:
    """Half a second of white noise at 100 Hz."""
    return rng.standard_normal(50)


@pytest.fixture
def snippet_offsets() -> list[int]:
    """Sample offsets of the snippet inside ``recording``."""
    return [200, 1700, 2600]


@pytest.fixture
def recording(rng: np.random.Generator, snippet: np.ndarray, snippet_offsets: list[int]) -> np.ndarray:
    """30 s of quiet noise with the snippet pasted in at 2 s, 17 s and 26 s."""
    samples = rng.standard_normal(3000) * 0.05
    for offset in snippet_offsets:
        samples[offset : offset + len(snippet)] = snippet
    return samples
