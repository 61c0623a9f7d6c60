"""Decode audio files into mono sample blocks.

Decoding goes through ffmpeg via ``audioread.ffdec`` and is lazy: the main
recording is streamed block by block and never held in memory as a whole.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import audioread
import audioread.ffdec
import mutagen
import numpy as np

logger = logging.getLogger(__name__)

# 16 bit signed PCM
PCM_FACTOR = 1.0 / 32768.0


class AudioDecodeError(ValueError):
    """Raised when a file holds no decodable audio."""


def _to_mono(buf: bytes, channels: int) -> np.ndarray:
    samples = np.frombuffer(buf, dtype=np.int16).astype(np.float32) * PCM_FACTOR
    if channels > 1:
        samples = samples.reshape(-1, channels).mean(axis=1)
    return samples


def _open(path: Path) -> audioread.ffdec.FFmpegAudioFile:
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")
    try:
        return audioread.ffdec.FFmpegAudioFile(str(path))
    except audioread.DecodeError as e:
        raise AudioDecodeError(f"No valid audio data in {path}: {e}") from e


class AudioStream:
    """A decoded audio file, iterated once as mono float32 blocks.

    The ffmpeg process is closed when iteration ends or on ``close()``; use
    the stream as a context manager when it may be abandoned early.

    Attributes:
        path: Source file
        sample_rate: Samples per second
        channels: Channels of the source, mixed down to one
        duration: Duration reported by the decoder, in seconds
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._aro = _open(self.path)
        self.sample_rate: int = self._aro.samplerate
        self.channels: int = self._aro.channels
        self.duration: float = float(self._aro.duration)
        logger.debug(
            "[Reader] %s: %d Hz, %d channel(s), %.1fs",
            self.path.name,
            self.sample_rate,
            self.channels,
            self.duration,
        )

    def __iter__(self) -> Iterator[np.ndarray]:
        frame_bytes = 2 * self.channels
        carry = b""
        try:
            for buf in self._aro:
                buf = carry + buf
                usable = len(buf) - len(buf) % frame_bytes
                carry = buf[usable:]
                if usable:
                    yield _to_mono(buf[:usable], self.channels)
        except audioread.DecodeError as e:
            raise AudioDecodeError(f"Decoding {self.path} failed: {e}") from e
        finally:
            self.close()

    def close(self) -> None:
        self._aro.close()

    def __enter__(self) -> AudioStream:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def read_audio(path: str | Path) -> AudioStream:
    """Open ``path`` for streaming.

    Args:
        path: Audio file in any format ffmpeg understands

    Returns:
        AudioStream yielding mono float32 blocks

    Raises:
        FileNotFoundError: If the file does not exist
        AudioDecodeError: If ffmpeg cannot read the file
    """
    return AudioStream(path)


def read_snippet(path: str | Path) -> tuple[int, np.ndarray]:
    """Decode ``path`` completely.

    Returns:
        Tuple of (sample rate, samples)
    """
    with read_audio(path) as stream:
        parts = list(stream)
    if not parts:
        raise AudioDecodeError(f"No valid audio data in {path}")
    return stream.sample_rate, np.concatenate(parts)


def audio_duration(path: str | Path) -> float:
    """Duration of ``path`` in seconds.

    Reads the duration from the file's metadata with mutagen and falls back
    to the length reported by the decoder.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")

    try:
        audio = mutagen.File(path)
    except mutagen.MutagenError as e:
        logger.debug("[Reader] mutagen could not read %s: %s", path.name, e)
        audio = None
    length = getattr(getattr(audio, "info", None), "length", None)
    if length:
        return float(length)

    logger.debug("[Reader] No duration in metadata of %s, asking the decoder", path.name)
    with read_audio(path) as stream:
        return stream.duration
