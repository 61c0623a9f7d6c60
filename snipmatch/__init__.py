"""snipmatch - Find a short audio snippet in long recordings.

Every occurrence of the snippet (e.g. a jingle between two episodes) is
located by FFT cross-correlation of the recording against the snippet:

- The recording is streamed in overlapping windows
- Each window is correlated with the snippet on a thread pool
- Correlation peaks are merged and deduplicated across windows
- The stretches between two occurrences become Audacity labels
"""

__version__ = "0.1.0"

from .correlate import Correlator, Mode
from .labels import TimeLabel
from .matcher import Config, Matcher
from .peaks import Peak

__all__ = ["Config", "Correlator", "Matcher", "Mode", "Peak", "TimeLabel"]
