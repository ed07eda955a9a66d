"""Port: audio decoding into engine-ready samples."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import numpy as np


class AudioSource(Protocol):
    """Abstract audio loader."""

    def load(self, path: Path) -> np.ndarray:
        """Return float32 mono samples at SAMPLE_RATE. Raises AudioNotFoundError on missing file."""
        ...
