"""Port: whisper model resolution."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class ModelResolver(Protocol):
    """Abstract model resolver: maps model name or path to a verified local file."""

    def resolve(self, name_or_path: str) -> Path:
        """Resolve to an existing model file. Raises ModelNotFoundError / DownloadError."""
        ...
