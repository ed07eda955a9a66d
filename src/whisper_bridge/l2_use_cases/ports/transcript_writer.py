"""Port: persisting rendered transcripts."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from whisper_bridge.l1_entities.config import OutputFormat
from whisper_bridge.l1_entities.transcript import Transcript


class TranscriptWriter(Protocol):
    def write(self, path: Path, transcript: Transcript, fmt: OutputFormat) -> Path:
        """Render *transcript* as *fmt* and atomically place it at *path*."""
        ...
