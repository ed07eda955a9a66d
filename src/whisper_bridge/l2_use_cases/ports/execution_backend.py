"""Port: one of the interchangeable ways of running whisper.cpp."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from whisper_bridge.l1_entities.config import TranscriptionConfig
from whisper_bridge.l1_entities.invocation_state import InvocationState
from whisper_bridge.l1_entities.transcript import Transcript


class ExecutionBackend(Protocol):
    """Abstract execution backend. Both variants return the same Transcript shape."""

    @property
    def state(self) -> InvocationState:
        """State of the most recent invocation."""
        ...

    def transcribe(
        self,
        audio_path: Path,
        config: TranscriptionConfig,
        output_path: Path | None = None,
    ) -> Transcript:
        """Run one transcription. Writes *output_path* only after a complete result."""
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...
