"""Use case: transcribe one audio file with a chosen backend and place the result."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from whisper_bridge.l1_entities.config import OutputFormat, TranscriptionConfig
from whisper_bridge.l1_entities.transcript import Transcript
from whisper_bridge.l2_use_cases.ports.execution_backend import ExecutionBackend

log = logging.getLogger('wb.backend')


def default_output_path(audio_path: Path, fmt: OutputFormat) -> Path:
    """Audio path with the format's extension, e.g. ``talk.mp3`` -> ``talk.srt``."""
    return audio_path.with_suffix(f'.{fmt.extension}')


@dataclass(frozen=True)
class TranscriptionOutcome:
    transcript: Transcript
    output_path: Path | None


class TranscribeFileUseCase:
    """Runs a backend once. Backend-agnostic: in-process and subprocess look the same here."""

    def __init__(self, backend: ExecutionBackend) -> None:
        self._backend = backend

    def execute(
        self,
        audio_path: Path,
        config: TranscriptionConfig,
        output_path: Path | None = None,
        *,
        write_output: bool = True,
    ) -> TranscriptionOutcome:
        target: Path | None = None
        if write_output:
            target = output_path or default_output_path(Path(audio_path), config.parsed_format)
        transcript = self._backend.transcribe(Path(audio_path), config, output_path=target)
        if target is not None:
            log.info('Transcript saved to %s', target)
        return TranscriptionOutcome(transcript=transcript, output_path=target)
