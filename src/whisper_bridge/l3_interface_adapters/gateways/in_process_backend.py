"""Gateway: run whisper.cpp inside this process through the native entry points."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import numpy as np
from pydantic import ValidationError

from whisper_bridge.l1_entities.config import TranscriptionConfig
from whisper_bridge.l1_entities.errors import EngineProtocolError, UnsupportedAudioFormatError
from whisper_bridge.l1_entities.invocation_state import InvocationState
from whisper_bridge.l1_entities.transcript import Transcript, TranscriptSegment
from whisper_bridge.l2_use_cases.ports.audio_source import AudioSource
from whisper_bridge.l2_use_cases.ports.transcript_writer import TranscriptWriter
from whisper_bridge.l2_use_cases.ports.whisper_library import WhisperLibrary
from whisper_bridge.l2_use_cases.utils import error_mapper
from whisper_bridge.l3_interface_adapters.gateways.model_handle import ModelHandle
from whisper_bridge.l3_interface_adapters.gateways.native_params import ParameterBuilder

log = logging.getLogger('wb.backend')


class InProcessBackend:
    """Transcribes with a ModelHandle loaded in this process.

    Pass ``handle`` to share one loaded model between backends; a shared
    handle is never released by :meth:`close`. Otherwise the model at
    ``model_path`` is loaded on first use and released on close.
    """

    def __init__(
        self,
        model_path: Path | str | None = None,
        *,
        handle: ModelHandle | None = None,
        audio_source: AudioSource | None = None,
        library: WhisperLibrary | None = None,
        writer: TranscriptWriter | None = None,
    ) -> None:
        if handle is None and model_path is None:
            raise ValueError('InProcessBackend needs a model_path or a handle')
        self._model_path = Path(model_path) if model_path is not None else handle.path
        self._handle = handle
        self._owns_handle = handle is None
        self._library = library
        self._audio_source = audio_source
        self._writer = writer
        self._state = InvocationState.IDLE
        self._handle_lock = threading.Lock()

    @property
    def state(self) -> InvocationState:
        return self._state

    @property
    def handle(self) -> ModelHandle | None:
        return self._handle

    def transcribe(
        self,
        audio_path: Path,
        config: TranscriptionConfig,
        output_path: Path | None = None,
    ) -> Transcript:
        self._state = InvocationState.VALIDATING
        try:
            output_format = config.parsed_format
            error_mapper.require_model_file(self._model_path)
            audio_path = error_mapper.require_audio_file(audio_path)

            self._state = InvocationState.RUNNING
            samples = _as_engine_samples(self._get_audio_source().load(audio_path))
            handle = self._get_handle()
            library = handle.library
            builder = ParameterBuilder(library)

            log.info('Transcribing %s in-process (%d samples)', audio_path.name, len(samples))
            with builder.build(config, handle) as native:
                with handle.session() as ctx:
                    status = library.full(ctx, native.params, samples, len(samples))
                    error_mapper.from_native_status(status)
                    transcript = _read_segments(library, ctx)

            if output_path is not None:
                self._get_writer().write(Path(output_path), transcript, output_format)
        except Exception:
            self._state = InvocationState.FAILED
            raise

        self._state = InvocationState.COMPLETED
        log.info('Transcription complete: %d segments', len(transcript))
        return transcript

    def close(self) -> None:
        with self._handle_lock:
            if self._handle is not None and self._owns_handle:
                self._handle.release()
                self._handle = None

    def _get_handle(self) -> ModelHandle:
        with self._handle_lock:
            if self._handle is None or self._handle.is_released:
                self._handle = ModelHandle.acquire(self._model_path, library=self._library)
                self._owns_handle = True
            return self._handle

    def _get_audio_source(self) -> AudioSource:
        if self._audio_source is None:
            from whisper_bridge.l3_interface_adapters.gateways.audio_file_loader import (  # noqa: PLC0415 -- deferred: ffmpeg only needed for real runs
                FfmpegAudioSource,
            )

            self._audio_source = FfmpegAudioSource()
        return self._audio_source

    def _get_writer(self) -> TranscriptWriter:
        if self._writer is None:
            from whisper_bridge.l3_interface_adapters.gateways.file_persistence import (  # noqa: PLC0415 -- deferred: only when an output path is requested
                FileTranscriptWriter,
            )

            self._writer = FileTranscriptWriter()
        return self._writer


def _as_engine_samples(audio: Any) -> np.ndarray:
    """Accept only the normalized form: 1-D float32 samples."""
    if not isinstance(audio, np.ndarray):
        raise UnsupportedAudioFormatError(f'expected a numpy sample buffer, got {type(audio).__name__}')
    if audio.ndim != 1:
        raise UnsupportedAudioFormatError(f'expected mono samples, got array of shape {audio.shape}')
    if audio.dtype != np.float32:
        raise UnsupportedAudioFormatError(f'expected float32 samples, got {audio.dtype}')
    if audio.size == 0:
        raise UnsupportedAudioFormatError('audio contains no samples')
    return np.ascontiguousarray(audio)


def _read_segments(library: WhisperLibrary, ctx: Any) -> Transcript:
    segments: list[TranscriptSegment] = []
    for i in range(library.full_n_segments(ctx)):
        raw = library.full_get_segment_text(ctx, i)
        text = raw.decode('utf-8', errors='replace') if isinstance(raw, bytes) else str(raw)
        t0 = library.full_get_segment_t0(ctx, i)
        t1 = library.full_get_segment_t1(ctx, i)
        try:
            segments.append(TranscriptSegment(start=t0 / 100.0, end=t1 / 100.0, text=text.strip()))
        except ValidationError as exc:
            raise EngineProtocolError(f'Engine returned an invalid segment #{i} ({t0}..{t1})') from exc
    return Transcript(segments)
