"""Gateway: audio file loader: decodes any audio format via ffmpeg subprocess."""

from __future__ import annotations

import logging
import shutil
import subprocess  # noqa: S404 -- intentional: shells out to ffmpeg with a fixed arg list, not shell=True
from pathlib import Path

import numpy as np

from whisper_bridge.l1_entities.audio_constants import CHANNELS, SAMPLE_RATE
from whisper_bridge.l1_entities.errors import InitializationError, UnsupportedAudioFormatError
from whisper_bridge.l2_use_cases.utils import error_mapper

log = logging.getLogger('wb.audio')

_FFMPEG_TIMEOUT = 300  # seconds


def load_audio_file(path: Path) -> np.ndarray:
    """Load *path* using ffmpeg, returning float32 mono PCM at 16 kHz.

    Supports any format ffmpeg can decode: WAV, FLAC, MP3, M4A, OGG, MP4, etc.

    Raises:
        AudioNotFoundError: audio file does not exist.
        InitializationError: ffmpeg is missing, could not be launched, or timed out.
        UnsupportedAudioFormatError: ffmpeg could not decode the file, or it
                                     contains no audio.
    """
    path = error_mapper.require_audio_file(path)

    if shutil.which('ffmpeg') is None:
        raise InitializationError(
            'ffmpeg is required but not found on PATH.\n  macOS:  brew install ffmpeg\n  Debian: apt install ffmpeg'
        )

    cmd = [
        'ffmpeg',
        '-i',
        str(path),
        '-ar',
        str(SAMPLE_RATE),
        '-ac',
        str(CHANNELS),
        '-f',
        'f32le',
        '-v',
        'quiet',
        'pipe:1',
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, timeout=_FFMPEG_TIMEOUT)  # noqa: S603
    except subprocess.TimeoutExpired as exc:
        raise InitializationError(f'ffmpeg timed out after {_FFMPEG_TIMEOUT}s processing: {path}') from exc
    except OSError as exc:
        raise InitializationError(f'Failed to launch ffmpeg: {exc}') from exc

    if result.returncode != 0:
        stderr = result.stderr.decode('utf-8', errors='replace').strip()
        raise UnsupportedAudioFormatError(f'ffmpeg exited with code {result.returncode} for: {path}\n{stderr}'.rstrip())

    if not result.stdout:
        raise UnsupportedAudioFormatError(f'ffmpeg produced no audio output for: {path}')

    audio = np.frombuffer(result.stdout, dtype=np.float32)
    if len(audio) == 0:
        raise UnsupportedAudioFormatError(f'audio file appears to be empty: {path}')

    log.debug('Decoded %s: %d samples', path, len(audio))
    return audio


class FfmpegAudioSource:
    """AudioSource implementation backed by :func:`load_audio_file`."""

    def load(self, path: Path) -> np.ndarray:
        return load_audio_file(Path(path))
