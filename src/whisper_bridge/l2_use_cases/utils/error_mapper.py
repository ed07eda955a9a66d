"""Translate native status codes, process exits and OS failures into domain errors.

Nothing here calls the engine; callers hand over whatever the engine or the
OS gave them and get back either the value or a domain exception.
"""

from __future__ import annotations

import errno
from pathlib import Path
from typing import TypeVar

from whisper_bridge.l1_entities.errors import (
    AudioNotFoundError,
    InitializationError,
    ModelLoadError,
    ModelNotFoundError,
    TranscriptionError,
    WhisperIOError,
)

T = TypeVar('T')


def require_model_file(path: Path | str) -> Path:
    p = Path(path)
    if not p.is_file():
        raise ModelNotFoundError(p)
    return p


def require_audio_file(path: Path | str) -> Path:
    p = Path(path)
    if not p.is_file():
        raise AudioNotFoundError(p)
    return p


def encode_c_string(value: str, field: str) -> bytes:
    """UTF-8 encode *value* for a ``const char *`` field, NUL-terminated."""
    try:
        raw = value.encode('utf-8')
    except UnicodeEncodeError as exc:
        raise InitializationError(f'Invalid {field}: {exc.reason}') from exc
    if b'\x00' in raw:
        raise InitializationError(f'Invalid {field}: embedded NUL byte')
    return raw + b'\x00'


def from_init_result(ctx: T | None, path: Path | str) -> T:
    """A null context from the init entry point means the model could not be loaded."""
    if ctx is None:
        raise ModelLoadError(path, 'Failed to initialize model')
    return ctx


def from_native_status(status: int) -> None:
    if status != 0:
        raise TranscriptionError(f'whisper_full returned {status}')


def from_exit_status(returncode: int, stderr: bytes | str) -> None:
    if returncode == 0:
        return
    text = stderr.decode('utf-8', errors='replace') if isinstance(stderr, bytes) else stderr
    text = text.strip()
    if not text:
        text = f'exited with code {returncode}'
    raise TranscriptionError(f'whisper.cpp command failed: {text}')


def from_os_error(exc: OSError, path: Path | str) -> WhisperIOError:
    if exc.errno in (errno.ENOENT, errno.EACCES, errno.EPERM) and exc.strerror:
        message = exc.strerror
    else:
        message = str(exc)
    return WhisperIOError(path, message)
