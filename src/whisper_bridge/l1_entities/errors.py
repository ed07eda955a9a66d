"""Domain error types.

Every failure that crosses the native boundary or a process boundary is
converted into one of these before it leaves a backend.
"""

from __future__ import annotations

from pathlib import Path


class WhisperBridgeError(Exception):
    """Base class for all whisper-bridge errors."""


class ModelNotFoundError(WhisperBridgeError):
    """Raised when the model file does not exist."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f'Model file not found: {self.path}')


class ModelLoadError(WhisperBridgeError):
    """Raised when whisper.cpp refuses to initialize a context from the model file."""

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = Path(path)
        self.message = message
        super().__init__(f'Failed to load model from {self.path}: {message}')


class AudioNotFoundError(WhisperBridgeError):
    """Raised when the audio file does not exist."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f'Audio file not found: {self.path}')


class UnsupportedAudioFormatError(WhisperBridgeError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f'Unsupported audio format: {detail}')


class UnsupportedOutputFormatError(WhisperBridgeError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f'Unsupported output format: {value}')


class InitializationError(WhisperBridgeError):
    """Raised for malformed inputs detected before any engine call."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f'Failed to initialize whisper context: {message}')


class TranscriptionError(WhisperBridgeError):
    """Raised when the engine reports failure (native status or process exit)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f'Failed to transcribe audio: {message}')


class EngineProtocolError(WhisperBridgeError):
    """Raised when engine output is malformed or its segments are out of order."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class WhisperIOError(WhisperBridgeError):
    def __init__(self, path: Path | str, message: str) -> None:
        self.path = Path(path)
        self.message = message
        super().__init__(f'IO error: {self.path}: {message}')


class DownloadError(WhisperBridgeError):
    """Raised when a model cannot be fetched from the hub."""

    def __init__(self, model_name: str, message: str) -> None:
        self.model_name = model_name
        self.message = message
        super().__init__(f'Failed to download model: {model_name}: {message}')
