"""Gateway: exclusive owner of one whisper.cpp context."""

from __future__ import annotations

import contextlib
import itertools
import logging
import threading
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from whisper_bridge.l1_entities.errors import InitializationError, ModelLoadError
from whisper_bridge.l2_use_cases.ports.whisper_library import WhisperLibrary
from whisper_bridge.l2_use_cases.utils import error_mapper

log = logging.getLogger('wb.native')

_generation_lock = threading.Lock()
_generations = itertools.count(1)
_last_generation = 0


def _next_generation() -> int:
    global _last_generation
    with _generation_lock:
        _last_generation = next(_generations)
        return _last_generation


def _default_library() -> WhisperLibrary:
    from whisper_bridge.l3_interface_adapters.gateways.pywhispercpp_library import (  # noqa: PLC0415 -- deferred: native extension loaded on first acquire
        PyWhisperCppLibrary,
    )

    return PyWhisperCppLibrary()


class ModelHandle:
    """Owns a whisper.cpp context from ``acquire`` until ``release``.

    The native engine is not documented as reentrant, so every call that
    touches the context must go through :meth:`session`, which serializes
    callers on a per-handle lock. Distinct handles do not share a lock.

    Handles cannot be copied or pickled; share the instance instead.
    """

    def __init__(self, ctx: Any, path: Path, library: WhisperLibrary, generation: int) -> None:
        self._ctx = ctx
        self._path = path
        self._library = library
        self._generation = generation
        self._lock = threading.Lock()

    @classmethod
    def acquire(cls, model_path: Path | str, library: WhisperLibrary | None = None) -> ModelHandle:
        path = error_mapper.require_model_file(model_path)
        encoded = error_mapper.encode_c_string(str(path), 'model path')
        lib = library if library is not None else _default_library()

        try:
            ctx = lib.init_from_file(encoded)
        except Exception as exc:
            raise ModelLoadError(path, str(exc) or type(exc).__name__) from exc
        ctx = error_mapper.from_init_result(ctx, path)

        generation = _next_generation()
        log.info('Loaded model %s (generation %d)', path, generation)
        return cls(ctx, path, lib, generation)

    @staticmethod
    def generation_count() -> int:
        """Total successful acquisitions in this process."""
        with _generation_lock:
            return _last_generation

    @property
    def path(self) -> Path:
        return self._path

    @property
    def library(self) -> WhisperLibrary:
        """The library that created this context; all calls on it must use the same one."""
        return self._library

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_released(self) -> bool:
        return self._ctx is None

    @contextlib.contextmanager
    def session(self) -> Iterator[Any]:
        """Hold the handle's lock and yield the raw context."""
        with self._lock:
            if self._ctx is None:
                raise InitializationError(f'Model handle for {self._path} has been released')
            yield self._ctx

    def release(self) -> None:
        """Free the native context. Safe to call any number of times."""
        with self._lock:
            ctx, self._ctx = self._ctx, None
            if ctx is None:
                return
            self._library.free(ctx)
        log.debug('Released model %s (generation %d)', self._path, self._generation)

    def __enter__(self) -> ModelHandle:
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    def __del__(self) -> None:
        # Interpreter teardown may already have cleared module globals.
        if getattr(self, '_ctx', None) is not None:
            with contextlib.suppress(Exception):
                self.release()

    def __copy__(self):
        raise TypeError('ModelHandle cannot be copied; share the instance instead')

    def __deepcopy__(self, memo):
        raise TypeError('ModelHandle cannot be copied; share the instance instead')

    def __reduce__(self):
        raise TypeError('ModelHandle cannot be pickled')

    def __repr__(self) -> str:
        state = 'released' if self._ctx is None else 'loaded'
        return f'ModelHandle({str(self._path)!r}, generation={self._generation}, {state})'
