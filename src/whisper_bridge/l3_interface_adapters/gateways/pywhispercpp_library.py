"""Gateway: whisper.cpp entry points via pywhispercpp's low-level extension (implements WhisperLibrary port)."""

from __future__ import annotations

import contextlib
import logging
import os
from typing import Any

import _pywhispercpp as pw
import numpy as np

from whisper_bridge.l2_use_cases.ports.whisper_library import BEAM_SEARCH, GREEDY

log = logging.getLogger('wb.native')

# First four bytes of a ggml model file, little-endian 0x67676d6c.
GGML_MAGIC = b'lmgg'


@contextlib.contextmanager
def _suppress_c_stdout():
    """Redirect C-level stdout and stderr to /dev/null.

    whisper.cpp prints init/progress messages directly via C fprintf,
    bypassing Python's sys.stdout. This corrupts CLI output written to stdout.
    """
    devnull = os.open(os.devnull, os.O_WRONLY)
    old_stdout = os.dup(1)
    old_stderr = os.dup(2)
    try:
        os.dup2(devnull, 1)
        os.dup2(devnull, 2)
        yield
    finally:
        os.dup2(old_stdout, 1)
        os.dup2(old_stderr, 2)
        os.close(devnull)
        os.close(old_stdout)
        os.close(old_stderr)


def _has_ggml_magic(path: bytes) -> bool:
    try:
        with open(path, 'rb') as f:
            return f.read(4) == GGML_MAGIC
    except OSError:
        return False


def _strategy(strategy: int) -> Any:
    if strategy == GREEDY:
        return pw.whisper_sampling_strategy.WHISPER_SAMPLING_GREEDY
    if strategy == BEAM_SEARCH:
        return pw.whisper_sampling_strategy.WHISPER_SAMPLING_BEAM_SEARCH
    raise ValueError(f'Unknown sampling strategy: {strategy}')


class PyWhisperCppLibrary:
    """Forwards each call to ``_pywhispercpp``. Holds no state of its own."""

    def __init__(self, quiet: bool = True) -> None:
        self._quiet = quiet

    def _quieted(self):
        return _suppress_c_stdout() if self._quiet else contextlib.nullcontext()

    def init_from_file(self, path: bytes) -> Any:
        """Return a context, or None when the file is not a loadable ggml model.

        The binding wraps a failed init in a non-None object, so a file that
        does not start with the ggml magic is refused before any native call.
        """
        path = path.rstrip(b'\x00')
        if not _has_ggml_magic(path):
            log.debug('Not a ggml model file: %r', path)
            return None
        log.debug('whisper_init_from_file_with_params(%r)', path)
        with self._quieted():
            return pw.whisper_init_from_file_with_params(path.decode('utf-8'), pw.whisper_context_default_params())

    def free(self, ctx: Any) -> None:
        with self._quieted():
            pw.whisper_free(ctx)

    def full_default_params(self, strategy: int) -> Any:
        return pw.whisper_full_default_params(_strategy(strategy))

    def full(self, ctx: Any, params: Any, samples: np.ndarray, n_samples: int) -> int:
        with self._quieted():
            return int(pw.whisper_full(ctx, params, samples, n_samples))

    def full_n_segments(self, ctx: Any) -> int:
        return int(pw.whisper_full_n_segments(ctx))

    def full_get_segment_t0(self, ctx: Any, i: int) -> int:
        return int(pw.whisper_full_get_segment_t0(ctx, i))

    def full_get_segment_t1(self, ctx: Any, i: int) -> int:
        return int(pw.whisper_full_get_segment_t1(ctx, i))

    def full_get_segment_text(self, ctx: Any, i: int) -> bytes | str:
        return pw.whisper_full_get_segment_text(ctx, i)
