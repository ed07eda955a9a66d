"""Port: the whisper.cpp C entry points, as seen from Python."""

from __future__ import annotations

from typing import Any, Protocol

import numpy as np

GREEDY = 0
BEAM_SEARCH = 1


class WhisperLibrary(Protocol):
    """Thin mirror of whisper.h. Contexts and params are opaque to callers.

    Implementations must not add behavior beyond forwarding the call.
    """

    def init_from_file(self, path: bytes) -> Any:
        """whisper_init_from_file. Returns an opaque context, or None on failure."""
        ...

    def free(self, ctx: Any) -> None:
        """whisper_free."""
        ...

    def full_default_params(self, strategy: int) -> Any:
        """whisper_full_default_params for the given sampling strategy."""
        ...

    def full(self, ctx: Any, params: Any, samples: np.ndarray, n_samples: int) -> int:
        """whisper_full. Returns the native status code (0 on success)."""
        ...

    def full_n_segments(self, ctx: Any) -> int: ...

    def full_get_segment_t0(self, ctx: Any, i: int) -> int:
        """Segment start in centiseconds."""
        ...

    def full_get_segment_t1(self, ctx: Any, i: int) -> int:
        """Segment end in centiseconds."""
        ...

    def full_get_segment_text(self, ctx: Any, i: int) -> bytes | str: ...
