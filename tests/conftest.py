"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from whisper_bridge.l1_entities.config import TranscriptionConfig

# --- Protocol-conforming Fakes ---


class FakeParams:
    """Stands in for whisper_full_params: plain attribute bag."""

    def __init__(self, strategy: int) -> None:
        self.strategy = strategy
        self.language = b'en\x00'
        self.translate = False
        self.print_progress = True
        self.print_realtime = True
        self.n_threads = 4
        self.initial_prompt = None


class FakeContext:
    def __init__(self, path: bytes) -> None:
        self.path = path


class FakeWhisperLibrary:
    """Fake native library. Records every entry point it is asked to run."""

    def __init__(
        self,
        segments: list[tuple[int, int, str | bytes]] | None = None,
        status: int = 0,
        init_fails: bool = False,
    ) -> None:
        self.segments = list(segments or [])
        self.status = status
        self.init_fails = init_fails
        self.init_calls: list[bytes] = []
        self.free_calls: list[FakeContext] = []
        self.default_params_calls: list[int] = []
        self.full_calls: list[tuple[FakeContext, FakeParams, np.ndarray, int]] = []
        self.on_full = None  # optional hook called with params during whisper_full

    @property
    def call_count(self) -> int:
        return len(self.init_calls) + len(self.default_params_calls) + len(self.full_calls)

    def init_from_file(self, path: bytes):
        self.init_calls.append(path)
        if self.init_fails:
            return None
        return FakeContext(path)

    def free(self, ctx) -> None:
        self.free_calls.append(ctx)

    def full_default_params(self, strategy: int) -> FakeParams:
        self.default_params_calls.append(strategy)
        return FakeParams(strategy)

    def full(self, ctx, params, samples, n_samples) -> int:
        self.full_calls.append((ctx, params, samples, n_samples))
        if self.on_full is not None:
            self.on_full(params)
        return self.status

    def full_n_segments(self, ctx) -> int:
        return len(self.segments)

    def full_get_segment_t0(self, ctx, i: int) -> int:
        return self.segments[i][0]

    def full_get_segment_t1(self, ctx, i: int) -> int:
        return self.segments[i][1]

    def full_get_segment_text(self, ctx, i: int):
        return self.segments[i][2]


class SpyAudioSource:
    """Fake AudioSource: returns a fixed sample buffer and records calls."""

    def __init__(self, samples: np.ndarray | None = None) -> None:
        self.samples = samples if samples is not None else np.zeros(16000, dtype=np.float32)
        self.load_calls: list[Path] = []

    def load(self, path: Path) -> np.ndarray:
        self.load_calls.append(path)
        return self.samples


class FakeCompletedProcess:
    def __init__(self, returncode: int = 0, stdout: bytes = b'', stderr: bytes = b'') -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class FakeRunner:
    """Stands in for subprocess.run. ``writes`` maps artifact suffix -> content written next to --output-file."""

    def __init__(
        self,
        returncode: int = 0,
        stdout: bytes = b'',
        stderr: bytes = b'',
        writes: dict[str, str] | None = None,
        raises: BaseException | None = None,
    ) -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.writes = writes or {}
        self.raises = raises
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []

    def __call__(self, argv, **kwargs):
        self.calls.append(list(argv))
        self.kwargs.append(kwargs)
        if self.raises is not None:
            raise self.raises
        base = Path(argv[argv.index('--output-file') + 1])
        for suffix, content in self.writes.items():
            base.with_name(f'{base.name}.{suffix}').write_text(content, encoding='utf-8')
        return FakeCompletedProcess(self.returncode, self.stdout, self.stderr)


# --- Standard Fixtures ---


@pytest.fixture
def model_file(tmp_path: Path) -> Path:
    p = tmp_path / 'ggml-base.bin'
    p.write_bytes(b'ggml')
    return p


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    p = tmp_path / 'talk.wav'
    p.write_bytes(b'RIFF')
    return p


@pytest.fixture
def fake_library() -> FakeWhisperLibrary:
    return FakeWhisperLibrary(segments=[(0, 150, ' Hello there.'), (150, 320, ' General Kenobi.')])


@pytest.fixture
def spy_audio() -> SpyAudioSource:
    return SpyAudioSource()


@pytest.fixture
def default_config() -> TranscriptionConfig:
    return TranscriptionConfig()


@pytest.fixture
def library_factory() -> type[FakeWhisperLibrary]:
    return FakeWhisperLibrary


@pytest.fixture
def runner_factory() -> type[FakeRunner]:
    return FakeRunner


@pytest.fixture
def audio_factory() -> type[SpyAudioSource]:
    return SpyAudioSource
