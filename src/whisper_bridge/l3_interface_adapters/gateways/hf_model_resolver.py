"""Gateway: HuggingFace model resolver (implements ModelResolver port)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from huggingface_hub import hf_hub_download
from pywhispercpp.constants import MODELS_DIR

from whisper_bridge.l1_entities.errors import DownloadError, ModelNotFoundError

log = logging.getLogger('wb.resolver')

WHISPER_CPP_REPO = 'ggerganov/whisper.cpp'
WHISPER_CPP_MODELS = {
    'tiny': 'ggml-tiny.bin',
    'tiny.en': 'ggml-tiny.en.bin',
    'base': 'ggml-base.bin',
    'base.en': 'ggml-base.en.bin',
    'small': 'ggml-small.bin',
    'small.en': 'ggml-small.en.bin',
    'medium': 'ggml-medium.bin',
    'medium.en': 'ggml-medium.en.bin',
    'large-v1': 'ggml-large-v1.bin',
    'large-v2': 'ggml-large-v2.bin',
    'large-v3': 'ggml-large-v3.bin',
    'large-v3-turbo': 'ggml-large-v3-turbo.bin',
    'large-v3-turbo-q8_0': 'ggml-large-v3-turbo-q8_0.bin',
    'large-v3-turbo-q5_0': 'ggml-large-v3-turbo-q5_0.bin',
}
MODEL_ALIASES = {'large': 'large-v3'}


def models_dir() -> Path:
    return Path(MODELS_DIR) / 'whisper-cpp'


def available_models() -> list[str]:
    return list(WHISPER_CPP_MODELS)


def downloaded_models() -> list[Path]:
    cache_dir = models_dir()
    if not cache_dir.is_dir():
        return []
    return sorted(p for p in cache_dir.iterdir() if p.is_file() and p.suffix == '.bin')


def _make_progress_class(callback: Callable[[int], None]) -> type:
    """Create a tqdm-compatible class that reports download progress via *callback*."""

    class _ProgressReporter:
        def __init__(self, *args, **kwargs):
            self.total: int = kwargs.get('total', 0) or 0
            self.n: int = 0
            if self.total > 0:
                callback(0)

        def update(self, n: int = 1) -> None:
            self.n += n
            if self.total > 0:
                callback(min(int(self.n / self.total * 100), 100))

        def close(self) -> None:
            pass

        def set_description(self, *a, **kw) -> None:
            pass

        def refresh(self) -> None:
            pass

        def __enter__(self):
            return self

        def __exit__(self, *args):
            self.close()

    return _ProgressReporter


class HfModelResolver:
    """Resolves model names or paths to local files, downloading from HF if needed."""

    def __init__(self, on_progress: Callable[[int], None] | None = None) -> None:
        self._on_progress = on_progress

    def resolve(self, name_or_path: str) -> Path:
        candidate = Path(name_or_path).expanduser()
        if candidate.is_file():
            return candidate

        name = MODEL_ALIASES.get(name_or_path, name_or_path)
        if name not in WHISPER_CPP_MODELS:
            raise ModelNotFoundError(candidate)

        tqdm_class = _make_progress_class(self._on_progress) if self._on_progress else None
        return _download_whisper_cpp(name, tqdm_class=tqdm_class)


def _download_whisper_cpp(name: str, *, tqdm_class: type | None = None) -> Path:
    filename = WHISPER_CPP_MODELS[name]
    cache_dir = models_dir()
    local_path = cache_dir / filename
    if local_path.exists():
        log.debug('Model %s already cached at %s', name, local_path)
        return local_path

    log.info('Downloading %s from %s', filename, WHISPER_CPP_REPO)
    kwargs: dict = dict(repo_id=WHISPER_CPP_REPO, filename=filename, local_dir=cache_dir)
    if tqdm_class is not None:
        kwargs['tqdm_class'] = tqdm_class
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        downloaded = Path(hf_hub_download(**kwargs))
    except Exception as exc:
        raise DownloadError(name, str(exc) or type(exc).__name__) from exc

    if not downloaded.is_file():
        raise ModelNotFoundError(downloaded)
    return downloaded
