"""Dependency container: composition root for wiring all layers together."""

from __future__ import annotations

import enum
from collections.abc import Callable, Sequence
from pathlib import Path

from whisper_bridge.l1_entities.config import AppConfig
from whisper_bridge.l2_use_cases.ports.execution_backend import ExecutionBackend
from whisper_bridge.l2_use_cases.ports.model_resolver import ModelResolver
from whisper_bridge.l2_use_cases.transcribe_file_use_case import TranscribeFileUseCase
from whisper_bridge.l3_interface_adapters.gateways.hf_model_resolver import HfModelResolver


class BackendKind(enum.Enum):
    IN_PROCESS = 'in_process'
    SUBPROCESS = 'subprocess'


class DependencyContainer:
    """Creates and wires concrete instances. Easy to override for testing."""

    def __init__(
        self,
        config: AppConfig,
        on_download_progress: Callable[[int], None] | None = None,
    ) -> None:
        self.config = config
        self.model_resolver: ModelResolver = HfModelResolver(on_progress=on_download_progress)

    def resolve_model(self, name_or_path: str | None) -> Path:
        return self.model_resolver.resolve(name_or_path or self.config.transcription.model)

    def build_backend(
        self,
        kind: BackendKind,
        model_path: Path,
        *,
        binary: Path | None = None,
        passthrough: Sequence[str] = (),
        timeout: float | None = None,
    ) -> ExecutionBackend:
        if kind is BackendKind.IN_PROCESS:
            from whisper_bridge.l3_interface_adapters.gateways.in_process_backend import (  # noqa: PLC0415 -- deferred: native extension not loaded for execute-direct
                InProcessBackend,
            )

            return InProcessBackend(model_path)

        from whisper_bridge.l3_interface_adapters.gateways.subprocess_backend import (  # noqa: PLC0415 -- deferred: symmetric with the in-process branch
            SubprocessBackend,
        )

        engine = self.config.engine
        return SubprocessBackend(
            model_path,
            binary=binary or (Path(engine.binary) if engine.binary else None),
            passthrough=passthrough,
            timeout=timeout if timeout is not None else engine.timeout,
        )

    @staticmethod
    def use_case(backend: ExecutionBackend) -> TranscribeFileUseCase:
        return TranscribeFileUseCase(backend)
