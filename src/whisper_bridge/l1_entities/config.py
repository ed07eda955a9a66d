"""Configuration Pydantic models: pure schema, no infrastructure defaults."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from whisper_bridge.l1_entities.errors import UnsupportedOutputFormatError

AUTO_LANGUAGE = 'auto'


class OutputFormat(enum.Enum):
    TEXT = 'txt'
    SRT = 'srt'
    VTT = 'vtt'
    JSON = 'json'

    @classmethod
    def parse(cls, value: OutputFormat | str) -> OutputFormat:
        """Resolve a user-facing format name. Raises UnsupportedOutputFormatError."""
        if isinstance(value, OutputFormat):
            return value
        key = str(value).strip().lower()
        if key == 'text':
            key = 'txt'
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedOutputFormatError(str(value)) from None

    @property
    def extension(self) -> str:
        return self.value


class TranscriptionConfig(BaseModel):
    """Immutable per-call transcription settings.

    ``output_format`` is kept as given; backends parse it before touching
    the engine so an unknown value fails there, not at construction.
    """

    model_config = ConfigDict(frozen=True)

    language: str = AUTO_LANGUAGE
    translate: bool = False
    output_format: str = OutputFormat.TEXT.value
    extra: Mapping[str, str] = Field(default_factory=lambda: MappingProxyType({}))

    @field_validator('language')
    @classmethod
    def _normalize_language(cls, value: str) -> str:
        value = value.strip()
        return value or AUTO_LANGUAGE

    @field_validator('extra', mode='before')
    @classmethod
    def _stringify_extra(cls, value: Mapping[str, object]) -> dict[str, str]:
        return {str(k): str(v) for k, v in dict(value).items()}

    @field_validator('extra')
    @classmethod
    def _freeze_extra(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer('extra')
    def _serialize_extra(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)

    @property
    def is_auto_language(self) -> bool:
        return self.language.lower() == AUTO_LANGUAGE

    @property
    def parsed_format(self) -> OutputFormat:
        """Parsed output format. Raises UnsupportedOutputFormatError."""
        return OutputFormat.parse(self.output_format)

    def param(self, key: str) -> str | None:
        return self.extra.get(key)

    # -- fluent builder: each call returns a new instance --

    def with_language(self, language: str) -> TranscriptionConfig:
        return self._replace(language=language)

    def with_translate(self, translate: bool = True) -> TranscriptionConfig:
        return self._replace(translate=translate)

    def with_output_format(self, output_format: OutputFormat | str) -> TranscriptionConfig:
        value = output_format.value if isinstance(output_format, OutputFormat) else output_format
        return self._replace(output_format=value)

    def with_param(self, key: str, value: object) -> TranscriptionConfig:
        extra = dict(self.extra)
        extra[key] = str(value)
        return self._replace(extra=extra)

    def _replace(self, **changes) -> TranscriptionConfig:
        data = {
            'language': self.language,
            'translate': self.translate,
            'output_format': self.output_format,
            'extra': dict(self.extra),
        }
        data.update(changes)
        return TranscriptionConfig.model_validate(data)


class TranscriptionDefaults(BaseModel):
    model: str
    language: str
    output_format: str
    n_threads: int | None = None


class EngineConfig(BaseModel):
    binary: str | None = None
    timeout: float | None = None


class OutputConfig(BaseModel):
    directory: str | None = None


class AppConfig(BaseModel):
    transcription: TranscriptionDefaults
    engine: EngineConfig = Field(default_factory=EngineConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    def base_transcription_config(self) -> TranscriptionConfig:
        cfg = TranscriptionConfig(
            language=self.transcription.language,
            output_format=self.transcription.output_format,
        )
        if self.transcription.n_threads is not None:
            cfg = cfg.with_param('n_threads', self.transcription.n_threads)
        return cfg
