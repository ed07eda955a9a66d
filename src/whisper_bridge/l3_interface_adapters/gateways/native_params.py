"""Gateway: TranscriptionConfig -> whisper_full_params, with the byte buffers behind it.

The native parameter struct stores ``const char *`` pointers for its string
fields. The buffers those pointers refer to live in :class:`NativeCallBuffers`
and are owned by the :class:`NativeParams` value returned from
:meth:`ParameterBuilder.build`. Keep that value alive (use it as a context
manager around the native call) until the call has returned.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from whisper_bridge.l1_entities.config import OutputFormat, TranscriptionConfig
from whisper_bridge.l1_entities.errors import InitializationError
from whisper_bridge.l2_use_cases.ports.whisper_library import GREEDY, WhisperLibrary
from whisper_bridge.l2_use_cases.utils import error_mapper
from whisper_bridge.l3_interface_adapters.gateways.model_handle import ModelHandle

log = logging.getLogger('wb.native')


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ('1', 'true', 'yes', 'on'):
        return True
    if value in ('0', 'false', 'no', 'off'):
        return False
    raise ValueError(f'not a boolean: {raw!r}')


# Engine fields that may be set through TranscriptionConfig.extra.
_STRING_FIELDS = frozenset({'initial_prompt'})
_EXTRA_FIELDS: dict[str, Callable[[str], Any]] = {
    'n_threads': int,
    'n_max_text_ctx': int,
    'offset_ms': int,
    'duration_ms': int,
    'max_len': int,
    'max_tokens': int,
    'audio_ctx': int,
    'no_context': _parse_bool,
    'single_segment': _parse_bool,
    'token_timestamps': _parse_bool,
    'split_on_word': _parse_bool,
    'suppress_blank': _parse_bool,
    'temperature': float,
    'temperature_inc': float,
    'entropy_thold': float,
    'logprob_thold': float,
    'no_speech_thold': float,
}


class NativeCallBuffers:
    """NUL-terminated byte buffers referenced by one native parameter struct."""

    def __init__(self) -> None:
        self._buffers: dict[str, bytes] = {}

    def add(self, field: str, value: str) -> bytes:
        buf = error_mapper.encode_c_string(value, field)
        self._buffers[field] = buf
        return buf

    def get(self, field: str) -> bytes | None:
        return self._buffers.get(field)

    def snapshot(self) -> dict[str, bytes]:
        """Independent copy of every buffer's bytes."""
        return {k: bytes(bytearray(v)) for k, v in self._buffers.items()}

    def clear(self) -> None:
        self._buffers.clear()

    def __len__(self) -> int:
        return len(self._buffers)

    def __contains__(self, field: str) -> bool:
        return field in self._buffers


class NativeParams:
    """A whisper_full_params object bundled with the buffers it points into."""

    def __init__(self, params: Any, buffers: NativeCallBuffers, output_format: OutputFormat) -> None:
        self.params = params
        self.buffers = buffers
        self.output_format = output_format
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        self.buffers.clear()
        self.params = None
        self._released = True

    def __enter__(self) -> NativeParams:
        return self

    def __exit__(self, *exc) -> None:
        self.release()


class ParameterBuilder:
    """Builds NativeParams from a TranscriptionConfig. Sampling is always greedy."""

    def __init__(self, library: WhisperLibrary) -> None:
        self._library = library

    def build(self, config: TranscriptionConfig, handle: ModelHandle | None = None) -> NativeParams:
        # Format first: an unknown value must fail before any native call.
        output_format = config.parsed_format
        extras = _convert_extras(config)

        params = self._library.full_default_params(GREEDY)
        buffers = NativeCallBuffers()

        if not config.is_auto_language:
            params.language = buffers.add('language', config.language)
        params.translate = bool(config.translate)
        params.print_progress = False
        params.print_realtime = False

        for field, value in extras.items():
            if field in _STRING_FIELDS:
                value = buffers.add(field, value)
            try:
                setattr(params, field, value)
            except (TypeError, ValueError, OverflowError) as exc:
                raise InitializationError(f'Invalid value for {field}: {config.extra[field]!r}') from exc

        if handle is not None:
            log.debug(
                'Built params for %s: language=%s translate=%s extras=%s',
                handle.path.name,
                config.language,
                config.translate,
                sorted(extras),
            )
        return NativeParams(params, buffers, output_format)


def _convert_extras(config: TranscriptionConfig) -> dict[str, Any]:
    converted: dict[str, Any] = {}
    for key, raw in config.extra.items():
        if key in _STRING_FIELDS:
            converted[key] = raw
            continue
        convert = _EXTRA_FIELDS.get(key)
        if convert is None:
            log.debug('Ignoring option not recognized by the engine: %s', key)
            continue
        try:
            converted[key] = convert(raw)
        except ValueError as exc:
            raise InitializationError(f'Invalid value for {key}: {raw!r}') from exc
    return converted
