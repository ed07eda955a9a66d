"""Application config defaults: lives in L4, not domain."""

from __future__ import annotations

import copy

from whisper_bridge.l1_entities.config import AppConfig
from whisper_bridge.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

APP_CONFIG_DEFAULTS: dict = {
    'transcription': {
        'model': 'base',
        'language': 'auto',
        'output_format': 'txt',
        'n_threads': None,
    },
    'engine': {
        'binary': None,
        'timeout': None,
    },
    'output': {
        'directory': None,
    },
}


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)
