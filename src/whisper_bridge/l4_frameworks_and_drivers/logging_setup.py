"""Logging setup for the CLI."""

from __future__ import annotations

import logging

_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def setup_logging(verbose: bool = False) -> None:
    """Send ``wb.*`` records to stderr; DEBUG when *verbose*, WARNING otherwise."""
    root = logging.getLogger('wb')
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(getattr(h, '_wb_stderr', False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._wb_stderr = True  # type: ignore[attr-defined]
        root.addHandler(handler)

