"""L1 entity: lifecycle of a single backend invocation."""

from __future__ import annotations

import enum


class InvocationState(enum.Enum):
    IDLE = 'idle'
    VALIDATING = 'validating'
    RUNNING = 'running'
    COMPLETED = 'completed'
    FAILED = 'failed'
