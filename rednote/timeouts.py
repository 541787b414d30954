"""
Timeout Budget
==============
Derives per-stage timeouts from a caller-supplied overall timeout.

Rule:
    - A bounded sub-wait gets ``min(ceiling_ms, total_ms * fraction)``
      (fraction defaults to 1/3).
    - The human-paced stage (QR scan) gets the full ``total_ms``.
    - Single-stage operations use ``total_ms`` directly.

Usage::

    budget = TimeoutBudget(total_ms=60_000)
    budget.stage(STAGE_LOGIN_DIALOG)   # 10000
    budget.human()                     # 60000
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


# Stage names
STAGE_NAVIGATE = "navigate"
STAGE_LOGIN_DIALOG = "login_dialog"
STAGE_QR_CODE = "qr_code"
STAGE_HUMAN_LOGIN = "human_login"

DEFAULT_STAGE_CEILING_MS = 10_000
DEFAULT_STAGE_FRACTION = 1 / 3

# Fixed ceiling for waits inside a search batch (detail open / detach).
# Independent of the outer timeout.
ITEM_WAIT_CEILING_MS = 30_000

HUMAN_STAGES = frozenset({STAGE_HUMAN_LOGIN})


@dataclass(frozen=True)
class TimeoutBudget:
    """Per-call timeout budget. Never persisted."""
    total_ms: float
    ceiling_ms: float = DEFAULT_STAGE_CEILING_MS
    stage_fractions: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if self.total_ms <= 0:
            raise ValueError(f"total_ms must be positive, got {self.total_ms}")

    def stage(self, name: str) -> float:
        """Timeout (ms) for the named stage."""
        if name in HUMAN_STAGES:
            return self.human()
        fraction = self.stage_fractions.get(name, DEFAULT_STAGE_FRACTION)
        return min(self.ceiling_ms, self.total_ms * fraction)

    def human(self) -> float:
        """The human-paced wait is not subdivided."""
        return self.total_ms

    def single(self) -> float:
        """Single-stage operations use the whole budget."""
        return self.total_ms


def stage_timeout(total_ms: float, ceiling_ms: float = DEFAULT_STAGE_CEILING_MS) -> float:
    """Shorthand for the default bounded sub-wait: ``min(ceiling, total/3)``."""
    return TimeoutBudget(total_ms, ceiling_ms).stage(STAGE_NAVIGATE)
