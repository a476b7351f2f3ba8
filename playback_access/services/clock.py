from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], int]
"""Returns the current time in epoch milliseconds."""


def system_clock() -> int:
    return int(time.time() * 1000)


def remaining_ttl_ms(expires_at_ms: int, clock: Clock) -> int:
    """Milliseconds until `expires_at_ms`, floored at 1 (Redis rejects PX <= 0)."""
    return max(1, int(expires_at_ms) - clock())
