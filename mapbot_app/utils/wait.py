"""
Bounded polling primitive.

Every bounded loop in the system is built on ``wait_for``. Its contract is
load-bearing for all timeout guarantees: it never blocks longer than
``timeout`` plus at most one ``interval``.
"""

from typing import Callable, Optional

import structlog

from .time import Clock, resolve_clock

logger = structlog.get_logger(__name__)


def wait_for(
    condition: Callable[[], bool],
    interval: float = 0.1,
    timeout: float = 5.0,
    description: str = "",
    clock: Optional[Clock] = None
) -> bool:
    """
    Poll ``condition`` until it holds or ``timeout`` elapses.

    Args:
        condition: Zero-argument predicate, evaluated before every sleep
        interval: Seconds to suspend between checks
        timeout: Maximum seconds to wait before giving up
        description: What is being waited for (for logging)
        clock: Clock to measure time and suspend on; defaults to the system clock

    Returns:
        True the moment the condition holds, False once elapsed time exceeds
        the timeout
    """
    if interval <= 0:
        raise ValueError("interval must be positive")

    clock = resolve_clock(clock)
    started = clock.now()

    logger.debug("Waiting for condition", description=description, timeout=timeout)

    while not condition():
        if clock.now() - started > timeout:
            logger.warning(
                "Timeout while waiting for condition",
                description=description,
                timeout=timeout
            )
            return False

        clock.sleep(interval)

    logger.debug(
        "Condition met",
        description=description,
        elapsed=round(clock.now() - started, 3)
    )
    return True


def pause(seconds: float, clock: Optional[Clock] = None) -> None:
    """Fixed settling delay on the given clock."""
    resolve_clock(clock).sleep(seconds)
