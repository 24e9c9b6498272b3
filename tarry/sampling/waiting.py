"""
High-precision waiting for sampled delays.

``time.sleep`` is cheap but coarse: the scheduler commonly wakes the thread
several milliseconds late. ``PrecisionWaiter.block`` therefore sleeps through
the bulk of a delay and busy-spins on ``time.perf_counter`` for the last
``spin_threshold`` seconds. ``PrecisionWaiter.sleep`` is the non-blocking
counterpart built on the event loop timer.

Per call the blocking path moves Idle -> Sleeping -> Spinning -> Done (or
straight to Done for non-positive delays). The async path can additionally
end in Cancelled at any point before Done.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

from .units import Seconds

logger = logging.getLogger(__name__)

DEFAULT_SPIN_THRESHOLD = Seconds(0.02)
DEFAULT_SPIN_LIMIT = 10


@dataclass
class WaitConfig:
    """Tuning for blocking waits.

    Attributes:
        spin_threshold: Length of the tail (seconds) spent spinning instead
            of sleeping. Larger values are more precise and burn more CPU.
        spin_limit: Number of doubling steps before the spinner wraps around
            and yields the thread. Between 1 and 30.
    """

    spin_threshold: Seconds = DEFAULT_SPIN_THRESHOLD
    spin_limit: int = DEFAULT_SPIN_LIMIT

    def __post_init__(self) -> None:
        if self.spin_threshold < 0:
            raise ValueError(
                f"spin_threshold must be non-negative, got {self.spin_threshold}"
            )
        if not 1 <= self.spin_limit <= 30:
            raise ValueError(
                f"spin_limit must be between 1 and 30, got {self.spin_limit}"
            )


class FastSpinner:
    """Busy-wait helper whose per-call spin doubles up to a limit.

    Each ``spin_once`` runs ``1 << count`` empty iterations and increments
    ``count``. When ``count`` reaches the threshold it wraps to zero and the
    thread yields once, so a long spin never pegs a core without pause.
    """

    def __init__(self, threshold: int = DEFAULT_SPIN_LIMIT):
        if not 1 <= threshold <= 30:
            raise ValueError(f"threshold must be between 1 and 30, got {threshold}")
        self._threshold = threshold
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def spin_once(self) -> None:
        for _ in range(1 << self._count):
            pass

        self._count += 1
        if self._count >= self._threshold:
            self._count = 0
            time.sleep(0)

    def reset(self) -> None:
        self._count = 0


class PrecisionWaiter:
    """Waits for a given duration, blocking or on the event loop."""

    def __init__(self, config: WaitConfig | None = None):
        self.config = config or WaitConfig()

    def block(self, duration: Seconds) -> Seconds:
        """Block the calling thread for ``duration`` seconds.

        Args:
            duration: Time to wait. Zero or negative returns immediately.

        Returns:
            Measured elapsed time in seconds.
        """
        start = time.perf_counter()
        if duration <= 0:
            return Seconds(0.0)

        deadline = start + duration

        # Sleeping
        bulk = duration - self.config.spin_threshold
        if bulk > 0:
            time.sleep(bulk)

        # Spinning
        spinner = FastSpinner(self.config.spin_limit)
        while time.perf_counter() < deadline:
            spinner.spin_once()

        elapsed = Seconds(time.perf_counter() - start)
        logger.debug(
            f"Blocked {elapsed:.6f}s for a {duration:.6f}s delay "
            f"(overshoot {elapsed - duration:.6f}s)"
        )
        return elapsed

    async def sleep(
        self, duration: Seconds, cancel: asyncio.Event | None = None
    ) -> Seconds:
        """Wait ``duration`` seconds without blocking the event loop.

        Args:
            duration: Time to wait. Zero or negative returns immediately.
            cancel: Optional event; setting it before the delay expires
                cancels the wait.

        Returns:
            Measured elapsed time in seconds.

        Raises:
            asyncio.CancelledError: If ``cancel`` was set before or during
                the wait, or the surrounding task was cancelled.
        """
        if duration <= 0:
            return Seconds(0.0)

        if cancel is not None and cancel.is_set():
            raise asyncio.CancelledError("wait cancelled before it started")

        loop = asyncio.get_running_loop()
        start = loop.time()

        if cancel is None:
            await asyncio.sleep(duration)
        else:
            try:
                await asyncio.wait_for(cancel.wait(), timeout=duration)
            except asyncio.TimeoutError:
                pass
            else:
                logger.debug(f"Wait of {duration:.6f}s cancelled")
                raise asyncio.CancelledError("wait cancelled")

        return Seconds(loop.time() - start)
