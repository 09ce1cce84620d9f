"""Admission control for image generation jobs.

A fixed ceiling on in-flight jobs. Work beyond the ceiling is rejected
immediately; there is no queue behind the gate.
"""

from collections.abc import Iterator
from contextlib import contextmanager

import structlog

logger = structlog.get_logger(__name__)


class AdmissionGate:
    """Counts jobs currently holding a concurrency slot.

    All methods are synchronous so the check-and-increment in ``try_admit``
    completes without an intervening suspension point on the event loop.
    """

    def __init__(self, ceiling: int):
        if ceiling < 1:
            raise ValueError("ceiling must be >= 1")
        self._ceiling = ceiling
        self._in_flight = 0

    @property
    def ceiling(self) -> int:
        return self._ceiling

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def try_admit(self) -> bool:
        """Reserve a slot if one is free.

        Returns:
            True if a slot was reserved, False if the gate is saturated
        """
        if self._in_flight >= self._ceiling:
            logger.warning(
                "admission.rejected", in_flight=self._in_flight, ceiling=self._ceiling
            )
            return False
        self._in_flight += 1
        return True

    def release(self) -> None:
        """Free a slot reserved by ``try_admit``.

        Raises:
            RuntimeError: If no slot is currently held
        """
        if self._in_flight == 0:
            raise RuntimeError("release() called without a matching try_admit()")
        self._in_flight -= 1

    @contextmanager
    def occupied(self) -> Iterator[None]:
        """Hold an already admitted slot for the duration of the block.

        The slot is released exactly once on every exit path, including
        exceptions and task cancellation.

        Example:
            if gate.try_admit():
                with gate.occupied():
                    await run_job()
        """
        try:
            yield
        finally:
            self.release()
