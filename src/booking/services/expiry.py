"""Background sweep that cancels unpaid reservations and finishes interrupted cancellations."""

import threading
from typing import TYPE_CHECKING

from booking.utils.logging import get_logger

if TYPE_CHECKING:
    from .booking import BookingService

logger = get_logger(__name__)


class PendingPaymentReaper:
    """Daemon thread calling BookingService.expire_pending_payments periodically.

    Usage:
        reaper = PendingPaymentReaper(booking, interval_seconds=60)
        reaper.start()
        ...
        reaper.stop()
    """

    def __init__(self, booking: "BookingService", interval_seconds: float = 60.0) -> None:
        self.booking = booking
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="pending-payment-reaper", daemon=True
        )
        self._thread.start()
        logger.info("Pending payment reaper started (every %ss)", self.interval_seconds)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Pending payment reaper stopped")

    def sweep(self) -> int:
        """Run one sweep now; returns how many reservations were cancelled.

        Besides expiring unpaid reservations, the sweep finishes cancellations
        whose refund went out but whose commit was lost.
        """
        expired = self.booking.expire_pending_payments()
        if expired:
            logger.info(
                "Expired %d unpaid reservation(s)",
                len(expired),
                extra={"reservation_ids": [r.reservation_id for r in expired]},
            )
        completed = self.booking.complete_interrupted_cancellations()
        if completed:
            logger.warning(
                "Completed %d interrupted cancellation(s)",
                len(completed),
                extra={"reservation_ids": [r.reservation_id for r in completed]},
            )
        return len(expired) + len(completed)

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.sweep()
            except Exception:
                # Keep the thread alive; the next sweep retries
                logger.exception("Pending payment sweep failed")
