import logging
from dataclasses import replace
from datetime import timedelta
from typing import List, Optional

from services.records import BookingRecord
from utils.clock import utcnow

logger = logging.getLogger(__name__)


class ReminderSweep:
    """Periodic job: remind both sides of each upcoming lesson exactly once.

    Each booking is claimed with a conditional update of ``reminder_sent``, so
    overlapping runs never remind the same booking twice. When the notifier
    writes to the reservation store, the reminder rows go into the same unit of
    work as the claim. Any other notifier is called after the claims commit.
    """

    def __init__(self, store, emitter, window=timedelta(hours=24), clock=utcnow):
        self._store = store
        self._emitter = emitter
        self._window = window
        self._clock = clock

    def find_bookings_starting_within(self, window: Optional[timedelta] = None) -> List[BookingRecord]:
        now = self._clock()
        with self._store.unit_of_work() as uow:
            rows = uow.unreminded_starting_between(now, now + (window or self._window))
            return [BookingRecord.from_row(r) for r in rows]

    def send_due_reminders(self, window: Optional[timedelta] = None) -> List[BookingRecord]:
        now = self._clock()
        in_batch = self._emitter.joins_transaction
        reminded = []
        with self._store.unit_of_work() as uow:
            for row in uow.unreminded_starting_between(now, now + (window or self._window)):
                if not uow.claim_reminder(row.id):
                    logger.info("Booking %s was reminded by another sweep", row.id)
                    continue
                booking = replace(BookingRecord.from_row(row), reminder_sent=True)
                if in_batch:
                    self._emitter.booking_reminder(booking, uow)
                reminded.append(booking)

        if not in_batch:
            for booking in reminded:
                self._emitter.booking_reminder(booking)
        logger.info("Sent reminders for %d booking(s)", len(reminded))
        return reminded
