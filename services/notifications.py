"""
Notification hook of the reservation core.

Delivery belongs to whoever implements ``Notifier``. The emitter only decides
who hears about which booking event and never lets a delivery failure reach
the caller: the booking or cancellation has already committed by then.
"""
import logging
from typing import List, Optional, Protocol, Tuple

from services.records import BookingRecord

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking_created"
BOOKING_CANCELLED = "booking_cancelled"
BOOKING_REQUESTED = "booking_requested"
BOOKING_CONFIRMED = "booking_confirmed"
BOOKING_DECLINED = "booking_declined"
BOOKING_REMINDER = "booking_reminder"


class Notifier(Protocol):
    def notify(self, user_id: int, message: str, link: Optional[str] = None) -> None:
        ...


class DatabaseNotifier:
    """Writes in-app notifications to the ``notifications`` table.

    ``notify_within`` lets a caller that already holds a unit of work write the
    row in that same transaction; the reminder sweep relies on it.
    """

    def __init__(self, store):
        self._store = store

    def notify(self, user_id: int, message: str, link: Optional[str] = None) -> None:
        with self._store.unit_of_work() as uow:
            self.notify_within(uow, user_id, message, link)

    def notify_within(self, uow, user_id: int, message: str, link: Optional[str] = None) -> None:
        uow.add_notification(user_id, message, link)


def booking_link(booking: BookingRecord) -> str:
    return f"/bookings/{booking.id}"


def _when(booking: BookingRecord) -> str:
    return booking.start_time.strftime("%Y-%m-%d %H:%M")


def reminder_messages(booking: BookingRecord) -> List[Tuple[int, str]]:
    """(user_id, message) pairs for the reminder of an upcoming lesson."""
    when = _when(booking)
    return [
        (booking.student_id, f"Reminder: your {booking.course_title} class starts soon ({when})."),
        (
            booking.teacher_id,
            f"Reminder: your {booking.course_title} class with {booking.student_name} starts soon ({when}).",
        ),
    ]


class NotificationEmitter:
    def __init__(self, notifier: Notifier):
        self._notifier = notifier

    @property
    def joins_transaction(self) -> bool:
        """True when the notifier can write inside a caller's unit of work."""
        return callable(getattr(self._notifier, "notify_within", None))

    def booking_created(self, booking: BookingRecord) -> None:
        when = _when(booking)
        self._send(BOOKING_CREATED, booking, [
            (booking.student_id, f"Your {booking.course_title} class on {when} is confirmed."),
            (booking.teacher_id, f"{booking.student_name} booked {booking.course_title} on {when}."),
        ])

    def booking_cancelled(self, booking: BookingRecord, reason: Optional[str] = None) -> None:
        text = f"The {booking.course_title} class on {_when(booking)} was cancelled."
        if reason:
            text = f"{text} Reason: {reason}"
        self._send(BOOKING_CANCELLED, booking, [
            (booking.student_id, text),
            (booking.teacher_id, text),
        ])

    def booking_requested(self, booking: BookingRecord) -> None:
        self._send(BOOKING_REQUESTED, booking, [
            (
                booking.teacher_id,
                f"{booking.student_name} requested {booking.course_title} on {_when(booking)}.",
            ),
        ])

    def booking_confirmed(self, booking: BookingRecord) -> None:
        self._send(BOOKING_CONFIRMED, booking, [
            (
                booking.student_id,
                f"Your request for {booking.course_title} on {_when(booking)} was accepted.",
            ),
        ])

    def booking_declined(self, booking: BookingRecord, reason: Optional[str] = None) -> None:
        text = f"Your request for {booking.course_title} on {_when(booking)} was declined."
        if reason:
            text = f"{text} Reason: {reason}"
        self._send(BOOKING_DECLINED, booking, [(booking.student_id, text)])

    def booking_reminder(self, booking: BookingRecord, uow=None) -> None:
        if uow is None:
            self._send(BOOKING_REMINDER, booking, reminder_messages(booking))
            return
        # Written alongside reminder_sent; a failure rolls the claim back too
        link = booking_link(booking)
        for user_id, message in reminder_messages(booking):
            self._notifier.notify_within(uow, user_id, message, link)

    def _send(self, event: str, booking: BookingRecord, recipients) -> None:
        link = booking_link(booking)
        for user_id, message in recipients:
            try:
                self._notifier.notify(user_id, message, link)
            except Exception:
                logger.exception(
                    "Failed to deliver %s notification for booking %s to user %s",
                    event, booking.id, user_id,
                )
