"""
Store handle for the reservation core.

``ReservationStore`` owns a SQLAlchemy session factory and hands out
``UnitOfWork`` objects: everything done inside one ``with
store.unit_of_work()`` block commits together or not at all. Concurrent
attempts on the same availability are serialized by the database itself
(conditional delete plus the unique constraint on
``bookings.availability_id``); nothing here takes an in-process lock.
"""
from contextlib import contextmanager
from typing import Iterable, List, Optional

from sqlalchemy import delete, select, update

from models.availability import Availability
from models.booking import Booking
from models.course import Course
from models.notification import Notification
from models.user import User
from services.records import BookingStatus, SlotSpec


class UnitOfWork:
    def __init__(self, session):
        self.session = session

    # ---------- availability ----------
    def get_availability(self, availability_id: int) -> Optional[Availability]:
        return self.session.get(Availability, availability_id)

    def add_availabilities(self, teacher_id: int, slots: Iterable[SlotSpec]) -> List[Availability]:
        rows = [
            Availability(teacher_id=teacher_id, start_time=s.start, end_time=s.end)
            for s in slots
        ]
        self.session.add_all(rows)
        self.session.flush()
        return rows

    def consume_availability(self, availability_id: int) -> bool:
        """Delete the slot; False when another transaction got there first."""
        result = self.session.execute(
            delete(Availability)
            .where(Availability.id == availability_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def open_availabilities(self, teacher_id: int, now) -> List[Availability]:
        stmt = (
            select(Availability)
            .where(Availability.teacher_id == teacher_id, Availability.start_time >= now)
            .order_by(Availability.start_time.asc(), Availability.id.asc())
        )
        return list(self.session.scalars(stmt))

    # ---------- bookings ----------
    def get_booking(self, booking_id: int) -> Optional[Booking]:
        return self.session.get(Booking, booking_id)

    def add_booking(self, **fields) -> Booking:
        row = Booking(**fields)
        self.session.add(row)
        self.session.flush()
        return row

    def teacher_conflicts(self, teacher_id: int, start, end, exclude_id: Optional[int] = None) -> List[Booking]:
        stmt = select(Booking).where(
            Booking.teacher_id == teacher_id,
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.start_time < end,
            Booking.end_time > start,
        )
        if exclude_id is not None:
            stmt = stmt.where(Booking.id != exclude_id)
        return list(self.session.scalars(stmt))

    def list_bookings(self, student_id=None, teacher_id=None, status=None, limit=200) -> List[Booking]:
        stmt = select(Booking)
        if student_id is not None:
            stmt = stmt.where(Booking.student_id == student_id)
        if teacher_id is not None:
            stmt = stmt.where(Booking.teacher_id == teacher_id)
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        stmt = stmt.order_by(Booking.start_time.desc(), Booking.id.desc()).limit(limit)
        return list(self.session.scalars(stmt))

    def confirmed_ending_by(self, now) -> List[Booking]:
        stmt = select(Booking).where(
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.end_time <= now,
        )
        return list(self.session.scalars(stmt))

    def unreminded_starting_between(self, start, end) -> List[Booking]:
        stmt = (
            select(Booking)
            .where(
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.reminder_sent.is_(False),
                Booking.start_time >= start,
                Booking.start_time <= end,
            )
            .order_by(Booking.start_time.asc())
        )
        return list(self.session.scalars(stmt))

    def claim_reminder(self, booking_id: int) -> bool:
        """Set ``reminder_sent``; False when another sweep claimed the booking first."""
        result = self.session.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.reminder_sent.is_(False))
            .values(reminder_sent=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ---------- reference data ----------
    def get_user(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_course(self, course_id: int) -> Optional[Course]:
        return self.session.get(Course, course_id)

    # ---------- notifications ----------
    def add_notification(self, user_id: int, message: str, link: Optional[str] = None) -> Notification:
        row = Notification(user_id=user_id, message=message, link=link)
        self.session.add(row)
        return row


class ReservationStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    @contextmanager
    def unit_of_work(self):
        session = self._session_factory()
        try:
            yield UnitOfWork(session)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
