"""
Reservation transaction engine.

Turns one availability slot into one booking (and back on cancellation) as a
single unit of work. A lost race surfaces as ``SlotUnavailableError`` and is
never retried here: the student already saw a listing that is now stale, so
the caller re-lists open slots instead.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from services.errors import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    SlotUnavailableError,
    ValidationError,
)
from services.records import Actor, BookingRecord, BookingStatus, Role, SlotSpec
from utils.clock import utcnow

logger = logging.getLogger(__name__)


class ReservationEngine:
    def __init__(
        self,
        store,
        directory,
        emitter,
        lesson_duration=timedelta(hours=1),
        cancel_cutoff=timedelta(hours=24),
        restore_slot_on_cancel=True,
        clock=utcnow,
    ):
        self._store = store
        self._directory = directory
        self._emitter = emitter
        self._duration = lesson_duration
        self._cancel_cutoff = cancel_cutoff
        self._restore_slot_on_cancel = restore_slot_on_cancel
        self._clock = clock

    # ---------- student: direct booking ----------
    def book(
        self,
        student_id: int,
        student_name: Optional[str],
        course_id: int,
        course_title: Optional[str],
        availability_id: int,
    ) -> BookingRecord:
        course = self._directory.get_course(course_id)
        if not course.has_student(student_id):
            raise PermissionDeniedError("Student is not enrolled in this course")
        if not student_name:
            student_name = self._directory.get_user_profile(student_id).name

        now = self._clock()
        try:
            with self._store.unit_of_work() as uow:
                slot = uow.get_availability(availability_id)
                if slot is None:
                    raise SlotUnavailableError("This time slot is no longer available")
                if slot.teacher_id != course.teacher_id:
                    raise ValidationError("This slot does not belong to the course's teacher")
                if slot.start_time <= now:
                    raise SlotUnavailableError("This time slot has already started")

                start_time, end_time = slot.start_time, slot.end_time
                if not uow.consume_availability(availability_id):
                    raise SlotUnavailableError("This time slot is no longer available")

                row = uow.add_booking(
                    student_id=student_id,
                    student_name=student_name,
                    teacher_id=course.teacher_id,
                    course_id=course.id,
                    course_title=course_title or course.title,
                    start_time=start_time,
                    end_time=end_time,
                    availability_id=availability_id,
                    status=BookingStatus.CONFIRMED.value,
                    cancellation_deadline=start_time - self._cancel_cutoff,
                )
                booking = BookingRecord.from_row(row)
        except IntegrityError as exc:
            # uq_booking_availability_once: another booking committed for this slot
            raise SlotUnavailableError("This time slot is no longer available") from exc

        logger.info(
            "Booking %s created: student %s took availability %s",
            booking.id, student_id, availability_id,
        )
        self._emitter.booking_created(booking)
        return booking

    # ---------- cancellation ----------
    def cancel(self, booking_id: int, cancelled_by: Actor, reason: Optional[str] = None) -> BookingRecord:
        now = self._clock()
        reason = (reason or "").strip() or None
        with self._store.unit_of_work() as uow:
            row = uow.get_booking(booking_id)
            if row is None:
                raise NotFoundError("Booking not found")
            booking = BookingRecord.from_row(row)
            if booking.status.is_terminal:
                raise InvalidStateError(f"Booking is already {booking.status.value}")
            if not cancelled_by.is_admin and not booking.involves(cancelled_by.id):
                raise PermissionDeniedError("Only the student, the teacher or an admin can cancel")
            if self._is_student_initiated(booking, cancelled_by):
                self._check_cancellation_window(booking, now)

            row.status = BookingStatus.CANCELLED.value
            row.cancelled_at = now
            row.cancelled_by = cancelled_by.id
            row.cancel_reason = reason

            if (
                self._restore_slot_on_cancel
                and booking.availability_id is not None
                and booking.start_time > now
            ):
                uow.add_availabilities(
                    booking.teacher_id,
                    [SlotSpec(start=booking.start_time, end=booking.end_time)],
                )
            booking = BookingRecord.from_row(row)

        logger.info("Booking %s cancelled by user %s", booking_id, cancelled_by.id)
        self._emitter.booking_cancelled(booking, reason)
        return booking

    @staticmethod
    def _is_student_initiated(booking: BookingRecord, actor: Actor) -> bool:
        return (
            not actor.is_admin
            and actor.id == booking.student_id
            and actor.id != booking.teacher_id
        )

    def _check_cancellation_window(self, booking: BookingRecord, now: datetime) -> None:
        if booking.cancellation_deadline is not None:
            if now >= booking.cancellation_deadline:
                raise InvalidStateError("The cancellation deadline for this booking has passed")
            return
        if booking.start_time - now <= self._cancel_cutoff:
            hours = int(self._cancel_cutoff.total_seconds() // 3600)
            raise InvalidStateError(f"Cancellation not allowed within {hours} hours of start")

    # ---------- admin escape hatch ----------
    def manual_book(self, admin: Actor, student_id: int, course_id: int, start_time: datetime) -> BookingRecord:
        if not admin.is_admin:
            raise PermissionDeniedError("Only admins can create manual bookings")
        course = self._directory.get_course(course_id)
        student = self._directory.get_user_profile(student_id)
        if student.role != Role.STUDENT:
            raise ValidationError("Manual bookings must be made for a student")

        end_time = start_time + self._duration
        with self._store.unit_of_work() as uow:
            if uow.teacher_conflicts(course.teacher_id, start_time, end_time):
                raise SlotUnavailableError("The teacher already has a booking at that time")
            row = uow.add_booking(
                student_id=student.id,
                student_name=student.name,
                teacher_id=course.teacher_id,
                course_id=course.id,
                course_title=course.title,
                start_time=start_time,
                end_time=end_time,
                status=BookingStatus.CONFIRMED.value,
                cancellation_deadline=start_time - self._cancel_cutoff,
            )
            booking = BookingRecord.from_row(row)

        logger.info("Manual booking %s created by admin %s", booking.id, admin.id)
        self._emitter.booking_created(booking)
        return booking

    # ---------- request / approval flow ----------
    def request_booking(self, student_id: int, course_id: int, start_time: datetime) -> BookingRecord:
        course = self._directory.get_course(course_id)
        if not course.has_student(student_id):
            raise PermissionDeniedError("Student is not enrolled in this course")
        if start_time <= self._clock():
            raise ValidationError("Requested time must be in the future")
        student = self._directory.get_user_profile(student_id)

        with self._store.unit_of_work() as uow:
            row = uow.add_booking(
                student_id=student.id,
                student_name=student.name,
                teacher_id=course.teacher_id,
                course_id=course.id,
                course_title=course.title,
                start_time=start_time,
                end_time=start_time + self._duration,
                status=BookingStatus.PENDING.value,
            )
            booking = BookingRecord.from_row(row)

        self._emitter.booking_requested(booking)
        return booking

    def _load_pending_for_approval(self, uow, booking_id: int, actor: Actor):
        row = uow.get_booking(booking_id)
        if row is None:
            raise NotFoundError("Booking not found")
        booking = BookingRecord.from_row(row)
        if booking.status != BookingStatus.PENDING:
            raise InvalidStateError(f"Only pending bookings can be answered, this one is {booking.status.value}")
        if not actor.is_admin and actor.id != booking.teacher_id:
            raise PermissionDeniedError("Only the teacher or an admin can answer a request")
        return row, booking

    def confirm(self, booking_id: int, actor: Actor) -> BookingRecord:
        with self._store.unit_of_work() as uow:
            row, booking = self._load_pending_for_approval(uow, booking_id, actor)
            if uow.teacher_conflicts(booking.teacher_id, booking.start_time, booking.end_time, exclude_id=booking.id):
                raise SlotUnavailableError("The teacher already has a booking at that time")
            row.status = BookingStatus.CONFIRMED.value
            row.cancellation_deadline = booking.start_time - self._cancel_cutoff
            booking = BookingRecord.from_row(row)

        self._emitter.booking_confirmed(booking)
        return booking

    def decline(self, booking_id: int, actor: Actor, reason: Optional[str] = None) -> BookingRecord:
        reason = (reason or "").strip() or None
        with self._store.unit_of_work() as uow:
            row, _ = self._load_pending_for_approval(uow, booking_id, actor)
            row.status = BookingStatus.CANCELLED.value
            row.cancelled_at = self._clock()
            row.cancelled_by = actor.id
            row.cancel_reason = reason
            booking = BookingRecord.from_row(row)

        self._emitter.booking_declined(booking, reason)
        return booking

    # ---------- after the lesson ----------
    def complete_finished(self) -> List[BookingRecord]:
        """Move every confirmed booking whose end time has passed to completed."""
        now = self._clock()
        with self._store.unit_of_work() as uow:
            rows = uow.confirmed_ending_by(now)
            for row in rows:
                row.status = BookingStatus.COMPLETED.value
            completed = [BookingRecord.from_row(r) for r in rows]
        if completed:
            logger.info("Marked %d booking(s) completed", len(completed))
        return completed

    def submit_feedback(self, booking_id: int, actor: Actor, rating, comment: str = "") -> BookingRecord:
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be an integer from 1 to 5")
        with self._store.unit_of_work() as uow:
            row = uow.get_booking(booking_id)
            if row is None:
                raise NotFoundError("Booking not found")
            if not actor.is_admin and actor.id != row.teacher_id:
                raise PermissionDeniedError("Only the teacher or an admin can leave feedback")
            if row.status != BookingStatus.COMPLETED.value:
                raise InvalidStateError("Feedback can only be attached to completed bookings")
            row.feedback_rating = rating
            row.feedback_comment = (comment or "").strip() or None
            return BookingRecord.from_row(row)

    # ---------- queries ----------
    def get_booking(self, booking_id: int) -> BookingRecord:
        with self._store.unit_of_work() as uow:
            row = uow.get_booking(booking_id)
            if row is None:
                raise NotFoundError("Booking not found")
            return BookingRecord.from_row(row)

    def list_bookings(self, student_id=None, teacher_id=None, status=None) -> List[BookingRecord]:
        if status is not None:
            try:
                status = BookingStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown booking status {status!r}")
        with self._store.unit_of_work() as uow:
            rows = uow.list_bookings(student_id=student_id, teacher_id=teacher_id, status=status)
            return [BookingRecord.from_row(r) for r in rows]
