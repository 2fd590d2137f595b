import logging
from datetime import datetime, timedelta

import pytest

from models.availability import Availability
from models.booking import Booking
from services import BookingStatus, build_services
from services.errors import (
    NotFoundError,
    PermissionDeniedError,
    SlotUnavailableError,
    ValidationError,
)
from services.store import UnitOfWork


def _count(session_factory, model, **filters):
    session = session_factory()
    try:
        return session.query(model).filter_by(**filters).count()
    finally:
        session.close()


class TestBook:
    def test_publish_then_book_end_to_end(self, services, people, publish_at, book_for):
        slot = publish_at(datetime(2024, 1, 10, 9, 0))

        booking = book_for(slot.id)

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.start_time == datetime(2024, 1, 10, 9, 0)
        assert booking.end_time == datetime(2024, 1, 10, 10, 0)
        assert booking.course_id == people.course
        assert booking.teacher_id == people.teacher
        assert booking.availability_id == slot.id
        assert slot.id not in [s.id for s in services.availability.list_open(people.teacher)]

    def test_slot_published_after_a_booking_gets_a_fresh_id(self, services, people, publish_at, book_for):
        first = publish_at(datetime(2024, 1, 10, 9, 0))
        book_for(first.id)
        second = publish_at(datetime(2024, 1, 11, 9, 0))

        booking = book_for(second.id, student_id=people.classmate, name="Suzuki")

        assert second.id != first.id
        assert booking.availability_id == second.id
        assert services.availability.list_open(people.teacher) == []

    def test_booking_stamps_cancellation_deadline(self, publish_at, book_for):
        slot = publish_at(datetime(2024, 1, 10, 9, 0))

        booking = book_for(slot.id)

        assert booking.cancellation_deadline == datetime(2024, 1, 9, 9, 0)

    def test_course_title_falls_back_to_course(self, services, people, publish_at):
        slot = publish_at(datetime(2024, 1, 10, 9, 0))

        booking = services.engine.book(people.student, None, people.course, None, slot.id)

        assert booking.course_title == "Algebra I"
        assert booking.student_name == "Sato"

    def test_second_booking_of_same_slot_is_unavailable(self, session_factory, publish_at, book_for, people):
        slot = publish_at(datetime(2024, 1, 10, 9, 0))
        book_for(slot.id)

        with pytest.raises(SlotUnavailableError):
            book_for(slot.id, student_id=people.classmate, name="Suzuki")

        assert _count(session_factory, Booking, availability_id=slot.id) == 1

    def test_race_between_read_and_write_has_one_winner(
        self, monkeypatch, session_factory, services, people, publish_at, book_for
    ):
        slot = publish_at(datetime(2024, 1, 10, 9, 0))
        original = UnitOfWork.get_availability
        raced = []

        def racing_get(uow, availability_id):
            row = original(uow, availability_id)
            if not raced:
                raced.append(True)
                # classmate commits the same slot after we read it
                book_for(availability_id, student_id=people.classmate, name="Suzuki")
            return row

        monkeypatch.setattr(UnitOfWork, "get_availability", racing_get)

        with pytest.raises(SlotUnavailableError):
            book_for(slot.id)

        [winner] = services.engine.list_bookings(teacher_id=people.teacher)
        assert winner.student_id == people.classmate
        assert winner.status == BookingStatus.CONFIRMED
        assert _count(session_factory, Availability) == 0

    def test_removed_slot_is_unavailable(self, services, actors, publish_at, book_for):
        slot = publish_at(datetime(2024, 1, 10, 9, 0))
        services.availability.remove(slot.id, requested_by=actors.teacher)

        with pytest.raises(SlotUnavailableError):
            book_for(slot.id)

    def test_started_slot_cannot_be_booked(self, services, people, clock, publish_at, book_for):
        slot = publish_at(datetime(2024, 1, 1, 9, 0))
        clock.advance(hours=2)

        with pytest.raises(SlotUnavailableError):
            book_for(slot.id)

        # still on the ledger side untouched
        assert services.engine.list_bookings(teacher_id=people.teacher) == []

    def test_student_must_be_enrolled(self, services, people, publish_at, book_for):
        slot = publish_at(datetime(2024, 1, 10, 9, 0))

        with pytest.raises(PermissionDeniedError):
            book_for(slot.id, student_id=people.outsider, name="Ito")

        assert [s.id for s in services.availability.list_open(people.teacher)] == [slot.id]

    def test_slot_must_belong_to_course_teacher(self, people, publish_at, book_for):
        slot = publish_at(datetime(2024, 1, 10, 9, 0), teacher_id=people.other_teacher)

        with pytest.raises(ValidationError):
            book_for(slot.id)

    def test_unknown_course(self, services, people, publish_at):
        slot = publish_at(datetime(2024, 1, 10, 9, 0))

        with pytest.raises(NotFoundError):
            services.engine.book(people.student, "Sato", 9999, None, slot.id)

    def test_both_sides_are_notified(self, notifier, people, publish_at, book_for):
        slot = publish_at(datetime(2024, 1, 10, 9, 0))

        booking = book_for(slot.id)

        assert [uid for uid, _, _ in notifier.sent] == [people.student, people.teacher]
        assert all(link == f"/bookings/{booking.id}" for _, _, link in notifier.sent)

    def test_notification_failure_does_not_fail_booking(
        self, caplog, session_factory, clock, people, publish_at
    ):
        class BrokenNotifier:
            def notify(self, user_id, message, link=None):
                raise RuntimeError("push gateway down")

        broken = build_services(session_factory, notifier=BrokenNotifier(), clock=clock)
        slot = publish_at(datetime(2024, 1, 10, 9, 0))

        with caplog.at_level(logging.ERROR, logger="services.notifications"):
            booking = broken.engine.book(people.student, "Sato", people.course, None, slot.id)

        assert booking.status == BookingStatus.CONFIRMED
        assert _count(session_factory, Booking, id=booking.id) == 1
        assert "Failed to deliver booking_created" in caplog.text


class TestManualBook:
    def test_admin_books_without_availability(self, session_factory, services, people, actors):
        before = _count(session_factory, Availability)

        booking = services.engine.manual_book(
            actors.admin, people.student, people.course, datetime(2024, 1, 15, 14, 0)
        )

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.availability_id is None
        assert booking.end_time == datetime(2024, 1, 15, 15, 0)
        assert booking.teacher_id == people.teacher
        assert _count(session_factory, Availability) == before

    def test_only_admins(self, services, people, actors):
        with pytest.raises(PermissionDeniedError):
            services.engine.manual_book(
                actors.teacher, people.student, people.course, datetime(2024, 1, 15, 14, 0)
            )

    def test_rejects_teacher_double_booking(self, services, people, actors, publish_at, book_for):
        book_for(publish_at(datetime(2024, 1, 15, 14, 0)).id)

        with pytest.raises(SlotUnavailableError):
            services.engine.manual_book(
                actors.admin, people.classmate, people.course, datetime(2024, 1, 15, 14, 30)
            )

    def test_cancelled_bookings_do_not_conflict(self, services, people, actors):
        first = services.engine.manual_book(
            actors.admin, people.student, people.course, datetime(2024, 1, 15, 14, 0)
        )
        services.engine.cancel(first.id, actors.teacher)

        second = services.engine.manual_book(
            actors.admin, people.classmate, people.course, datetime(2024, 1, 15, 14, 0)
        )

        assert second.status == BookingStatus.CONFIRMED


class TestQueries:
    def test_get_missing_booking(self, services):
        with pytest.raises(NotFoundError):
            services.engine.get_booking(12345)

    def test_list_filters_by_status(self, services, people, actors, publish_at, book_for):
        kept = book_for(publish_at(datetime(2024, 1, 10, 9, 0)).id)
        dropped = book_for(publish_at(datetime(2024, 1, 11, 9, 0)).id)
        services.engine.cancel(dropped.id, actors.teacher)

        confirmed = services.engine.list_bookings(student_id=people.student, status="confirmed")

        assert [b.id for b in confirmed] == [kept.id]

    def test_list_rejects_unknown_status(self, services):
        with pytest.raises(ValidationError):
            services.engine.list_bookings(status="archived")
