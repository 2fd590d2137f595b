from datetime import date, datetime, time, timedelta

import pytest

from services import RecurrenceRule, SlotSpec
from services.errors import NotFoundError, PermissionDeniedError, ValidationError


def _slot(start, minutes=60):
    return SlotSpec(start=start, end=start + timedelta(minutes=minutes))


class TestPublish:
    def test_publish_inserts_each_slot(self, services, people):
        records = services.availability.publish(people.teacher, [
            _slot(datetime(2024, 1, 10, 9, 0)),
            _slot(datetime(2024, 1, 10, 10, 0)),
        ])

        assert len(records) == 2
        assert {r.teacher_id for r in records} == {people.teacher}
        assert len({r.id for r in records}) == 2

    def test_overlapping_slots_are_accepted(self, services, people):
        services.availability.publish(people.teacher, [_slot(datetime(2024, 1, 10, 9, 0))])
        services.availability.publish(people.teacher, [_slot(datetime(2024, 1, 10, 9, 0))])

        assert len(services.availability.list_open(people.teacher)) == 2

    def test_end_before_start_is_rejected(self, services, people):
        start = datetime(2024, 1, 10, 9, 0)
        with pytest.raises(ValidationError):
            services.availability.publish(people.teacher, [SlotSpec(start=start, end=start)])

    def test_wrong_duration_rejects_whole_batch(self, services, people):
        with pytest.raises(ValidationError):
            services.availability.publish(people.teacher, [
                _slot(datetime(2024, 1, 10, 9, 0)),
                _slot(datetime(2024, 1, 10, 11, 0), minutes=90),
            ])

        assert services.availability.list_open(people.teacher) == []

    def test_empty_batch_publishes_nothing(self, services, people):
        assert services.availability.publish(people.teacher, []) == []


class TestPublishRecurring:
    def test_recurring_rule_publishes_expanded_batch(self, services, people):
        rule = RecurrenceRule(
            teacher_id=people.teacher,
            days_of_week=frozenset({1, 3}),
            time_of_day=time(9, 0),
            range_start=date(2024, 1, 7),
            range_end=date(2024, 1, 14),
        )

        records = services.availability.publish_recurring(rule)

        assert [r.start_time for r in records] == [
            datetime(2024, 1, 8, 9, 0),
            datetime(2024, 1, 10, 9, 0),
        ]

    def test_empty_day_set_is_a_validation_error(self, services, people):
        rule = RecurrenceRule(
            teacher_id=people.teacher,
            days_of_week=frozenset(),
            time_of_day=time(9, 0),
            range_start=date(2024, 1, 7),
            range_end=date(2024, 1, 14),
        )
        with pytest.raises(ValidationError):
            services.availability.publish_recurring(rule)


class TestListOpen:
    def test_ascending_and_future_only(self, services, people, clock):
        services.availability.publish(people.teacher, [
            _slot(datetime(2024, 1, 12, 9, 0)),
            _slot(datetime(2024, 1, 1, 7, 0)),  # already over at 08:00
            _slot(datetime(2024, 1, 3, 9, 0)),
        ])

        starts = [r.start_time for r in services.availability.list_open(people.teacher)]

        assert starts == [datetime(2024, 1, 3, 9, 0), datetime(2024, 1, 12, 9, 0)]

    def test_only_that_teachers_slots(self, services, people):
        services.availability.publish(people.other_teacher, [_slot(datetime(2024, 1, 3, 9, 0))])

        assert services.availability.list_open(people.teacher) == []


class TestRemove:
    def test_owner_can_remove(self, services, people, actors, publish_at):
        slot = publish_at(datetime(2024, 1, 3, 9, 0))

        services.availability.remove(slot.id, requested_by=actors.teacher)

        assert services.availability.list_open(people.teacher) == []

    def test_admin_can_remove(self, services, people, actors, publish_at):
        slot = publish_at(datetime(2024, 1, 3, 9, 0))

        services.availability.remove(slot.id, requested_by=actors.admin)

        assert services.availability.list_open(people.teacher) == []

    def test_other_teacher_cannot_remove(self, services, people, actors, publish_at):
        slot = publish_at(datetime(2024, 1, 3, 9, 0))

        with pytest.raises(PermissionDeniedError):
            services.availability.remove(slot.id, requested_by=actors.other_teacher)

        assert len(services.availability.list_open(people.teacher)) == 1

    def test_removing_consumed_slot_is_not_found(self, actors, publish_at, book_for, services):
        slot = publish_at(datetime(2024, 1, 3, 9, 0))
        book_for(slot.id)

        with pytest.raises(NotFoundError):
            services.availability.remove(slot.id, requested_by=actors.teacher)
