import logging
from datetime import timedelta
from typing import List, Sequence

from services.errors import NotFoundError, PermissionDeniedError, ValidationError
from services.records import Actor, AvailabilityRecord, RecurrenceRule, SlotSpec
from services.recurrence import expand
from utils.clock import utcnow

logger = logging.getLogger(__name__)


class AvailabilityStore:
    """Open lesson slots published by teachers."""

    def __init__(self, store, lesson_duration=timedelta(hours=1), clock=utcnow):
        self._store = store
        self._duration = lesson_duration
        self._clock = clock

    def _validate(self, slots: Sequence[SlotSpec]) -> None:
        for slot in slots:
            if slot.start is None or slot.end is None:
                raise ValidationError("Each slot needs a start and an end")
            if slot.end <= slot.start:
                raise ValidationError("Slot end must be after its start")
            if slot.end - slot.start != self._duration:
                minutes = int(self._duration.total_seconds() // 60)
                raise ValidationError(f"Slots must last exactly {minutes} minutes")

    def publish(self, teacher_id: int, slots: Sequence[SlotSpec]) -> List[AvailabilityRecord]:
        # Overlapping and duplicate slots are accepted as published
        self._validate(slots)
        if not slots:
            return []
        with self._store.unit_of_work() as uow:
            rows = uow.add_availabilities(teacher_id, slots)
            records = [AvailabilityRecord.from_row(r) for r in rows]
        logger.info("Published %d availability slot(s) for teacher %s", len(records), teacher_id)
        return records

    def publish_recurring(self, rule: RecurrenceRule) -> List[AvailabilityRecord]:
        if not rule.days_of_week:
            raise ValidationError("Pick at least one day of the week")
        return self.publish(rule.teacher_id, expand(rule, self._duration))

    def list_open(self, teacher_id: int) -> List[AvailabilityRecord]:
        now = self._clock()
        with self._store.unit_of_work() as uow:
            return [AvailabilityRecord.from_row(r) for r in uow.open_availabilities(teacher_id, now)]

    def remove(self, availability_id: int, requested_by: Actor) -> None:
        with self._store.unit_of_work() as uow:
            row = uow.get_availability(availability_id)
            if row is None:
                raise NotFoundError("Availability not found")
            if not requested_by.is_admin and row.teacher_id != requested_by.id:
                raise PermissionDeniedError("Only the owning teacher or an admin can remove this slot")
            if not uow.consume_availability(availability_id):
                raise NotFoundError("Availability not found")
        logger.info("Availability %s removed by user %s", availability_id, requested_by.id)
