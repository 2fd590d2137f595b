from datetime import timedelta

from .availability import AvailabilityStore
from .directory import SqlDirectory
from .errors import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ReservationError,
    SlotUnavailableError,
    ValidationError,
)
from .notifications import DatabaseNotifier, NotificationEmitter
from .records import (
    Actor,
    AvailabilityRecord,
    BookingRecord,
    BookingStatus,
    CourseRecord,
    RecurrenceRule,
    Role,
    SlotSpec,
    UserProfile,
)
from .reminders import ReminderSweep
from .reservations import ReservationEngine
from .store import ReservationStore
from utils.clock import utcnow


class ReservationServices:
    """The wired reservation core handed to the API layer."""

    def __init__(self, store, directory, availability, engine, reminders):
        self.store = store
        self.directory = directory
        self.availability = availability
        self.engine = engine
        self.reminders = reminders


def build_services(
    session_factory,
    notifier=None,
    lesson_duration_minutes=60,
    cancel_cutoff_hours=24,
    restore_slot_on_cancel=True,
    reminder_window_hours=24,
    clock=utcnow,
) -> ReservationServices:
    store = ReservationStore(session_factory)
    directory = SqlDirectory(store)
    duration = timedelta(minutes=lesson_duration_minutes)
    emitter = NotificationEmitter(notifier or DatabaseNotifier(store))
    return ReservationServices(
        store=store,
        directory=directory,
        availability=AvailabilityStore(store, lesson_duration=duration, clock=clock),
        engine=ReservationEngine(
            store,
            directory,
            emitter,
            lesson_duration=duration,
            cancel_cutoff=timedelta(hours=cancel_cutoff_hours),
            restore_slot_on_cancel=restore_slot_on_cancel,
            clock=clock,
        ),
        reminders=ReminderSweep(
            store, emitter, window=timedelta(hours=reminder_window_hours), clock=clock,
        ),
    )
