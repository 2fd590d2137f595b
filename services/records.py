"""
Typed records crossing the reservation core boundary.

ORM rows never leave ``services.store``; they are converted here into frozen
dataclasses so callers cannot mutate ledger state behind a unit of work.
"""
import enum
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import FrozenSet, Optional, Tuple

from services.errors import ValidationError


class Role(str, enum.Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.CANCELLED, BookingStatus.COMPLETED)


@dataclass(frozen=True)
class Actor:
    id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class SlotSpec:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class RecurrenceRule:
    teacher_id: int
    days_of_week: FrozenSet[int]  # 0 = Sunday ... 6 = Saturday
    time_of_day: time
    range_start: date
    range_end: date


@dataclass(frozen=True)
class AvailabilityRecord:
    id: int
    teacher_id: int
    start_time: datetime
    end_time: datetime

    @classmethod
    def from_row(cls, row) -> "AvailabilityRecord":
        return cls(
            id=row.id,
            teacher_id=row.teacher_id,
            start_time=row.start_time,
            end_time=row.end_time,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
        }


@dataclass(frozen=True)
class Feedback:
    rating: int
    comment: str = ""


@dataclass(frozen=True)
class BookingRecord:
    id: int
    student_id: int
    student_name: str
    teacher_id: int
    course_id: int
    course_title: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    availability_id: Optional[int] = None
    feedback: Optional[Feedback] = None
    cancellation_deadline: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    cancelled_by: Optional[int] = None
    reminder_sent: bool = False

    @classmethod
    def from_row(cls, row) -> "BookingRecord":
        try:
            status = BookingStatus(row.status)
        except ValueError:
            raise ValidationError(f"Booking {row.id} has unknown status {row.status!r}")
        feedback = None
        if row.feedback_rating is not None:
            feedback = Feedback(rating=row.feedback_rating, comment=row.feedback_comment or "")
        return cls(
            id=row.id,
            student_id=row.student_id,
            student_name=row.student_name,
            teacher_id=row.teacher_id,
            course_id=row.course_id,
            course_title=row.course_title,
            start_time=row.start_time,
            end_time=row.end_time,
            status=status,
            availability_id=row.availability_id,
            feedback=feedback,
            cancellation_deadline=row.cancellation_deadline,
            cancel_reason=row.cancel_reason,
            cancelled_by=row.cancelled_by,
            reminder_sent=bool(row.reminder_sent),
        )

    def involves(self, user_id: int) -> bool:
        return user_id in (self.student_id, self.teacher_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "teacher_id": self.teacher_id,
            "course_id": self.course_id,
            "course_title": self.course_title,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "status": self.status.value,
            "availability_id": self.availability_id,
            "feedback": (
                {"rating": self.feedback.rating, "comment": self.feedback.comment}
                if self.feedback else None
            ),
            "cancellation_deadline": (
                self.cancellation_deadline.isoformat() if self.cancellation_deadline else None
            ),
            "cancel_reason": self.cancel_reason,
        }


@dataclass(frozen=True)
class CourseRecord:
    id: int
    title: str
    teacher_id: int
    description: Optional[str] = None
    student_ids: Tuple[int, ...] = field(default_factory=tuple)

    def has_student(self, student_id: int) -> bool:
        return student_id in self.student_ids


@dataclass(frozen=True)
class UserProfile:
    id: int
    name: str
    role: Optional[Role]
