from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import db, Course, Role as RoleRow, User
from services import Actor, Role, build_services


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, user_id, message, link=None):
        self.sent.append((user_id, message, link))

    def messages_for(self, user_id):
        return [m for uid, m, _ in self.sent if uid == user_id]


@pytest.fixture
def clock():
    # Monday 2024-01-01 08:00 UTC
    return FrozenClock(datetime(2024, 1, 1, 8, 0))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture
def people(session_factory):
    session = session_factory()
    roles = {name: RoleRow(name=name) for name in ("STUDENT", "TEACHER", "ADMIN")}
    teacher = User(email="tanaka@example.com", name="Tanaka", roles=[roles["TEACHER"]])
    other_teacher = User(email="kimura@example.com", name="Kimura", roles=[roles["TEACHER"]])
    student = User(email="sato@example.com", name="Sato", roles=[roles["STUDENT"]])
    classmate = User(email="suzuki@example.com", name="Suzuki", roles=[roles["STUDENT"]])
    outsider = User(email="ito@example.com", name="Ito", roles=[roles["STUDENT"]])
    admin = User(email="admin@example.com", name="Admin", roles=[roles["ADMIN"]])
    session.add_all([teacher, other_teacher, student, classmate, outsider, admin])
    session.flush()

    course = Course(title="Algebra I", teacher_id=teacher.id, students=[student, classmate])
    session.add(course)
    session.commit()

    ids = SimpleNamespace(
        teacher=teacher.id,
        other_teacher=other_teacher.id,
        student=student.id,
        classmate=classmate.id,
        outsider=outsider.id,
        admin=admin.id,
        course=course.id,
    )
    session.close()
    return ids


@pytest.fixture
def actors(people):
    return SimpleNamespace(
        teacher=Actor(people.teacher, Role.TEACHER),
        other_teacher=Actor(people.other_teacher, Role.TEACHER),
        student=Actor(people.student, Role.STUDENT),
        classmate=Actor(people.classmate, Role.STUDENT),
        outsider=Actor(people.outsider, Role.STUDENT),
        admin=Actor(people.admin, Role.ADMIN),
    )


@pytest.fixture
def services(session_factory, notifier, clock, people):
    return build_services(session_factory, notifier=notifier, clock=clock)


@pytest.fixture
def publish_at(services, people):
    """Publish one lesson for the course teacher starting at ``start``."""
    def _publish(start, teacher_id=None):
        from services import SlotSpec

        [record] = services.availability.publish(
            teacher_id or people.teacher,
            [SlotSpec(start=start, end=start + timedelta(hours=1))],
        )
        return record
    return _publish


@pytest.fixture
def book_for(services, people):
    def _book(availability_id, student_id=None, name="Sato"):
        return services.engine.book(
            student_id=student_id or people.student,
            student_name=name,
            course_id=people.course,
            course_title="Algebra I",
            availability_id=availability_id,
        )
    return _book
