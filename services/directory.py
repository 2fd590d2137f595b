from services.errors import NotFoundError
from services.records import CourseRecord, Role, UserProfile


class SqlDirectory:
    """Read-only lookups of user profiles and courses owned by other services."""

    def __init__(self, store):
        self._store = store

    def get_user_profile(self, user_id: int) -> UserProfile:
        with self._store.unit_of_work() as uow:
            user = uow.get_user(user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            role = user.primary_role
            return UserProfile(
                id=user.id,
                name=user.name,
                role=Role(role) if role else None,
            )

    def get_course(self, course_id: int) -> CourseRecord:
        with self._store.unit_of_work() as uow:
            course = uow.get_course(course_id)
            if course is None or not course.is_active:
                raise NotFoundError(f"Course {course_id} not found")
            return CourseRecord(
                id=course.id,
                title=course.title,
                teacher_id=course.teacher_id,
                description=course.description,
                student_ids=tuple(course.student_ids),
            )
