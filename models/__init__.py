from .db import db
from .user import User, Role, user_roles
from .course import Course, course_students
from .availability import Availability
from .booking import Booking
from .notification import Notification
from .audit_log import AuditLog
from .session import Session
