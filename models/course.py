from utils.clock import utcnow
from models.db import db

# association table for many-to-many Course <-> enrolled students
course_students = db.Table(
    "course_students",
    db.Column("course_id", db.Integer, db.ForeignKey("courses.id"), primary_key=True),
    db.Column("student_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
)

class Course(db.Model):
    __tablename__ = "courses"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text, nullable=True)

    teacher_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    students = db.relationship("User", secondary=course_students, lazy="selectin")

    @property
    def student_ids(self):
        return [s.id for s in self.students]
