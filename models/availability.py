from utils.clock import utcnow
from models.db import db

class Availability(db.Model):
    __tablename__ = "availabilities"

    id = db.Column(db.Integer, primary_key=True)

    teacher_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("end_time > start_time", name="ck_availability_time_order"),
        # ids of consumed slots stay unique on bookings, so they are never reissued
        {"sqlite_autoincrement": True},
    )
