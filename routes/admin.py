from flask import Blueprint, jsonify, g, request

from security.rbac import current_actor, require_roles
from utils.audit import log_event
from utils.timeparse import parse_iso_datetime
from routes.common import int_field, json_body, reservations

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

# ---------- ADMIN: book a student without a published slot ----------
@admin_bp.post("/bookings/manual")
@require_roles("ADMIN")
def manual_booking():
    data = json_body()
    booking = reservations().engine.manual_book(
        current_actor(),
        student_id=int_field(data, "student_id"),
        course_id=int_field(data, "course_id"),
        start_time=parse_iso_datetime(data.get("start_time"), "start_time"),
    )
    log_event("ADMIN_MANUAL_BOOKING", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"student_id": booking.student_id, "start_time": booking.start_time})
    return jsonify(booking.to_dict()), 201


# ---------- ADMIN: list all bookings ----------
@admin_bp.get("/bookings")
@require_roles("ADMIN")
def list_all_bookings():
    rows = reservations().engine.list_bookings(
        student_id=request.args.get("student_id", type=int),
        teacher_id=request.args.get("teacher_id", type=int),
        status=request.args.get("status"),
    )
    return jsonify([b.to_dict() for b in rows]), 200
