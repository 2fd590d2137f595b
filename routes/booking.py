from flask import Blueprint, request, jsonify, g

from security.rbac import current_actor, require_roles
from services.errors import NotFoundError, SlotUnavailableError
from utils.audit import log_event
from utils.auth_context import login_required
from utils.timeparse import parse_iso_datetime
from routes.common import int_field, json_body, reservations

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")

# ---------- STUDENTS: book an open slot (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("")
@require_roles("STUDENT")
def create_booking():
    data = json_body()
    course_id = int_field(data, "course_id")
    availability_id = int_field(data, "availability_id")
    core = reservations()

    try:
        booking = core.engine.book(
            student_id=g.user.id,
            student_name=g.user.name,
            course_id=course_id,
            course_title=None,
            availability_id=availability_id,
        )
    except SlotUnavailableError as exc:
        log_event("BOOKING_FAIL_SLOT_TAKEN", user_id=g.user.id, entity="availability", entity_id=availability_id)
        # Lost races are routine: hand back a fresh listing to choose from
        course = core.directory.get_course(course_id)
        open_slots = core.availability.list_open(course.teacher_id)
        return jsonify(error=exc.message, open_slots=[s.to_dict() for s in open_slots]), 409

    log_event("BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"availability_id": availability_id})
    return jsonify(booking.to_dict()), 201


# ---------- STUDENTS: request a time for teacher approval ----------
@booking_bp.post("/requests")
@require_roles("STUDENT")
def request_booking():
    data = json_body()
    booking = reservations().engine.request_booking(
        student_id=g.user.id,
        course_id=int_field(data, "course_id"),
        start_time=parse_iso_datetime(data.get("start_time"), "start_time"),
    )
    log_event("BOOKING_REQUEST", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(booking.to_dict()), 201


# ---------- TEACHER/ADMIN: answer a request ----------
@booking_bp.post("/<int:booking_id>/confirm")
@require_roles("TEACHER", "ADMIN")
def confirm_booking(booking_id: int):
    booking = reservations().engine.confirm(booking_id, current_actor())
    log_event("BOOKING_CONFIRM", user_id=g.user.id, entity="booking", entity_id=booking_id)
    return jsonify(booking.to_dict()), 200


@booking_bp.post("/<int:booking_id>/decline")
@require_roles("TEACHER", "ADMIN")
def decline_booking(booking_id: int):
    reason = json_body().get("reason")
    booking = reservations().engine.decline(booking_id, current_actor(), reason=reason)
    log_event("BOOKING_DECLINE", user_id=g.user.id, entity="booking", entity_id=booking_id,
              metadata={"reason": booking.cancel_reason})
    return jsonify(booking.to_dict()), 200


# ---------- ANY PARTICIPANT: cancel (policy window for students) ----------
@booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    reason = json_body().get("reason")
    booking = reservations().engine.cancel(booking_id, current_actor(), reason=reason)
    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking_id,
              metadata={"reason": booking.cancel_reason})
    return jsonify(booking.to_dict()), 200


# ---------- TEACHER/ADMIN: feedback after the lesson ----------
@booking_bp.post("/<int:booking_id>/feedback")
@require_roles("TEACHER", "ADMIN")
def submit_feedback(booking_id: int):
    data = json_body()
    booking = reservations().engine.submit_feedback(
        booking_id,
        current_actor(),
        rating=data.get("rating"),
        comment=data.get("comment") or "",
    )
    log_event("BOOKING_FEEDBACK", user_id=g.user.id, entity="booking", entity_id=booking_id)
    return jsonify(booking.to_dict()), 200


# ---------- SIGNED IN: my bookings ----------
@booking_bp.get("/me")
@login_required
def my_bookings():
    status = request.args.get("status")  # pending/confirmed/cancelled/completed
    engine = reservations().engine
    roles = g.user.role_names
    if "TEACHER" in roles:
        rows = engine.list_bookings(teacher_id=g.user.id, status=status)
    elif "ADMIN" in roles:
        # admins hold no bookings of their own; same listing as /admin/bookings
        rows = engine.list_bookings(status=status)
    else:
        rows = engine.list_bookings(student_id=g.user.id, status=status)
    return jsonify([b.to_dict() for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = reservations().engine.get_booking(booking_id)
    actor = current_actor()
    if not actor.is_admin and not booking.involves(actor.id):
        # Same answer as a missing booking so ids cannot be probed
        raise NotFoundError("Booking not found")
    return jsonify(booking.to_dict()), 200
