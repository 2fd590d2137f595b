from flask import Blueprint, jsonify, g

from security.rbac import current_actor, require_roles
from services.errors import PermissionDeniedError, ValidationError
from services.records import RecurrenceRule, SlotSpec
from utils.audit import log_event
from utils.auth_context import login_required
from utils.timeparse import parse_iso_date, parse_iso_datetime, parse_time_of_day
from routes.common import int_field, json_body, reservations

availability_bp = Blueprint("availability", __name__)

def _target_teacher(data: dict) -> int:
    # Teachers publish for themselves; admins may publish for any teacher
    actor = current_actor()
    teacher_id = int_field(data, "teacher_id", required=False)
    if teacher_id is None or teacher_id == actor.id:
        if not actor.is_admin and "TEACHER" not in g.user.role_names:
            raise PermissionDeniedError("Only teachers can publish their own availability")
        return actor.id
    if not actor.is_admin:
        raise PermissionDeniedError("Teachers can only publish their own availability")
    return teacher_id

# ---------- TEACHER/ADMIN: publish slots ----------
@availability_bp.post("/availability")
@require_roles("TEACHER", "ADMIN")
def publish_availability():
    data = json_body()
    teacher_id = _target_teacher(data)
    raw_slots = data.get("slots")
    if raw_slots is None and data.get("start_time"):
        raw_slots = [data]
    if not isinstance(raw_slots, list) or not raw_slots:
        raise ValidationError("slots must be a non-empty list of {start_time, end_time}")

    slots = []
    for item in raw_slots:
        if not isinstance(item, dict):
            raise ValidationError("Each slot must be an object with start_time and end_time")
        slots.append(SlotSpec(
            start=parse_iso_datetime(item.get("start_time"), "start_time"),
            end=parse_iso_datetime(item.get("end_time"), "end_time"),
        ))

    records = reservations().availability.publish(teacher_id, slots)
    log_event("AVAILABILITY_PUBLISH", user_id=g.user.id, entity="teacher", entity_id=teacher_id,
              metadata={"count": len(records)})
    return jsonify(slots=[r.to_dict() for r in records]), 201


@availability_bp.post("/availability/recurring")
@require_roles("TEACHER", "ADMIN")
def publish_recurring_availability():
    data = json_body()
    teacher_id = _target_teacher(data)
    days = data.get("days_of_week")
    if not isinstance(days, list) or any(isinstance(d, bool) or not isinstance(d, int) for d in days):
        raise ValidationError("days_of_week must be a list of integers 0-6 (0 = Sunday)")

    rule = RecurrenceRule(
        teacher_id=teacher_id,
        days_of_week=frozenset(days),
        time_of_day=parse_time_of_day(data.get("time_of_day"), "time_of_day"),
        range_start=parse_iso_date(data.get("range_start"), "range_start"),
        range_end=parse_iso_date(data.get("range_end"), "range_end"),
    )
    records = reservations().availability.publish_recurring(rule)
    log_event("AVAILABILITY_PUBLISH_RECURRING", user_id=g.user.id, entity="teacher", entity_id=teacher_id,
              metadata={"count": len(records), "days_of_week": sorted(rule.days_of_week)})
    return jsonify(slots=[r.to_dict() for r in records]), 201


# ---------- ANYONE SIGNED IN: open slots of a teacher ----------
@availability_bp.get("/teachers/<int:teacher_id>/availability")
@login_required
def list_open_slots(teacher_id: int):
    records = reservations().availability.list_open(teacher_id)
    return jsonify([r.to_dict() for r in records]), 200


# ---------- OWNER/ADMIN: remove an unbooked slot ----------
@availability_bp.delete("/availability/<int:availability_id>")
@require_roles("TEACHER", "ADMIN")
def remove_availability(availability_id: int):
    reservations().availability.remove(availability_id, requested_by=current_actor())
    log_event("AVAILABILITY_REMOVE", user_id=g.user.id, entity="availability", entity_id=availability_id)
    return jsonify(message="Availability removed"), 200
