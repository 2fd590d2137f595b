from flask import Blueprint, jsonify, g

from models import db
from models.notification import Notification
from utils.auth_context import login_required

notifications_bp = Blueprint("notifications", __name__, url_prefix="/notifications")

@notifications_bp.get("/me")
@login_required
def my_notifications():
    rows = (
        Notification.query
        .filter_by(user_id=g.user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(20)
        .all()
    )
    return jsonify([
        {
            "id": n.id,
            "message": n.message,
            "link": n.link,
            "is_read": n.is_read,
            "created_at": n.created_at.isoformat(),
        }
        for n in rows
    ]), 200

@notifications_bp.post("/read")
@login_required
def mark_all_read():
    updated = (
        Notification.query
        .filter_by(user_id=g.user.id, is_read=False)
        .update({"is_read": True}, synchronize_session=False)
    )
    db.session.commit()
    return jsonify(updated=updated), 200
