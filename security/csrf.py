import hmac
from flask import request, jsonify, current_app

def require_csrf():
    """Double-submit check: the cookie set at sign-in must be echoed in a header."""
    cookie_token = request.cookies.get(current_app.config.get("CSRF_COOKIE_NAME", "csrf_token"))
    header_token = request.headers.get(current_app.config.get("CSRF_HEADER_NAME", "X-CSRF-Token"))
    if not cookie_token or not header_token or not hmac.compare_digest(cookie_token, header_token):
        return jsonify(error="CSRF validation failed"), 403
    return None
