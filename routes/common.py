from flask import current_app, request

from services.errors import ValidationError

def reservations():
    """The reservation core wired by create_app."""
    return current_app.extensions["reservations"]

def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}

def int_field(data: dict, key: str, required: bool = True):
    value = data.get(key)
    if value is None or value == "":
        if required:
            raise ValidationError(f"{key} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer")
