from datetime import date, datetime, time

from services.errors import ValidationError

def parse_iso_datetime(value, field: str) -> datetime:
    # Expect ISO format like "2026-01-20T18:00:00", naive UTC
    if not value:
        raise ValidationError(f"{field} is required")
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use ISO e.g. 2026-01-20T18:00:00")
    if parsed.tzinfo is not None:
        raise ValidationError(f"{field} must be a naive UTC timestamp")
    return parsed

def parse_iso_date(value, field: str) -> date:
    if not value:
        raise ValidationError(f"{field} is required")
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use YYYY-MM-DD")

def parse_time_of_day(value, field: str) -> time:
    if not value:
        raise ValidationError(f"{field} is required")
    try:
        return time.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use HH:MM")
