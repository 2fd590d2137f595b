from .health import health_bp
from .availability import availability_bp
from .booking import booking_bp
from .admin import admin_bp
from .notifications import notifications_bp
