from utils.clock import utcnow
from models.db import db

# association table for many-to-many User <-> Role
user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id"), primary_key=True),
)

# Most privileged first; a user acts with the first one they hold
ROLE_PRECEDENCE = ("ADMIN", "TEACHER", "STUDENT")

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    roles = db.relationship("Role", secondary=user_roles, back_populates="users", lazy="selectin")

    @property
    def role_names(self):
        return {r.name for r in self.roles}

    @property
    def primary_role(self):
        names = self.role_names
        for name in ROLE_PRECEDENCE:
            if name in names:
                return name
        return None

class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)  # STUDENT, TEACHER, ADMIN

    users = db.relationship("User", secondary=user_roles, back_populates="roles")
