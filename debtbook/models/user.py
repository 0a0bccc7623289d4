from uuid import uuid4
from datetime import datetime, timezone
from flask_login import UserMixin
from ..extensions import db, login_manager


def _uuid() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(128), default="")
    phone_number = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    role = db.relationship(
        "RoleAssignment", uselist=False, back_populates="user",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name or "",
            "phone_number": self.phone_number,
            "role": self.role.role if self.role else None,
            "created_at": self.created_at,
        }


class RoleAssignment(db.Model):
    # одна роль на пользователя: viewer|staff|admin
    __tablename__ = "roles"

    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
    )
    role = db.Column(db.String(16), nullable=False, default="viewer")

    user = db.relationship("User", back_populates="role")

    __table_args__ = (
        db.CheckConstraint("role IN ('viewer','staff','admin')", name="ck_roles_role"),
    )


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, str(user_id))
