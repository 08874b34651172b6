from __future__ import annotations

from ..extensions import db
from shopfloor.time_utils import to_utc_z


class User(db.Model):
    """
    Staff member that can be attached to stores.

    No access control is built on this table; role is a free-form label.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=True)
    role = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=False)

    # bcrypt hash, never the plain password
    password_hash = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
        }
