from datetime import datetime

import bcrypt

from hrm_api.extensions import db

ROLE_SUPER_ADMIN = "super_admin"
ROLE_TENANT_ADMIN = "tenant_admin"
ROLE_HR = "hr"
ROLE_MANAGER = "manager"
ROLE_EMPLOYEE = "employee"

BCRYPT_ROUNDS = 12


def _prepare_password(raw: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return raw.encode("utf-8")[:72]


class User(db.Model):
    __tablename__ = "users"

    id            = db.Column(db.Integer, primary_key=True)
    tenant_id     = db.Column(db.Integer, db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    email         = db.Column(db.String(255), index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name    = db.Column(db.String(80), nullable=False)
    last_name     = db.Column(db.String(80), nullable=True)
    role          = db.Column(db.String(32), nullable=False, default=ROLE_EMPLOYEE)
    permissions   = db.Column(db.JSON, nullable=False, default=list)
    is_active     = db.Column(db.Boolean, nullable=False, default=True)
    refresh_tokens = db.Column(db.JSON, nullable=False, default=list)
    created_at    = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at    = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "email", name="uq_user_tenant_email"),
    )

    tenant = db.relationship("Tenant")

    # --- helpers ---
    def set_password(self, raw: str, rounds: int = BCRYPT_ROUNDS):
        salt = bcrypt.gensalt(rounds=rounds)
        self.password_hash = bcrypt.hashpw(_prepare_password(raw), salt).decode("utf-8")

    def check_password(self, raw: str) -> bool:
        try:
            return bcrypt.checkpw(_prepare_password(raw), self.password_hash.encode("utf-8"))
        except ValueError:
            return False

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"
