from datetime import datetime

from hrm_api.extensions import db

DEFAULT_SETTINGS = {
    "timezone": "UTC",
    "dateFormat": "YYYY-MM-DD",
    "currency": "USD",
    "language": "en",
    "workingDays": [1, 2, 3, 4, 5],
    "workingHours": {"start": "09:00", "end": "18:00"},
}


class Tenant(db.Model):
    __tablename__ = "tenants"

    id     = db.Column(db.Integer, primary_key=True)
    name   = db.Column(db.String(255), nullable=False)
    slug   = db.Column(db.String(64), unique=True, index=True, nullable=False)
    domain = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), default="active", nullable=False)  # active/suspended

    # timezone, dateFormat, currency, language, workingDays, workingHours
    settings = db.Column(db.JSON, nullable=False, default=lambda: dict(DEFAULT_SETTINGS))
    # plan, maxEmployees, features, endDate (ISO date string)
    subscription = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    @property
    def subscription_end(self):
        raw = (self.subscription or {}).get("endDate")
        if not raw:
            return None
        return datetime.fromisoformat(raw)

    @property
    def max_employees(self):
        return (self.subscription or {}).get("maxEmployees")

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} slug={self.slug!r}>"
