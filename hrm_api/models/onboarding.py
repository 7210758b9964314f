from datetime import datetime
from enum import Enum

from hrm_api.extensions import db


class CaseStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class OnboardingCase(db.Model):
    __tablename__ = "onboarding_cases"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    buddy_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    position = db.Column(db.String(120), nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    progress = db.Column(db.Integer, nullable=False, default=0)   # 0..100
    status = db.Column(db.String(20), nullable=False, default=CaseStatus.PENDING.value)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    employee = db.relationship("Employee", foreign_keys=[employee_id])
    buddy = db.relationship("Employee", foreign_keys=[buddy_id])


class OffboardingCase(db.Model):
    __tablename__ = "offboarding_cases"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.String(120), nullable=True)
    last_day = db.Column(db.Date, nullable=True)
    progress = db.Column(db.Integer, nullable=False, default=0)   # 0..100
    status = db.Column(db.String(20), nullable=False, default=CaseStatus.PENDING.value)
    # clearance checklist, rendered as "done/total"
    clearance_done = db.Column(db.Integer, nullable=False, default=0)
    clearance_total = db.Column(db.Integer, nullable=False, default=5)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    employee = db.relationship("Employee")

    @property
    def clearance(self) -> str:
        return f"{self.clearance_done}/{self.clearance_total}"
