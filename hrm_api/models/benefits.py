from datetime import datetime
from enum import Enum

from hrm_api.extensions import db


class EnrollmentStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"


class BenefitPlan(db.Model):
    __tablename__ = "benefit_plans"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    plan_type = db.Column(db.String(20), nullable=False)        # health/retirement/wellness/...
    coverage = db.Column(db.String(40), nullable=True)          # Family/Individual
    premium = db.Column(db.Numeric(12, 2), nullable=True)       # monthly premium (health)
    match_pct = db.Column(db.Numeric(5, 2), nullable=True)      # employer match (retirement)
    benefit = db.Column(db.String(120), nullable=True)          # free text, e.g. "$500/year"
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_benefit_plan_tenant_name"),
    )


class BenefitEnrollment(db.Model):
    __tablename__ = "benefit_enrollments"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = db.Column(db.Integer, db.ForeignKey("benefit_plans.id", ondelete="RESTRICT"), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=EnrollmentStatus.PENDING.value)
    start_date = db.Column(db.Date, nullable=True)
    dependents = db.Column(db.Integer, nullable=False, default=0)
    contribution_pct = db.Column(db.Numeric(5, 2), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    employee = db.relationship("Employee")
    plan = db.relationship("BenefitPlan", backref=db.backref("enrollments", lazy="dynamic"))
