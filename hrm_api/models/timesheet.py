from datetime import datetime
from decimal import Decimal
from enum import Enum

from hrm_api.extensions import db

DAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


class TimesheetStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"


class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    client = db.Column(db.String(120), nullable=True)
    budget_hours = db.Column(db.Numeric(8, 2), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_project_tenant_name"),
    )


class Timesheet(db.Model):
    __tablename__ = "timesheets"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    week_start = db.Column(db.Date, nullable=False)   # Monday
    status = db.Column(db.String(20), nullable=False, default=TimesheetStatus.DRAFT.value)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "week_start", name="uq_timesheet_employee_week"),
    )

    employee = db.relationship("Employee")
    entries = db.relationship("TimesheetEntry", back_populates="timesheet",
                              cascade="all, delete-orphan", order_by="TimesheetEntry.id")

    @property
    def total_hours(self) -> Decimal:
        return sum((e.total for e in self.entries), Decimal("0"))

    def day_totals(self) -> list:
        return [sum((e.hours[i] for e in self.entries), Decimal("0")) for i in range(len(DAYS))]


class TimesheetEntry(db.Model):
    __tablename__ = "timesheet_entries"

    id = db.Column(db.Integer, primary_key=True)
    timesheet_id = db.Column(db.Integer, db.ForeignKey("timesheets.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False)
    mon = db.Column(db.Numeric(4, 2), nullable=False, default=0)
    tue = db.Column(db.Numeric(4, 2), nullable=False, default=0)
    wed = db.Column(db.Numeric(4, 2), nullable=False, default=0)
    thu = db.Column(db.Numeric(4, 2), nullable=False, default=0)
    fri = db.Column(db.Numeric(4, 2), nullable=False, default=0)
    sat = db.Column(db.Numeric(4, 2), nullable=False, default=0)
    sun = db.Column(db.Numeric(4, 2), nullable=False, default=0)

    timesheet = db.relationship("Timesheet", back_populates="entries")
    project = db.relationship("Project")

    @property
    def hours(self) -> list:
        return [Decimal(str(getattr(self, d) or 0)) for d in DAYS]

    @hours.setter
    def hours(self, values):
        for day, value in zip(DAYS, values):
            setattr(self, day, Decimal(str(value)))

    @property
    def total(self) -> Decimal:
        return sum(self.hours, Decimal("0"))
