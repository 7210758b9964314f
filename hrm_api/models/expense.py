from datetime import datetime
from decimal import Decimal
from enum import Enum

from hrm_api.extensions import db


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ExpenseReportStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"


EXPENSE_CATEGORIES = ("travel", "meals", "transport", "lodging", "supplies", "training", "other")


class ExpenseReport(db.Model):
    __tablename__ = "expense_reports"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    report_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=ExpenseReportStatus.DRAFT.value)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    employee = db.relationship("Employee")
    items = db.relationship("ExpenseItem", back_populates="report", order_by="ExpenseItem.id")

    @property
    def total(self) -> Decimal:
        return sum((Decimal(str(i.amount)) for i in self.items), Decimal("0"))


class ExpenseItem(db.Model):
    __tablename__ = "expense_items"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    report_id = db.Column(db.Integer, db.ForeignKey("expense_reports.id", ondelete="SET NULL"), nullable=True, index=True)
    category = db.Column(db.String(30), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")
    expense_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=ExpenseStatus.PENDING.value)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    employee = db.relationship("Employee")
    report = db.relationship("ExpenseReport", back_populates="items")
