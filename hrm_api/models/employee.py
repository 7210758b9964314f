from datetime import datetime
from decimal import Decimal

from hrm_api.extensions import db


class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id     = db.Column(db.Integer, db.ForeignKey("tenants.id", ondelete="RESTRICT"), nullable=False)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id", ondelete="RESTRICT"), nullable=True)
    reporting_manager_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)

    employee_code = db.Column(db.String(32), nullable=False)    # unique per tenant
    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=True)
    email      = db.Column(db.String(255), nullable=False)
    phone      = db.Column(db.String(20), nullable=True)

    date_of_birth  = db.Column(db.Date, nullable=True)
    gender         = db.Column(db.String(16), nullable=True)   # male/female/other
    marital_status = db.Column(db.String(16), nullable=True)   # single/married/...

    designation     = db.Column(db.String(120), nullable=True)
    employment_type = db.Column(db.String(20), default="full-time", nullable=False)  # full-time/part-time/contract
    joining_date    = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), default="active", nullable=False)             # active/inactive

    # salary breakdown; net_salary = basic + hra + allowances - deductions
    salary_basic      = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    salary_hra        = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    salary_allowances = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    salary_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_salary        = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    salary_currency   = db.Column(db.String(3), nullable=False, default="INR")

    # street, city, state, country, zipCode
    address = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "employee_code", name="uq_employee_tenant_code"),
        db.Index("ix_emp_tenant_id", "tenant_id"),
        db.Index("ix_emp_dept_id", "department_id"),
        db.Index("ix_emp_manager_id", "reporting_manager_id"),
    )

    department = db.relationship("Department", lazy="joined")
    reporting_manager = db.relationship("Employee", remote_side=[id])

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def salary_dict(self) -> dict:
        def _num(v):
            return float(v) if v is not None else 0.0
        return {
            "basic": _num(self.salary_basic),
            "hra": _num(self.salary_hra),
            "allowances": _num(self.salary_allowances),
            "deductions": _num(self.salary_deductions),
            "netSalary": _num(self.net_salary),
            "currency": self.salary_currency,
        }

    @staticmethod
    def expected_net(basic, hra, allowances, deductions) -> Decimal:
        return Decimal(str(basic)) + Decimal(str(hra)) + Decimal(str(allowances)) - Decimal(str(deductions))

    def __repr__(self) -> str:
        return f"<Employee id={self.id} code={self.employee_code!r}>"
