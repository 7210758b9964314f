# hrm_api/services/records.py
from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal, InvalidOperation

from sqlalchemy import func

from hrm_api.common.errors import InvalidReference, NotFound, ValidationError
from hrm_api.extensions import db
from hrm_api.models.employee import Employee
from hrm_api.models.ids import TenantId


def get_scoped(model, record_id, tenant_id: TenantId):
    """Fetch a tenant-owned row; rows of other tenants look like missing ones."""
    obj = db.session.get(model, record_id)
    if obj is None or obj.tenant_id != tenant_id:
        raise NotFound(f"{model.__name__} {record_id} not found")
    return obj


def require_reference(model, record_id, tenant_id: TenantId, field: str):
    if record_id is None:
        raise ValidationError(f"{field} is required")
    try:
        obj = db.session.get(model, int(record_id))
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
    if obj is None or obj.tenant_id != tenant_id:
        raise InvalidReference(f"{field} {record_id} does not exist in this tenant")
    return obj


def require_employee(employee_id, tenant_id: TenantId, field: str = "employee_id") -> Employee:
    return require_reference(Employee, employee_id, tenant_id, field)


def parse_date(value, field: str):
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    for fmt in ("%Y-%m-%d", "%d-%m-%Y"):
        try:
            return datetime.strptime(str(value), fmt).date()
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")


def parse_amount(value, field: str, minimum=Decimal("0")) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValidationError(f"{field} must be a number")
    if amount < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return amount


def status_counts(model, tenant_id: TenantId) -> dict:
    rows = (
        db.session.query(model.status, func.count(model.id))
        .filter(model.tenant_id == tenant_id)
        .group_by(model.status)
        .all()
    )
    return {status: count for status, count in rows}
