# hrm_api/blueprints/expenses.py
from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import desc, func

from hrm_api.common.auth import requires_perms, tenant_required, current_tenant_id
from hrm_api.common.errors import InvalidTransition, ValidationError
from hrm_api.common.http import ok, iso, json_body
from hrm_api.common.paging import paginate
from hrm_api.extensions import db
from hrm_api.models.expense import EXPENSE_CATEGORIES, ExpenseItem, ExpenseReport, ExpenseReportStatus
from hrm_api.services.lifecycle import transition
from hrm_api.services.records import (
    get_scoped, parse_amount, parse_date, require_employee, require_reference, status_counts,
)

bp = Blueprint("expenses", __name__, url_prefix="/api/v1/expenses")


def _item_row(x: ExpenseItem):
    return {
        "id": x.id,
        "employee_id": x.employee_id,
        "employee_name": x.employee.full_name if x.employee else None,
        "report_id": x.report_id,
        "category": x.category,
        "description": x.description,
        "amount": float(x.amount),
        "currency": x.currency,
        "date": iso(x.expense_date),
        "status": x.status,
        "created_at": iso(x.created_at),
        "updated_at": iso(x.updated_at),
    }


def _report_row(r: ExpenseReport, with_items=False):
    out = {
        "id": r.id,
        "employee_id": r.employee_id,
        "employee_name": r.employee.full_name if r.employee else None,
        "title": r.title,
        "date": iso(r.report_date),
        "status": r.status,
        "items": len(r.items),
        "total": float(r.total),
        "created_at": iso(r.created_at),
        "updated_at": iso(r.updated_at),
    }
    if with_items:
        out["expenses"] = [_item_row(i) for i in r.items]
    return out


# ---------- items ----------
@bp.get("/items")
@tenant_required
@requires_perms("expenses.read")
def list_items():
    q = ExpenseItem.query.filter(ExpenseItem.tenant_id == current_tenant_id())
    emp_id = request.args.get("employee_id", type=int)
    if emp_id:
        q = q.filter(ExpenseItem.employee_id == emp_id)
    status = request.args.get("status")
    if status:
        q = q.filter(ExpenseItem.status == status)
    items, meta = paginate(q.order_by(desc(ExpenseItem.expense_date), desc(ExpenseItem.id)))
    return ok([_item_row(i) for i in items], **meta)


@bp.post("/items")
@tenant_required
@requires_perms("expenses.create")
def create_item():
    d = json_body()
    tid = current_tenant_id()
    emp = require_employee(d.get("employee_id"), tid)

    category = (d.get("category") or "").strip().lower()
    if category not in EXPENSE_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(EXPENSE_CATEGORIES)}")

    report = None
    if d.get("report_id") is not None:
        report = require_reference(ExpenseReport, d["report_id"], tid, "report_id")
        if report.employee_id != emp.id:
            raise ValidationError("Expense and report belong to different employees")
        if report.status != ExpenseReportStatus.DRAFT.value:
            raise InvalidTransition(
                f"Expense report {report.id} is {report.status}; items can only be added to a draft report"
            )

    item = ExpenseItem(
        tenant_id=tid,
        employee_id=emp.id,
        report_id=report.id if report else None,
        category=category,
        description=d.get("description"),
        amount=parse_amount(d.get("amount"), "amount", minimum=0),
        currency=(d.get("currency") or "USD").upper(),
        expense_date=parse_date(d.get("date"), "date"),
    )
    db.session.add(item)
    db.session.commit()
    return ok(_item_row(item), 201)


@bp.post("/items/<int:item_id>/status")
@tenant_required
@requires_perms("expenses.approve")
def set_item_status(item_id: int):
    item = get_scoped(ExpenseItem, item_id, current_tenant_id())
    transition(item, json_body().get("status"))
    db.session.commit()
    return ok(_item_row(item))


# ---------- reports ----------
@bp.get("/reports")
@tenant_required
@requires_perms("expenses.read")
def list_reports():
    q = ExpenseReport.query.filter(ExpenseReport.tenant_id == current_tenant_id())
    status = request.args.get("status")
    if status:
        q = q.filter(ExpenseReport.status == status)
    items, meta = paginate(q.order_by(desc(ExpenseReport.report_date), desc(ExpenseReport.id)))
    return ok([_report_row(r) for r in items], **meta)


@bp.get("/reports/<int:report_id>")
@tenant_required
@requires_perms("expenses.read")
def get_report(report_id: int):
    return ok(_report_row(get_scoped(ExpenseReport, report_id, current_tenant_id()), with_items=True))


@bp.post("/reports")
@tenant_required
@requires_perms("expenses.create")
def create_report():
    d = json_body()
    tid = current_tenant_id()
    emp = require_employee(d.get("employee_id"), tid)
    title = (d.get("title") or "").strip()
    if not title:
        raise ValidationError("title is required")

    # only loose items of the same employee; items already filed stay where they are
    items = []
    for item_id in d.get("item_ids") or []:
        item = get_scoped(ExpenseItem, item_id, tid)
        if item.employee_id != emp.id:
            raise ValidationError(f"Expense {item_id} belongs to another employee")
        if item.report_id is not None:
            raise ValidationError(f"Expense {item_id} already belongs to report {item.report_id}")
        if item not in items:
            items.append(item)

    report = ExpenseReport(tenant_id=tid, employee_id=emp.id, title=title,
                           report_date=parse_date(d.get("date"), "date"))
    db.session.add(report)
    db.session.flush()
    for item in items:
        item.report_id = report.id
    db.session.commit()
    return ok(_report_row(report, with_items=True), 201)


@bp.post("/reports/<int:report_id>/status")
@tenant_required
@requires_perms("expenses.approve")
def set_report_status(report_id: int):
    report = get_scoped(ExpenseReport, report_id, current_tenant_id())
    transition(report, json_body().get("status"))
    db.session.commit()
    return ok(_report_row(report))


@bp.get("/summary")
@tenant_required
@requires_perms("expenses.read")
def summary():
    tid = current_tenant_id()
    amounts = dict(
        db.session.query(ExpenseItem.status, func.sum(ExpenseItem.amount))
        .filter(ExpenseItem.tenant_id == tid)
        .group_by(ExpenseItem.status)
        .all()
    )
    return ok({
        "items": status_counts(ExpenseItem, tid),
        "amounts": {k: float(v or 0) for k, v in amounts.items()},
        "reports": status_counts(ExpenseReport, tid),
    })
