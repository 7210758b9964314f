# hrm_api/blueprints/timesheets.py
from __future__ import annotations

from decimal import Decimal

from flask import Blueprint, request
from sqlalchemy import desc

from hrm_api.common.auth import requires_perms, tenant_required, current_tenant_id
from hrm_api.common.errors import DuplicateKey, ValidationError
from hrm_api.common.http import ok, iso, json_body
from hrm_api.common.paging import paginate
from hrm_api.extensions import db
from hrm_api.models.timesheet import DAYS, Project, Timesheet, TimesheetEntry
from hrm_api.services.lifecycle import transition
from hrm_api.services.records import (
    get_scoped, parse_amount, parse_date, require_employee, require_reference,
)

bp = Blueprint("timesheets", __name__, url_prefix="/api/v1/timesheets")

MAX_DAY_HOURS = Decimal("24")


def _project_row(p: Project):
    return {
        "id": p.id,
        "name": p.name,
        "client": p.client,
        "budget_hours": float(p.budget_hours) if p.budget_hours is not None else None,
        "is_active": p.is_active,
    }


def _sheet_row(t: Timesheet):
    return {
        "id": t.id,
        "employee_id": t.employee_id,
        "employee_name": t.employee.full_name if t.employee else None,
        "week_start": iso(t.week_start),
        "status": t.status,
        "entries": [
            {
                "project_id": e.project_id,
                "project": e.project.name if e.project else None,
                "hours": [float(h) for h in e.hours],
                "total": float(e.total),
            }
            for e in t.entries
        ],
        "day_totals": [float(h) for h in t.day_totals()],
        "total_hours": float(t.total_hours),
        "created_at": iso(t.created_at),
        "updated_at": iso(t.updated_at),
    }


def _hours(values, idx: int):
    if not isinstance(values, list) or len(values) != len(DAYS):
        raise ValidationError(f"entries[{idx}].hours must list {len(DAYS)} values (mon..sun)")
    out = []
    for day, v in zip(DAYS, values):
        h = parse_amount(v, f"entries[{idx}].hours.{day}")
        if h > MAX_DAY_HOURS:
            raise ValidationError(f"entries[{idx}].hours.{day} cannot exceed {MAX_DAY_HOURS}")
        out.append(h)
    return out


# ---------- projects ----------
@bp.get("/projects")
@tenant_required
@requires_perms("timesheets.read")
def list_projects():
    q = Project.query.filter(Project.tenant_id == current_tenant_id())
    if request.args.get("active") == "1":
        q = q.filter(Project.is_active.is_(True))
    return ok([_project_row(p) for p in q.order_by(Project.name.asc()).all()])


@bp.post("/projects")
@tenant_required
@requires_perms("timesheets.manage")
def create_project():
    d = json_body()
    tid = current_tenant_id()
    name = (d.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")
    if Project.query.filter_by(tenant_id=tid, name=name).first():
        raise DuplicateKey(f"Project {name} already exists")
    budget = d.get("budget_hours")
    p = Project(
        tenant_id=tid,
        name=name,
        client=d.get("client"),
        budget_hours=parse_amount(budget, "budget_hours") if budget is not None else None,
    )
    db.session.add(p)
    db.session.commit()
    return ok(_project_row(p), 201)


# ---------- timesheets ----------
@bp.get("")
@tenant_required
@requires_perms("timesheets.read")
def list_timesheets():
    q = Timesheet.query.filter(Timesheet.tenant_id == current_tenant_id())
    emp_id = request.args.get("employee_id", type=int)
    if emp_id:
        q = q.filter(Timesheet.employee_id == emp_id)
    status = request.args.get("status")
    if status:
        q = q.filter(Timesheet.status == status)
    items, meta = paginate(q.order_by(desc(Timesheet.week_start), desc(Timesheet.id)))
    return ok([_sheet_row(t) for t in items], **meta)


@bp.get("/<int:sheet_id>")
@tenant_required
@requires_perms("timesheets.read")
def get_timesheet(sheet_id: int):
    return ok(_sheet_row(get_scoped(Timesheet, sheet_id, current_tenant_id())))


@bp.post("")
@tenant_required
@requires_perms("timesheets.create")
def create_timesheet():
    d = json_body()
    tid = current_tenant_id()
    emp = require_employee(d.get("employee_id"), tid)
    week_start = parse_date(d.get("week_start"), "week_start")
    if week_start is None:
        raise ValidationError("week_start is required")
    if week_start.weekday() != 0:
        raise ValidationError("week_start must be a Monday")
    if Timesheet.query.filter_by(employee_id=emp.id, week_start=week_start).first():
        raise DuplicateKey(f"Timesheet for week {week_start.isoformat()} already exists")

    sheet = Timesheet(tenant_id=tid, employee_id=emp.id, week_start=week_start)
    for idx, raw in enumerate(d.get("entries") or []):
        project = require_reference(Project, (raw or {}).get("project_id"), tid, f"entries[{idx}].project_id")
        entry = TimesheetEntry(project_id=project.id)
        entry.hours = _hours((raw or {}).get("hours"), idx)
        sheet.entries.append(entry)

    totals = sheet.day_totals()
    over = [day for day, h in zip(DAYS, totals) if h > MAX_DAY_HOURS]
    if over:
        raise ValidationError("Daily total cannot exceed 24 hours", payload={"days": over})

    db.session.add(sheet)
    db.session.commit()
    return ok(_sheet_row(sheet), 201)


@bp.post("/<int:sheet_id>/status")
@tenant_required
@requires_perms("timesheets.approve")
def set_status(sheet_id: int):
    sheet = get_scoped(Timesheet, sheet_id, current_tenant_id())
    transition(sheet, json_body().get("status"))
    db.session.commit()
    return ok(_sheet_row(sheet))
