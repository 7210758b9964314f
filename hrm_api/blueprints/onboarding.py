# hrm_api/blueprints/onboarding.py
from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import desc

from hrm_api.common.auth import requires_perms, tenant_required, current_tenant_id
from hrm_api.common.errors import ValidationError
from hrm_api.common.http import ok, iso, json_body
from hrm_api.common.paging import paginate
from hrm_api.extensions import db
from hrm_api.models.onboarding import OffboardingCase, OnboardingCase
from hrm_api.services.lifecycle import advance_progress, transition
from hrm_api.services.records import get_scoped, parse_date, require_employee, status_counts

bp = Blueprint("onboarding", __name__, url_prefix="/api/v1/onboarding")


def _onboarding_row(c: OnboardingCase):
    return {
        "id": c.id,
        "employee_id": c.employee_id,
        "name": c.employee.full_name if c.employee else None,
        "position": c.position,
        "start_date": iso(c.start_date),
        "buddy_id": c.buddy_id,
        "buddy": c.buddy.full_name if c.buddy else None,
        "progress": c.progress,
        "status": c.status,
        "created_at": iso(c.created_at),
        "updated_at": iso(c.updated_at),
    }


def _offboarding_row(c: OffboardingCase):
    return {
        "id": c.id,
        "employee_id": c.employee_id,
        "name": c.employee.full_name if c.employee else None,
        "position": c.position,
        "last_day": iso(c.last_day),
        "progress": c.progress,
        "status": c.status,
        "clearance": c.clearance,
        "created_at": iso(c.created_at),
        "updated_at": iso(c.updated_at),
    }


def _list(model, row):
    q = model.query.filter(model.tenant_id == current_tenant_id())
    status = request.args.get("status")
    if status:
        q = q.filter(model.status == status)
    items, meta = paginate(q.order_by(desc(model.created_at), desc(model.id)))
    return ok([row(c) for c in items], **meta)


# ---------- onboarding ----------
@bp.get("/cases")
@tenant_required
@requires_perms("onboarding.read")
def list_onboarding():
    return _list(OnboardingCase, _onboarding_row)


@bp.post("/cases")
@tenant_required
@requires_perms("onboarding.create")
def create_onboarding():
    d = json_body()
    tid = current_tenant_id()
    emp = require_employee(d.get("employee_id"), tid)
    buddy = require_employee(d["buddy_id"], tid, "buddy_id") if d.get("buddy_id") is not None else None
    if buddy is not None and buddy.id == emp.id:
        raise ValidationError("An employee cannot be their own onboarding buddy")

    case = OnboardingCase(
        tenant_id=tid,
        employee_id=emp.id,
        buddy_id=buddy.id if buddy else None,
        position=d.get("position") or emp.designation,
        start_date=parse_date(d.get("start_date"), "start_date") or emp.joining_date,
    )
    db.session.add(case)
    db.session.commit()
    return ok(_onboarding_row(case), 201)


@bp.post("/cases/<int:case_id>/progress")
@tenant_required
@requires_perms("onboarding.update")
def onboarding_progress(case_id: int):
    case = get_scoped(OnboardingCase, case_id, current_tenant_id())
    advance_progress(case, json_body().get("progress"))
    db.session.commit()
    return ok(_onboarding_row(case))


@bp.post("/cases/<int:case_id>/status")
@tenant_required
@requires_perms("onboarding.update")
def onboarding_status(case_id: int):
    case = get_scoped(OnboardingCase, case_id, current_tenant_id())
    transition(case, json_body().get("status"))
    db.session.commit()
    return ok(_onboarding_row(case))


# ---------- offboarding ----------
@bp.get("/offboarding")
@tenant_required
@requires_perms("onboarding.read")
def list_offboarding():
    return _list(OffboardingCase, _offboarding_row)


@bp.post("/offboarding")
@tenant_required
@requires_perms("onboarding.create")
def create_offboarding():
    d = json_body()
    tid = current_tenant_id()
    emp = require_employee(d.get("employee_id"), tid)
    total = d.get("clearance_total", 5)
    if not isinstance(total, int) or total < 1:
        raise ValidationError("clearance_total must be a positive integer")

    case = OffboardingCase(
        tenant_id=tid,
        employee_id=emp.id,
        position=d.get("position") or emp.designation,
        last_day=parse_date(d.get("last_day"), "last_day"),
        clearance_total=total,
    )
    db.session.add(case)
    db.session.commit()
    return ok(_offboarding_row(case), 201)


@bp.post("/offboarding/<int:case_id>/progress")
@tenant_required
@requires_perms("onboarding.update")
def offboarding_progress(case_id: int):
    d = json_body()
    case = get_scoped(OffboardingCase, case_id, current_tenant_id())
    advance_progress(case, d.get("progress"))
    if "clearance_done" in d:
        done = d["clearance_done"]
        if not isinstance(done, int) or not case.clearance_done <= done <= case.clearance_total:
            raise ValidationError(
                f"clearance_done must be between {case.clearance_done} and {case.clearance_total}"
            )
        case.clearance_done = done
    db.session.commit()
    return ok(_offboarding_row(case))


@bp.post("/offboarding/<int:case_id>/status")
@tenant_required
@requires_perms("onboarding.update")
def offboarding_status(case_id: int):
    case = get_scoped(OffboardingCase, case_id, current_tenant_id())
    transition(case, json_body().get("status"))
    db.session.commit()
    return ok(_offboarding_row(case))


@bp.get("/summary")
@tenant_required
@requires_perms("onboarding.read")
def summary():
    tid = current_tenant_id()
    return ok({
        "onboarding": status_counts(OnboardingCase, tid),
        "offboarding": status_counts(OffboardingCase, tid),
    })
