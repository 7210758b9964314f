# hrm_api/blueprints/benefits.py
from __future__ import annotations

from flask import Blueprint, request

from hrm_api.common.auth import requires_perms, tenant_required, current_tenant_id
from hrm_api.common.errors import DuplicateKey, ValidationError
from hrm_api.common.http import ok, iso, json_body
from hrm_api.common.paging import paginate
from hrm_api.extensions import db
from hrm_api.models.benefits import BenefitEnrollment, BenefitPlan, EnrollmentStatus
from hrm_api.services.lifecycle import transition
from hrm_api.services.records import (
    get_scoped, parse_amount, parse_date, require_employee, require_reference,
)

bp = Blueprint("benefits", __name__, url_prefix="/api/v1/benefits")

PLAN_TYPES = ("health", "retirement", "wellness", "insurance", "other")


def _num(v):
    return float(v) if v is not None else None


def _plan_row(p: BenefitPlan):
    return {
        "id": p.id,
        "name": p.name,
        "type": p.plan_type,
        "coverage": p.coverage,
        "premium": _num(p.premium),
        "match": _num(p.match_pct),
        "benefit": p.benefit,
        "is_active": p.is_active,
        "enrolled": p.enrollments.count(),
    }


def _enrollment_row(e: BenefitEnrollment):
    return {
        "id": e.id,
        "employee_id": e.employee_id,
        "employee_name": e.employee.full_name if e.employee else None,
        "plan_id": e.plan_id,
        "plan": e.plan.name if e.plan else None,
        "status": e.status,
        "start_date": iso(e.start_date),
        "dependents": e.dependents,
        "contribution": _num(e.contribution_pct),
    }


# ---------- plans ----------
@bp.get("/plans")
@tenant_required
@requires_perms("benefits.read")
def list_plans():
    q = BenefitPlan.query.filter(BenefitPlan.tenant_id == current_tenant_id())
    plan_type = request.args.get("type")
    if plan_type:
        q = q.filter(BenefitPlan.plan_type == plan_type)
    return ok([_plan_row(p) for p in q.order_by(BenefitPlan.name.asc()).all()])


@bp.post("/plans")
@tenant_required
@requires_perms("benefits.manage")
def create_plan():
    d = json_body()
    tid = current_tenant_id()
    name = (d.get("name") or "").strip()
    plan_type = (d.get("type") or "").strip().lower()
    if not name:
        raise ValidationError("name is required")
    if plan_type not in PLAN_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(PLAN_TYPES)}")
    if BenefitPlan.query.filter_by(tenant_id=tid, name=name).first():
        raise DuplicateKey(f"Benefit plan {name} already exists")

    p = BenefitPlan(
        tenant_id=tid,
        name=name,
        plan_type=plan_type,
        coverage=d.get("coverage"),
        premium=parse_amount(d["premium"], "premium") if d.get("premium") is not None else None,
        match_pct=parse_amount(d["match"], "match") if d.get("match") is not None else None,
        benefit=d.get("benefit"),
    )
    db.session.add(p)
    db.session.commit()
    return ok(_plan_row(p), 201)


# ---------- enrollments ----------
@bp.get("/enrollments")
@tenant_required
@requires_perms("benefits.read")
def list_enrollments():
    q = BenefitEnrollment.query.filter(BenefitEnrollment.tenant_id == current_tenant_id())
    emp_id = request.args.get("employee_id", type=int)
    if emp_id:
        q = q.filter(BenefitEnrollment.employee_id == emp_id)
    status = request.args.get("status")
    if status:
        q = q.filter(BenefitEnrollment.status == status)
    items, meta = paginate(q.order_by(BenefitEnrollment.id.asc()))
    return ok([_enrollment_row(e) for e in items], **meta)


@bp.post("/enrollments")
@tenant_required
@requires_perms("benefits.create")
def create_enrollment():
    d = json_body()
    tid = current_tenant_id()
    emp = require_employee(d.get("employee_id"), tid)
    plan = require_reference(BenefitPlan, d.get("plan_id"), tid, "plan_id")
    if not plan.is_active:
        raise ValidationError(f"Benefit plan {plan.name} is not open for enrollment")

    existing = BenefitEnrollment.query.filter_by(employee_id=emp.id, plan_id=plan.id).first()
    if existing:
        raise DuplicateKey(f"Employee {emp.employee_code} is already enrolled in {plan.name}")

    dependents = d.get("dependents", 0)
    if not isinstance(dependents, int) or dependents < 0:
        raise ValidationError("dependents must be a non-negative integer")

    contribution = d.get("contribution")
    e = BenefitEnrollment(
        tenant_id=tid,
        employee_id=emp.id,
        plan_id=plan.id,
        status=EnrollmentStatus.PENDING.value,
        start_date=parse_date(d.get("start_date"), "start_date"),
        dependents=dependents,
        contribution_pct=parse_amount(contribution, "contribution") if contribution is not None else None,
    )
    db.session.add(e)
    db.session.commit()
    return ok(_enrollment_row(e), 201)


@bp.post("/enrollments/<int:enrollment_id>/status")
@tenant_required
@requires_perms("benefits.approve")
def set_status(enrollment_id: int):
    e = get_scoped(BenefitEnrollment, enrollment_id, current_tenant_id())
    transition(e, json_body().get("status"))
    db.session.commit()
    return ok(_enrollment_row(e))
