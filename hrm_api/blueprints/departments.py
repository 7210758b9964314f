# hrm_api/blueprints/departments.py
from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import or_, asc

from hrm_api.common.auth import requires_perms, tenant_required, current_tenant_id
from hrm_api.common.http import ok, fail, iso, json_body
from hrm_api.common.paging import apply_sort, paginate, text_q
from hrm_api.extensions import db
from hrm_api.models.employee import Employee
from hrm_api.models.master import Department

bp = Blueprint("departments", __name__, url_prefix="/api/v1/departments")

STATUSES = ("active", "inactive")


# ---------- row shape ----------
def _row(x: Department, headcount: int | None = None):
    out = {
        "id": x.id,
        "tenant_id": x.tenant_id,
        "name": x.name,
        "code": x.code,
        "description": x.description,
        "status": x.status,
        "created_at": iso(x.created_at),
        "updated_at": iso(x.updated_at),
    }
    if headcount is not None:
        out["headcount"] = headcount
    return out


def _get_scoped(dep_id: int):
    x = db.session.get(Department, dep_id)
    if not x or x.tenant_id != current_tenant_id():
        return None
    return x


def _code_taken(tenant_id, code: str, exclude_id=None) -> bool:
    q = Department.query.filter(
        Department.tenant_id == tenant_id,
        db.func.upper(Department.code) == code.upper(),
    )
    if exclude_id is not None:
        q = q.filter(Department.id != exclude_id)
    return q.first() is not None


# ---------- routes ----------
@bp.get("")
@tenant_required
@requires_perms("departments.read")
def list_departments():
    qry = Department.query.filter(Department.tenant_id == current_tenant_id())

    status = request.args.get("status")
    if status:
        if status not in STATUSES:
            return fail("status must be active/inactive", 422)
        qry = qry.filter(Department.status == status)

    s = text_q()
    if s:
        like = f"%{s}%"
        qry = qry.filter(or_(Department.name.ilike(like), Department.code.ilike(like)))

    allowed = {
        "id": Department.id,
        "name": Department.name,
        "code": Department.code,
        "created_at": Department.created_at,
        "status": Department.status,
    }
    qry = apply_sort(qry, allowed, asc(Department.name))
    items, meta = paginate(qry)

    counts = dict(
        db.session.query(Employee.department_id, db.func.count(Employee.id))
        .filter(Employee.tenant_id == current_tenant_id(), Employee.status == "active")
        .group_by(Employee.department_id)
        .all()
    )
    return ok([_row(i, counts.get(i.id, 0)) for i in items], **meta)


@bp.get("/<int:dep_id>")
@tenant_required
@requires_perms("departments.read")
def get_department(dep_id: int):
    x = _get_scoped(dep_id)
    if not x:
        return fail("Department not found", 404)
    return ok(_row(x))


@bp.post("")
@tenant_required
@requires_perms("departments.create")
def create_department():
    data = json_body()
    name = (data.get("name") or "").strip()
    code = (data.get("code") or "").strip().upper()
    if not name or not code:
        return fail("name and code are required", 422)

    tid = current_tenant_id()
    if _code_taken(tid, code):
        return fail("Department with same code already exists for this tenant", 409, code="DUPLICATE_KEY")

    obj = Department(
        tenant_id=tid,
        name=name,
        code=code,
        description=(data.get("description") or "").strip() or None,
        status="active",
    )
    db.session.add(obj)
    db.session.commit()
    return ok(_row(obj), 201)


@bp.put("/<int:dep_id>")
@tenant_required
@requires_perms("departments.update")
def update_department(dep_id: int):
    obj = _get_scoped(dep_id)
    if not obj:
        return fail("Department not found", 404)

    data = json_body()
    if "name" in data:
        candidate = (data.get("name") or "").strip()
        if not candidate:
            return fail("name cannot be empty", 422)
        obj.name = candidate

    if "code" in data:
        code = (data.get("code") or "").strip().upper()
        if not code:
            return fail("code cannot be empty", 422)
        if _code_taken(obj.tenant_id, code, exclude_id=obj.id):
            return fail("Department with same code already exists for this tenant", 409, code="DUPLICATE_KEY")
        obj.code = code

    if "description" in data:
        obj.description = (data.get("description") or "").strip() or None

    if "status" in data:
        if data["status"] not in STATUSES:
            return fail("status must be active/inactive", 422)
        obj.status = data["status"]

    db.session.commit()
    return ok(_row(obj))


@bp.delete("/<int:dep_id>")
@tenant_required
@requires_perms("departments.delete")
def delete_department(dep_id: int):
    obj = _get_scoped(dep_id)
    if not obj:
        return fail("Department not found", 404)
    # Soft delete: mark inactive
    obj.status = "inactive"
    db.session.commit()
    return ok({"id": dep_id, "status": "inactive"})
