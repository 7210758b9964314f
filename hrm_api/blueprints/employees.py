# hrm_api/blueprints/employees.py
from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import asc, or_

from hrm_api.common.auth import requires_perms, tenant_required, current_tenant_id
from hrm_api.common.http import ok, fail, iso, json_body
from hrm_api.common.paging import apply_sort, paginate, text_q
from hrm_api.extensions import db
from hrm_api.models.employee import Employee
from hrm_api.models.ids import DepartmentId, EmployeeId
from hrm_api.models.tenant import Tenant
from hrm_api.services import org_hierarchy as org

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")


def _brief(e: Employee):
    return {
        "id": e.id,
        "employee_code": e.employee_code,
        "name": e.full_name,
        "designation": e.designation,
        "department_id": e.department_id,
        "reporting_manager_id": e.reporting_manager_id,
    }


def _row(e: Employee):
    out = _brief(e)
    out.update({
        "tenant_id": e.tenant_id,
        "first_name": e.first_name,
        "last_name": e.last_name,
        "email": e.email,
        "phone": e.phone,
        "date_of_birth": iso(e.date_of_birth),
        "gender": e.gender,
        "marital_status": e.marital_status,
        "department_name": e.department.name if e.department else None,
        "employment_type": e.employment_type,
        "joining_date": iso(e.joining_date),
        "status": e.status,
        "salary": e.salary_dict(),
        "address": e.address,
        "created_at": iso(e.created_at),
        "updated_at": iso(e.updated_at),
    })
    return out


@bp.get("")
@tenant_required
@requires_perms("employees.read")
def list_employees():
    qry = Employee.query.filter(Employee.tenant_id == current_tenant_id())

    dept_id = request.args.get("department_id", type=int)
    if dept_id:
        qry = qry.filter(Employee.department_id == dept_id)
    manager_id = request.args.get("manager_id", type=int)
    if manager_id:
        qry = qry.filter(Employee.reporting_manager_id == manager_id)
    status = request.args.get("status")
    if status:
        qry = qry.filter(Employee.status == status)

    s = text_q()
    if s:
        like = f"%{s}%"
        qry = qry.filter(or_(
            Employee.first_name.ilike(like),
            Employee.last_name.ilike(like),
            Employee.email.ilike(like),
            Employee.employee_code.ilike(like),
        ))

    allowed = {
        "code": Employee.employee_code,
        "first_name": Employee.first_name,
        "joining_date": Employee.joining_date,
        "created_at": Employee.created_at,
    }
    qry = apply_sort(qry, allowed, asc(Employee.employee_code))
    items, meta = paginate(qry)
    return ok([_row(e) for e in items], **meta)


@bp.get("/<int:emp_id>")
@tenant_required
@requires_perms("employees.read")
def get_employee(emp_id: int):
    return ok(_row(org.get_employee(current_tenant_id(), EmployeeId(emp_id))))


@bp.post("")
@tenant_required
@requires_perms("employees.create")
def create_employee():
    data = json_body()
    tid = current_tenant_id()

    tenant = db.session.get(Tenant, tid)
    cap = tenant.max_employees if tenant else None
    if cap is not None and org.tenant_headcount(tid) >= cap:
        return fail(f"Subscription allows at most {cap} employees", 422, code="EMPLOYEE_CAP")

    emp = org.create_employee(tid, data, reporting_manager_id=data.get("reporting_manager_id"))
    db.session.commit()
    return ok(_row(emp), 201)


@bp.put("/<int:emp_id>/manager")
@tenant_required
@requires_perms("employees.update")
def set_manager(emp_id: int):
    data = json_body()
    if "reporting_manager_id" not in data:
        return fail("reporting_manager_id is required (null detaches)", 422)
    emp = org.get_employee(current_tenant_id(), EmployeeId(emp_id))
    org.assign_manager(emp, data["reporting_manager_id"])
    db.session.commit()
    return ok(_row(emp))


@bp.get("/<int:emp_id>/subtree")
@tenant_required
@requires_perms("employees.read")
def get_subtree(emp_id: int):
    items = [_brief(e) for e in org.subtree(current_tenant_id(), EmployeeId(emp_id))]
    return ok(items, total=len(items))


@bp.get("/<int:emp_id>/chain")
@tenant_required
@requires_perms("employees.read")
def get_chain(emp_id: int):
    return ok([_brief(e) for e in org.chain(current_tenant_id(), EmployeeId(emp_id))])


@bp.get("/<int:emp_id>/direct-reports")
@tenant_required
@requires_perms("employees.read")
def get_direct_reports(emp_id: int):
    items = org.direct_reports(current_tenant_id(), EmployeeId(emp_id))
    return ok(items, total=len(items))


@bp.get("/org-chart")
@tenant_required
@requires_perms("employees.read")
def get_org_chart():
    root_id = request.args.get("root_id", type=int)
    dept_id = request.args.get("department_id", type=int)
    tree = org.org_chart(
        current_tenant_id(),
        root_id=EmployeeId(root_id) if root_id else None,
        department_id=DepartmentId(dept_id) if dept_id else None,
    )
    return ok({"org_chart": tree})


@bp.get("/org-chart/stats")
@tenant_required
@requires_perms("employees.read")
def get_org_stats():
    return ok(org.org_stats(current_tenant_id()))
