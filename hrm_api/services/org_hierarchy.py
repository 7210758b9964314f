# hrm_api/services/org_hierarchy.py
"""
Reporting hierarchy of one tenant.

Employees point at their manager through `reporting_manager_id`. Restricted to
a tenant the edges form a forest: every employee has at most one manager and
following the references always ends at a root (usually the CEO).
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterator, List, Optional
import logging

from sqlalchemy import func

from hrm_api.common.errors import (
    CycleDetected, DuplicateKey, InvalidReference, NotFound, ValidationError,
)
from hrm_api.extensions import db
from hrm_api.models.employee import Employee
from hrm_api.models.ids import DepartmentId, EmployeeId, TenantId
from hrm_api.models.master import Department
from hrm_api.services.records import parse_date

log = logging.getLogger(__name__)


REQUIRED_FIELDS = ("employee_code", "first_name", "email")
SALARY_FIELDS = ("basic", "hra", "allowances", "deductions")


def _decimal(value, field: str) -> Decimal:
    try:
        return Decimal(str(value if value is not None else 0))
    except InvalidOperation:
        raise ValidationError(f"salary.{field} must be a number")


def _salary_columns(salary: dict) -> dict:
    """
    Map a salary payload onto columns. A missing netSalary is derived;
    a supplied one must equal basic + hra + allowances - deductions.
    """
    parts = {f: _decimal(salary.get(f), f) for f in SALARY_FIELDS}
    if any(v < 0 for v in parts.values()):
        raise ValidationError("salary components cannot be negative")
    expected = Employee.expected_net(parts["basic"], parts["hra"], parts["allowances"], parts["deductions"])
    net = salary.get("netSalary")
    if net is not None and _decimal(net, "netSalary") != expected:
        raise ValidationError(
            "salary.netSalary does not match basic + hra + allowances - deductions",
            payload={"expected": float(expected), "given": float(net)},
        )
    return {
        "salary_basic": parts["basic"],
        "salary_hra": parts["hra"],
        "salary_allowances": parts["allowances"],
        "salary_deductions": parts["deductions"],
        "net_salary": expected,
        "salary_currency": salary.get("currency") or "INR",
    }


def get_employee(tenant_id: TenantId, employee_id: EmployeeId) -> Employee:
    emp = db.session.get(Employee, employee_id)
    if not emp or emp.tenant_id != tenant_id:
        raise NotFound(f"Employee {employee_id} not found")
    return emp


def tenant_headcount(tenant_id: TenantId) -> int:
    return db.session.query(func.count(Employee.id)).filter(Employee.tenant_id == tenant_id).scalar() or 0


def _resolve_manager(tenant_id: TenantId, manager_id) -> Optional[Employee]:
    if manager_id is None:
        return None
    try:
        mgr = db.session.get(Employee, int(manager_id))
    except (TypeError, ValueError):
        raise ValidationError("reporting_manager_id must be an integer")
    if not mgr or mgr.tenant_id != tenant_id:
        log.warning("manager %s not found in tenant %s", manager_id, tenant_id)
        raise InvalidReference(f"Reporting manager {manager_id} does not exist in this tenant")
    return mgr


def _check_no_cycle(employee: Employee, manager: Employee) -> None:
    """Walking up from the new manager must never reach the employee itself."""
    if employee.id is not None and manager.id == employee.id:
        raise CycleDetected("An employee cannot report to themselves")
    if employee.id is None:
        return
    for ancestor in chain(TenantId(manager.tenant_id), EmployeeId(manager.id), include_self=True):
        if ancestor.id == employee.id:
            log.warning("refused manager edge %s -> %s (cycle)", employee.id, manager.id)
            raise CycleDetected(
                f"Employee {employee.id} cannot report to {manager.id}: {manager.id} already reports to them"
            )


def _text(data: dict, field: str) -> str:
    """String payload field, stripped. Numbers are accepted and stringified."""
    value = data.get(field)
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"{field} must be a string")
    return str(value).strip()


def _resolve_department(tenant_id: TenantId, dept_id) -> Optional[Department]:
    if dept_id is None:
        return None
    try:
        dept = db.session.get(Department, DepartmentId(int(dept_id)))
    except (TypeError, ValueError):
        raise ValidationError("department_id must be an integer")
    if not dept or dept.tenant_id != tenant_id:
        raise InvalidReference(f"Department {dept_id} does not exist in this tenant")
    return dept


def create_employee(tenant_id: TenantId, data: dict, reporting_manager_id=None) -> Employee:
    """
    Insert an employee into the tenant's directory.

    Raises ValidationError, InvalidReference (department or manager outside the
    tenant), CycleDetected or DuplicateKey (employee code taken). Caller commits.
    """
    fields = {f: _text(data, f) for f in REQUIRED_FIELDS}
    missing = [f for f in REQUIRED_FIELDS if not fields[f]]
    if missing:
        raise ValidationError("Missing required fields", payload={"fields": missing})

    code = fields["employee_code"]
    dup = Employee.query.filter(Employee.tenant_id == tenant_id, Employee.employee_code == code).first()
    if dup:
        raise DuplicateKey(f"Employee code {code} already exists in this tenant")

    dept = _resolve_department(tenant_id, data.get("department_id"))
    manager = _resolve_manager(tenant_id, reporting_manager_id)

    emp = Employee(
        tenant_id=tenant_id,
        department_id=dept.id if dept else None,
        employee_code=code,
        first_name=fields["first_name"],
        last_name=_text(data, "last_name") or None,
        email=fields["email"].lower(),
        phone=data.get("phone"),
        date_of_birth=parse_date(data.get("date_of_birth"), "date_of_birth"),
        gender=data.get("gender"),
        marital_status=data.get("marital_status"),
        designation=data.get("designation"),
        employment_type=data.get("employment_type") or "full-time",
        joining_date=parse_date(data.get("joining_date"), "joining_date"),
        status=data.get("status") or "active",
        address=data.get("address"),
        **_salary_columns(data.get("salary") or {}),
    )
    if manager is not None:
        _check_no_cycle(emp, manager)
        emp.reporting_manager_id = manager.id

    db.session.add(emp)
    db.session.flush()
    log.info("employee %s created in tenant %s (manager=%s)", emp.employee_code, tenant_id, emp.reporting_manager_id)
    return emp


def assign_manager(employee: Employee, reporting_manager_id) -> Employee:
    """Re-parent an employee; None detaches it into a root. Caller commits."""
    tenant_id = TenantId(employee.tenant_id)
    manager = _resolve_manager(tenant_id, reporting_manager_id)
    if manager is not None:
        _check_no_cycle(employee, manager)
    employee.reporting_manager_id = manager.id if manager is not None else None
    employee.updated_at = datetime.utcnow()
    db.session.flush()
    return employee


def subtree(tenant_id: TenantId, employee_id: EmployeeId) -> Iterator[Employee]:
    """
    Everyone reporting to `employee_id`, directly or transitively.

    Breadth-first, one query per level, ordered by employee code within a level.
    The root itself is not yielded. Each call returns a fresh generator.
    """
    get_employee(tenant_id, employee_id)
    seen = {employee_id}
    frontier = [employee_id]
    while frontier:
        level = (
            Employee.query
            .filter(Employee.tenant_id == tenant_id, Employee.reporting_manager_id.in_(frontier))
            .order_by(Employee.employee_code.asc())
            .all()
        )
        frontier = []
        for emp in level:
            if emp.id in seen:
                continue
            seen.add(emp.id)
            frontier.append(emp.id)
            yield emp


def chain(tenant_id: TenantId, employee_id: EmployeeId, include_self: bool = False) -> List[Employee]:
    """
    Ancestors of `employee_id`, nearest first, ending at the root.

    Stops when the manager reference is absent. More hops than the tenant has
    employees means the data holds a cycle.
    """
    emp = get_employee(tenant_id, employee_id)
    limit = tenant_headcount(tenant_id)
    out: List[Employee] = [emp] if include_self else []
    hops = 0
    current = emp
    while current.reporting_manager_id is not None:
        hops += 1
        if hops > limit:
            raise CycleDetected(f"Reporting chain of employee {employee_id} does not terminate")
        current = db.session.get(Employee, current.reporting_manager_id)
        if current is None or current.tenant_id != tenant_id:
            break
        out.append(current)
    return out


def _node(emp: Employee) -> dict:
    return {
        "id": emp.id,
        "employee_code": emp.employee_code,
        "name": emp.full_name,
        "designation": emp.designation,
        "department": emp.department.name if emp.department else None,
        "department_code": emp.department.code if emp.department else None,
        "email": emp.email,
        "manager_id": emp.reporting_manager_id,
        "children": [],
    }


def org_chart(tenant_id: TenantId, root_id: Optional[EmployeeId] = None, active_only: bool = True,
              department_id: Optional[DepartmentId] = None) -> List[dict]:
    """
    Nested tree of the tenant's employees. Employees whose manager is missing
    (or filtered out) become roots. Children sorted by name.

    With `department_id` only that department's staff are charted; anyone whose
    manager sits in another department becomes a root. An unknown `root_id` or
    `department_id` raises NotFound.
    """
    q = Employee.query.filter(Employee.tenant_id == tenant_id)
    if active_only:
        q = q.filter(Employee.status == "active")
    if department_id is not None:
        dept = db.session.get(Department, department_id)
        if not dept or dept.tenant_id != tenant_id:
            raise NotFound(f"Department {department_id} not found")
        q = q.filter(Employee.department_id == department_id)
    nodes = {e.id: _node(e) for e in q.all()}

    roots = []
    for node in nodes.values():
        parent = nodes.get(node["manager_id"])
        if parent is not None:
            parent["children"].append(node)
        else:
            roots.append(node)

    if root_id is not None:
        if root_id not in nodes:
            raise NotFound(f"Employee {root_id} not found")
        roots = [nodes[root_id]]

    def _sort(items):
        items.sort(key=lambda n: n["name"])
        for n in items:
            _sort(n["children"])

    _sort(roots)
    return roots


def direct_reports(tenant_id: TenantId, employee_id: EmployeeId) -> List[dict]:
    """Active direct reports of one employee, each with its own direct report count."""
    get_employee(tenant_id, employee_id)
    reports = (
        Employee.query
        .filter(Employee.tenant_id == tenant_id,
                Employee.reporting_manager_id == employee_id,
                Employee.status == "active")
        .order_by(Employee.employee_code.asc())
        .all()
    )
    counts = _report_counts(tenant_id)
    out = []
    for emp in reports:
        node = _node(emp)
        node.pop("children")
        node["direct_report_count"] = counts.get(emp.id, 0)
        out.append(node)
    return out


def _report_counts(tenant_id: TenantId) -> Dict[int, int]:
    rows = (
        db.session.query(Employee.reporting_manager_id, func.count(Employee.id))
        .filter(Employee.tenant_id == tenant_id,
                Employee.status == "active",
                Employee.reporting_manager_id.isnot(None))
        .group_by(Employee.reporting_manager_id)
        .all()
    )
    return {mgr_id: n for mgr_id, n in rows}


def org_stats(tenant_id: TenantId) -> dict:
    """
    Shape of the active organisation: headcount, depth (longest reporting
    chain, root counted as 1), span of control over employees with at least one
    report, and headcount per department code.
    """
    active = Employee.query.filter(Employee.tenant_id == tenant_id, Employee.status == "active").all()
    counts = _report_counts(tenant_id)
    spans = [n for n in counts.values() if n > 0]

    depth = 0
    for emp in active:
        depth = max(depth, len(chain(tenant_id, EmployeeId(emp.id), include_self=True)))

    by_dept = dict(
        db.session.query(Department.code, func.count(Employee.id))
        .outerjoin(Employee, (Employee.department_id == Department.id) & (Employee.status == "active"))
        .filter(Department.tenant_id == tenant_id, Department.status == "active")
        .group_by(Department.code)
        .all()
    )

    return {
        "total_employees": len(active),
        "department_count": len(by_dept),
        "organization_depth": depth,
        "average_span_of_control": round(sum(spans) / len(spans), 1) if spans else 0,
        "max_span_of_control": max(spans) if spans else 0,
        "employees_without_manager": sum(1 for e in active if e.reporting_manager_id is None),
        "individual_contributors": sum(1 for e in active if counts.get(e.id, 0) == 0),
        "headcount_by_department": by_dept,
    }


def org_chart_lines(tenant_id: TenantId) -> List[str]:
    """Plain-text rendering, e.g. 'CEO (Rajesh Kumar)' / '  +-- CTO (Priya Sharma)'."""
    lines: List[str] = []

    def _label(node):
        return f"{node['designation'] or 'Employee'} ({node['name']})"

    def _walk(children, prefix):
        for idx, child in enumerate(children):
            last = idx == len(children) - 1
            lines.append(f"{prefix}+-- {_label(child)}")
            _walk(child["children"], prefix + ("      " if last else "|     "))

    for root in _sorted_by_code(org_chart(tenant_id)):
        lines.append(_label(root))
        _walk(_sorted_by_code(root["children"]), "  ")
    return lines


def _sorted_by_code(nodes):
    out = sorted(nodes, key=lambda n: n["employee_code"])
    for n in out:
        n["children"] = _sorted_by_code(n["children"])
    return out
