import pytest

from hrm_api.common.errors import (
    CycleDetected, DuplicateKey, InvalidReference, NotFound, ValidationError,
)
from hrm_api.models.master import Department
from hrm_api.models.tenant import Tenant
from hrm_api.services import org_hierarchy as org


def _emp(tenant, code, manager=None, **extra):
    data = {"employee_code": code, "first_name": code.title(), "email": f"{code.lower()}@test.local"}
    data.update(extra)
    return org.create_employee(tenant.id, data, reporting_manager_id=manager.id if manager else None)


def test_create_employee_links_manager(session, tenant):
    boss = _emp(tenant, "E1", designation="CEO")
    dev = _emp(tenant, "E2", manager=boss)
    session.commit()

    assert dev.reporting_manager_id == boss.id
    assert boss.reporting_manager_id is None


def test_create_employee_requires_fields(session, tenant):
    with pytest.raises(ValidationError) as ei:
        org.create_employee(tenant.id, {"employee_code": "E1"})
    assert set(ei.value.payload["fields"]) == {"first_name", "email"}


def test_duplicate_code_in_tenant(session, tenant):
    _emp(tenant, "E1")
    with pytest.raises(DuplicateKey):
        _emp(tenant, "E1")


def test_unknown_manager_is_invalid_reference(session, tenant):
    with pytest.raises(InvalidReference):
        org.create_employee(tenant.id, {"employee_code": "E1", "first_name": "A", "email": "a@x.io"},
                            reporting_manager_id=9999)


def test_manager_from_other_tenant_rejected(session, tenant):
    other = Tenant(name="Other", slug="other")
    session.add(other)
    session.flush()
    foreign = _emp(other, "X1")

    with pytest.raises(InvalidReference):
        org.create_employee(tenant.id, {"employee_code": "E1", "first_name": "A", "email": "a@x.io"},
                            reporting_manager_id=foreign.id)


def test_self_reference_is_a_cycle(session, tenant):
    a = _emp(tenant, "E1")
    with pytest.raises(CycleDetected):
        org.assign_manager(a, a.id)


def test_reparent_under_own_report_is_a_cycle(session, tenant):
    a = _emp(tenant, "E1")
    b = _emp(tenant, "E2", manager=a)
    c = _emp(tenant, "E3", manager=b)

    with pytest.raises(CycleDetected):
        org.assign_manager(a, c.id)
    assert a.reporting_manager_id is None


def test_assign_manager_none_detaches(session, tenant):
    a = _emp(tenant, "E1")
    b = _emp(tenant, "E2", manager=a)
    org.assign_manager(b, None)
    assert b.reporting_manager_id is None
    assert list(org.subtree(tenant.id, a.id)) == []


def test_salary_net_is_derived(session, tenant):
    e = _emp(tenant, "E1", salary={"basic": 100, "hra": 40, "allowances": 20, "deductions": 10})
    assert e.salary_dict()["netSalary"] == 150


def test_salary_net_mismatch_rejected(session, tenant):
    with pytest.raises(ValidationError):
        _emp(tenant, "E1", salary={"basic": 100, "hra": 40, "allowances": 20, "deductions": 10,
                                   "netSalary": 999})


def test_subtree_is_breadth_first(session, tenant):
    root = _emp(tenant, "E1")
    b = _emp(tenant, "E3", manager=root)
    a = _emp(tenant, "E2", manager=root)
    leaf = _emp(tenant, "E4", manager=a)
    session.commit()

    codes = [e.employee_code for e in org.subtree(tenant.id, root.id)]
    assert codes == ["E2", "E3", "E4"]
    assert [e.employee_code for e in org.subtree(tenant.id, leaf.id)] == []


def test_subtree_is_lazy_and_restartable(session, tenant):
    root = _emp(tenant, "E1")
    _emp(tenant, "E2", manager=root)
    gen = org.subtree(tenant.id, root.id)
    assert next(gen).employee_code == "E2"
    assert len(list(org.subtree(tenant.id, root.id))) == 1


def test_chain_nearest_first(session, tenant):
    a = _emp(tenant, "E1")
    b = _emp(tenant, "E2", manager=a)
    c = _emp(tenant, "E3", manager=b)

    assert [e.id for e in org.chain(tenant.id, c.id)] == [b.id, a.id]
    assert [e.id for e in org.chain(tenant.id, c.id, include_self=True)] == [c.id, b.id, a.id]
    assert org.chain(tenant.id, a.id) == []


def test_chain_detects_corrupt_cycle(session, tenant):
    a = _emp(tenant, "E1")
    b = _emp(tenant, "E2", manager=a)
    # bypass the service to simulate bad data
    a.reporting_manager_id = b.id
    session.flush()

    with pytest.raises(CycleDetected):
        org.chain(tenant.id, b.id)


def test_unknown_employee_not_found(session, tenant):
    with pytest.raises(NotFound):
        org.chain(tenant.id, 12345)


def test_org_chart_lines_shape(session, tenant):
    ceo = _emp(tenant, "E1", designation="CEO", first_name="Ana", last_name="Root")
    cto = _emp(tenant, "E2", manager=ceo, designation="CTO", first_name="Ben", last_name="Tech")
    _emp(tenant, "E3", manager=cto, designation="Engineer", first_name="Cid", last_name="Dev")
    _emp(tenant, "E4", manager=ceo, designation="CFO", first_name="Dee", last_name="Cash")
    session.commit()

    assert org.org_chart_lines(tenant.id) == [
        "CEO (Ana Root)",
        "  +-- CTO (Ben Tech)",
        "  |     +-- Engineer (Cid Dev)",
        "  +-- CFO (Dee Cash)",
    ]


def test_numeric_employee_code_is_stringified(session, tenant):
    e = org.create_employee(tenant.id, {"employee_code": 123, "first_name": "Num", "email": "n@x.io"})
    assert e.employee_code == "123"


def test_non_string_field_rejected(session, tenant):
    with pytest.raises(ValidationError) as ei:
        org.create_employee(tenant.id, {"employee_code": {"x": 1}, "first_name": "A", "email": "a@x.io"})
    assert "employee_code" in ei.value.message


def test_non_integer_department_rejected(session, tenant):
    with pytest.raises(ValidationError) as ei:
        _emp(tenant, "E1", department_id="abc")
    assert ei.value.message == "department_id must be an integer"


def test_department_from_other_tenant_rejected(session, tenant):
    other = Tenant(name="Other", slug="other")
    session.add(other)
    session.flush()
    dept = Department(tenant_id=other.id, name="Ops", code="OPS")
    session.add(dept)
    session.flush()

    with pytest.raises(InvalidReference):
        _emp(tenant, "E1", department_id=dept.id)


def test_org_chart_unknown_root(session, tenant):
    _emp(tenant, "E1")
    with pytest.raises(NotFound):
        org.org_chart(tenant.id, root_id=99999)


def test_org_chart_root_subtree(session, tenant):
    a = _emp(tenant, "E1")
    b = _emp(tenant, "E2", manager=a)
    _emp(tenant, "E3", manager=b)
    session.commit()

    tree = org.org_chart(tenant.id, root_id=b.id)
    assert [n["employee_code"] for n in tree] == ["E2"]
    assert [n["employee_code"] for n in tree[0]["children"]] == ["E3"]


def test_org_chart_department_filter(session, tenant):
    eng = Department(tenant_id=tenant.id, name="Engineering", code="ENG")
    ops = Department(tenant_id=tenant.id, name="Operations", code="OPS")
    session.add_all([eng, ops])
    session.flush()
    ceo = _emp(tenant, "E1", department_id=ops.id)
    cto = _emp(tenant, "E2", manager=ceo, department_id=eng.id)
    _emp(tenant, "E3", manager=cto, department_id=eng.id)
    _emp(tenant, "E4", manager=ceo, department_id=ops.id)
    session.commit()

    tree = org.org_chart(tenant.id, department_id=eng.id)
    assert [n["employee_code"] for n in tree] == ["E2"]
    assert [n["employee_code"] for n in tree[0]["children"]] == ["E3"]

    with pytest.raises(NotFound):
        org.org_chart(tenant.id, department_id=99999)


def test_direct_reports_carry_counts(session, tenant):
    a = _emp(tenant, "E1")
    c = _emp(tenant, "E3", manager=a)
    b = _emp(tenant, "E2", manager=a)
    _emp(tenant, "E4", manager=b)
    session.commit()

    reports = org.direct_reports(tenant.id, a.id)
    assert [(r["employee_code"], r["direct_report_count"]) for r in reports] == [("E2", 1), ("E3", 0)]
    assert "children" not in reports[0]
    assert org.direct_reports(tenant.id, c.id) == []
    with pytest.raises(NotFound):
        org.direct_reports(tenant.id, 99999)


def test_org_stats_on_sample_org(seeded):
    stats = org.org_stats(seeded.tenant_id)
    assert stats["total_employees"] == 10
    assert stats["department_count"] == 5
    assert stats["organization_depth"] == 4
    assert stats["average_span_of_control"] == 1.8
    assert stats["max_span_of_control"] == 3
    assert stats["employees_without_manager"] == 1
    assert stats["individual_contributors"] == 5
    assert stats["headcount_by_department"] == {"EXEC": 1, "ENG": 5, "HR": 2, "FIN": 2, "SALES": 0}


def test_org_stats_empty_tenant(session, tenant):
    stats = org.org_stats(tenant.id)
    assert stats["total_employees"] == 0
    assert stats["organization_depth"] == 0
    assert stats["average_span_of_control"] == 0


def test_employee_dates_share_record_parsing(session, tenant):
    from datetime import date
    e = _emp(tenant, "E1", joining_date="15-03-2020", date_of_birth="1990-01-02")
    assert e.joining_date == date(2020, 3, 15)
    assert e.date_of_birth == date(1990, 1, 2)
    with pytest.raises(ValidationError) as ei:
        _emp(tenant, "E2", joining_date="2020/03/15")
    assert ei.value.message == "joining_date must be a date (YYYY-MM-DD)"
