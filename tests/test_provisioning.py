from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from hrm_api.common.errors import ConnectionFailure
from hrm_api.models.employee import Employee
from hrm_api.models.master import Department
from hrm_api.models.tenant import Tenant
from hrm_api.models.timesheet import Timesheet
from hrm_api.models.user import User
from hrm_api.services import org_hierarchy as org
from hrm_api.services.provisioning import ensure_super_admin, seed_sample_org


def _by_code(session, tenant_id, code):
    return session.query(Employee).filter_by(tenant_id=tenant_id, employee_code=code).one()


def test_seed_counts(session, seeded):
    assert seeded.created is True
    assert seeded.departments == 5
    assert seeded.employees == 10
    assert session.query(Department).filter_by(tenant_id=seeded.tenant_id).count() == 5
    assert session.query(Employee).filter_by(tenant_id=seeded.tenant_id).count() == 10
    assert seeded.workflow_records["benefit_plans"] == 4
    assert seeded.workflow_records["timesheets"] == 1


def test_seed_is_idempotent(session, seeded):
    again = seed_sample_org(session)
    assert again.created is False
    assert again.tenant_id == seeded.tenant_id
    assert session.query(Tenant).filter_by(slug="acme").count() == 1
    assert session.query(Employee).count() == 10
    assert again.org_chart == seeded.org_chart


def test_seed_hierarchy(session, seeded):
    tid = seeded.tenant_id
    ceo = _by_code(session, tid, "EMP001")
    arjun = _by_code(session, tid, "EMP006")

    assert ceo.reporting_manager_id is None
    assert len(list(org.subtree(tid, ceo.id))) == 9
    assert [e.designation for e in org.chain(tid, arjun.id)] == [
        "Engineering Manager", "Chief Technology Officer", "Chief Executive Officer",
    ]


def test_seed_org_chart_lines(seeded):
    lines = seeded.org_chart
    assert len(lines) == 10
    assert lines[0] == "Chief Executive Officer (Rajesh Kumar)"
    assert lines[1] == "  +-- Chief Technology Officer (Priya Sharma)"
    assert lines[2] == "  |     +-- Engineering Manager (Vikram Singh)"


def test_seed_salaries_consistent(session, seeded):
    for e in session.query(Employee).filter_by(tenant_id=seeded.tenant_id):
        assert Decimal(e.net_salary) == Employee.expected_net(
            e.salary_basic, e.salary_hra, e.salary_allowances, e.salary_deductions)
    ceo = _by_code(session, seeded.tenant_id, "EMP001")
    assert ceo.salary_dict()["netSalary"] == 750000
    assert ceo.phone == "+91-9876543210"


def test_seed_timesheet_totals(session, seeded):
    sheet = session.query(Timesheet).filter_by(tenant_id=seeded.tenant_id).one()
    totals = {e.project.name: e.total for e in sheet.entries}
    assert totals["Project Alpha"] == Decimal("37")
    assert totals["Project Beta"] == Decimal("3")
    assert totals["Internal Meeting"] == Decimal("2.5")
    assert sheet.total_hours == Decimal("42.5")
    assert sheet.day_totals() == [Decimal("8.5")] * 5 + [Decimal("0")] * 2


def test_seed_tenant_admin_can_log_in(session, seeded):
    admin = session.query(User).filter_by(tenant_id=seeded.tenant_id).one()
    assert admin.role == "tenant_admin"
    assert admin.check_password("admin123")


def test_super_admin_bootstrap_is_idempotent(session):
    first = ensure_super_admin(session)
    second = ensure_super_admin(session)

    assert first.tenant_created and first.user_created
    assert not second.tenant_created and not second.user_created
    assert first.user_id == second.user_id
    assert session.query(Tenant).filter_by(slug="system").count() == 1
    assert session.query(User).filter_by(email="admin@hrm.com").count() == 1


def test_super_admin_password_uses_bcrypt_cost_12(session):
    res = ensure_super_admin(session)
    user = session.get(User, res.user_id)
    assert user.role == "super_admin"
    assert user.password_hash.startswith("$2b$12$")
    assert user.check_password("admin123")
    assert not user.check_password("wrong")


def test_super_admin_not_duplicated_for_another_email(session):
    first = ensure_super_admin(session)
    second = ensure_super_admin(session, email="Root@Example.com", password="other-pass")

    assert not second.user_created
    assert second.user_id == first.user_id
    assert second.email == "admin@hrm.com"
    system = session.query(Tenant).filter_by(slug="system").one()
    assert session.query(User).filter_by(tenant_id=system.id, role="super_admin").count() == 1
    assert session.query(User).filter_by(email="root@example.com").count() == 0
    assert session.get(User, first.user_id).check_password("admin123")


class _DownSession:
    def query(self, *a, **kw):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    def rollback(self):
        pass


def test_super_admin_unreachable_database():
    with pytest.raises(ConnectionFailure):
        ensure_super_admin(_DownSession())


def test_seed_unreachable_database():
    with pytest.raises(ConnectionFailure):
        seed_sample_org(_DownSession())


def test_seed_cli_prints_org_chart(app):
    res = app.test_cli_runner().invoke(args=["seed-org"])
    assert res.exit_code == 0, res.output
    assert "Organization chart:" in res.output
    assert "Chief Executive Officer (Rajesh Kumar)" in res.output

    res = app.test_cli_runner().invoke(args=["seed-org"])
    assert "nothing seeded" in res.output


def test_bootstrap_cli_prints_credentials(app):
    res = app.test_cli_runner().invoke(args=["bootstrap-super-admin"])
    assert res.exit_code == 0, res.output
    assert "admin@hrm.com" in res.output
    assert "admin123" in res.output
