# hrm_api/services/provisioning.py
"""
Idempotent provisioning routines.

Both take an explicit SQLAlchemy session, commit their own work and return a
result object. They never print or exit; the CLI wrappers do that.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional
import logging

from sqlalchemy.exc import IntegrityError, OperationalError

from hrm_api.common.errors import ConnectionFailure, DuplicateKey
from hrm_api.models.benefits import BenefitEnrollment, BenefitPlan, EnrollmentStatus
from hrm_api.models.employee import Employee
from hrm_api.models.expense import ExpenseItem, ExpenseReport, ExpenseReportStatus, ExpenseStatus
from hrm_api.models.ids import TenantId
from hrm_api.models.master import Department
from hrm_api.models.onboarding import CaseStatus, OffboardingCase, OnboardingCase
from hrm_api.models.tenant import Tenant
from hrm_api.models.timesheet import Project, Timesheet, TimesheetEntry, TimesheetStatus
from hrm_api.models.user import User, ROLE_SUPER_ADMIN, ROLE_TENANT_ADMIN

log = logging.getLogger(__name__)

SYSTEM_TENANT_SLUG = "system"
SUPER_ADMIN_EMAIL = "admin@hrm.com"
SUPER_ADMIN_PASSWORD = "admin123"

SAMPLE_TENANT_SLUG = "acme"
SAMPLE_ADMIN_EMAIL = "admin@acme.local"
SAMPLE_ADMIN_PASSWORD = "admin123"


@dataclass
class SuperAdminResult:
    tenant_id: int
    user_id: int
    tenant_created: bool
    user_created: bool
    email: str
    password: str


@dataclass
class SeedResult:
    tenant_id: int
    created: bool
    departments: int = 0
    employees: int = 0
    users: int = 0
    workflow_records: Dict[str, int] = field(default_factory=dict)
    org_chart: List[str] = field(default_factory=list)


# ---------------- super admin ----------------

def _system_tenant() -> Tenant:
    return Tenant(
        name="System",
        slug=SYSTEM_TENANT_SLUG,
        status="active",
        settings={
            "timezone": "UTC",
            "dateFormat": "YYYY-MM-DD",
            "currency": "USD",
            "language": "en",
            "workingDays": [1, 2, 3, 4, 5],
            "workingHours": {"start": "09:00", "end": "18:00"},
            "leavePolicy": {
                "casualLeaves": 12, "sickLeaves": 12, "annualLeaves": 15,
                "maternityLeaves": 90, "paternityLeaves": 10,
                "carryForward": True, "maxCarryForward": 5,
            },
        },
        subscription={
            "plan": "enterprise",
            "maxEmployees": 10000,
            "maxAdmins": 100,
            "features": ["*"],
            "startDate": date.today().isoformat(),
            "billingCycle": "yearly",
        },
    )


def ensure_super_admin(session, email: str = SUPER_ADMIN_EMAIL,
                       password: str = SUPER_ADMIN_PASSWORD, _retry: bool = True) -> SuperAdminResult:
    """
    Make sure the `system` tenant and its super_admin user exist.

    Existing rows are left untouched (the password is not reset, and an existing
    super admin is reused even when `email` differs). Raises
    ConnectionFailure when the database cannot be reached.
    """
    email = email.strip().lower()
    try:
        tenant = session.query(Tenant).filter_by(slug=SYSTEM_TENANT_SLUG).first()
        tenant_created = False
        if tenant is None:
            tenant = _system_tenant()
            session.add(tenant)
            session.flush()
            tenant_created = True
            log.info("created system tenant id=%s", tenant.id)

        # one super admin per system tenant, whatever its email
        user = session.query(User).filter_by(tenant_id=tenant.id, role=ROLE_SUPER_ADMIN).first()
        user_created = False
        if user is None:
            user = User(
                tenant_id=tenant.id,
                email=email,
                first_name="Super",
                last_name="Admin",
                role=ROLE_SUPER_ADMIN,
                permissions=["*"],
                is_active=True,
                refresh_tokens=[],
            )
            user.set_password(password)
            session.add(user)
            session.flush()
            user_created = True
            log.info("created super admin %s", email)

        session.commit()
    except IntegrityError as e:
        # a concurrent run won the insert; the rows now exist
        session.rollback()
        if not _retry:
            raise DuplicateKey(f"Super admin bootstrap conflict: {e.orig if getattr(e, 'orig', None) else e}")
        log.warning("super admin bootstrap raced another run; re-reading")
        return ensure_super_admin(session, email=email, password=password, _retry=False)
    except OperationalError as e:
        session.rollback()
        raise ConnectionFailure(f"Database unreachable: {e.orig if getattr(e, 'orig', None) else e}")

    return SuperAdminResult(
        tenant_id=tenant.id,
        user_id=user.id,
        tenant_created=tenant_created,
        user_created=user_created,
        email=user.email,
        password=password,
    )


# ---------------- sample organisation ----------------

DEPARTMENTS = [
    ("Executive", "EXEC", "Executive Leadership"),
    ("Engineering", "ENG", "Software Development"),
    ("Human Resources", "HR", "People Operations"),
    ("Finance", "FIN", "Finance & Accounting"),
    ("Sales", "SALES", "Sales & Marketing"),
]

# code, first, last, dob, gender, marital, dept, designation, joined, manager code, salary, street, zip
EMPLOYEES = [
    ("EMP001", "Rajesh", "Kumar", "1975-05-15", "male", "married", "EXEC", "Chief Executive Officer",
     "2010-01-01", None, (500000, 200000, 100000, 50000), "123 MG Road", "560001"),
    ("EMP002", "Priya", "Sharma", "1980-08-20", "female", "married", "ENG", "Chief Technology Officer",
     "2012-03-15", "EMP001", (400000, 160000, 80000, 40000), "456 Brigade Road", "560025"),
    ("EMP003", "Amit", "Patel", "1982-03-10", "male", "single", "HR", "HR Director",
     "2014-06-01", "EMP001", (300000, 120000, 60000, 30000), "789 Koramangala", "560034"),
    ("EMP004", "Sneha", "Reddy", "1978-11-25", "female", "married", "FIN", "Chief Financial Officer",
     "2013-09-01", "EMP001", (380000, 152000, 76000, 38000), "321 Indiranagar", "560038"),
    ("EMP005", "Vikram", "Singh", "1985-07-18", "male", "married", "ENG", "Engineering Manager",
     "2016-02-15", "EMP002", (250000, 100000, 50000, 25000), "555 HSR Layout", "560102"),
    ("EMP006", "Arjun", "Menon", "1990-04-12", "male", "single", "ENG", "Senior Software Engineer",
     "2018-07-01", "EMP005", (150000, 60000, 30000, 15000), "111 Whitefield", "560066"),
    ("EMP007", "Kavitha", "Nair", "1992-09-28", "female", "single", "ENG", "Senior Software Engineer",
     "2019-03-15", "EMP005", (145000, 58000, 29000, 14500), "222 Electronic City", "560100"),
    ("EMP008", "Rahul", "Verma", "1993-12-05", "male", "single", "ENG", "Software Engineer",
     "2020-01-10", "EMP005", (100000, 40000, 20000, 10000), "333 Marathahalli", "560037"),
    ("EMP009", "Divya", "Gupta", "1991-06-22", "female", "married", "HR", "HR Manager",
     "2017-08-01", "EMP003", (120000, 48000, 24000, 12000), "444 JP Nagar", "560078"),
    ("EMP010", "Sanjay", "Rao", "1988-02-14", "male", "married", "FIN", "Finance Manager",
     "2015-11-01", "EMP004", (130000, 52000, 26000, 13000), "666 Jayanagar", "560041"),
]

# project, hours mon..sun
SAMPLE_TIMESHEET = [
    ("Project Alpha", [8, 8, 7, 8, 6, 0, 0]),
    ("Project Beta", [0, 0, 1, 0, 2, 0, 0]),
    ("Internal Meeting", [0.5, 0.5, 0.5, 0.5, 0.5, 0, 0]),
]


def _d(s: str) -> date:
    return datetime.strptime(s, "%Y-%m-%d").date()


def _sample_tenant() -> Tenant:
    return Tenant(
        name="Acme Corporation",
        slug=SAMPLE_TENANT_SLUG,
        domain="acme.local",
        status="active",
        settings={
            "timezone": "Asia/Kolkata",
            "dateFormat": "DD/MM/YYYY",
            "currency": "INR",
            "language": "en",
            "workingDays": [1, 2, 3, 4, 5],
            "workingHours": {"start": "09:00", "end": "18:00"},
        },
        subscription={
            "plan": "enterprise",
            "maxEmployees": 500,
            "features": ["payroll", "attendance", "leaves", "analytics"],
            "endDate": date(date.today().year + 1, 12, 31).isoformat(),
        },
    )


def _seed_employees(session, tenant: Tenant, depts: Dict[str, Department]) -> Dict[str, Employee]:
    # rows are ordered so every manager is inserted (and flushed) before its reports
    by_code: Dict[str, Employee] = {}
    for (code, first, last, dob, gender, marital, dept, designation, joined,
         mgr_code, (basic, hra, allow, ded), street, zipcode) in EMPLOYEES:
        emp = Employee(
            tenant_id=tenant.id,
            employee_code=code,
            first_name=first,
            last_name=last,
            email=f"{first}.{last}@acme.local".lower(),
            phone=f"+91-98765432{9 + int(code[3:])}",
            date_of_birth=_d(dob),
            gender=gender,
            marital_status=marital,
            department_id=depts[dept].id,
            designation=designation,
            employment_type="full-time",
            joining_date=_d(joined),
            reporting_manager_id=by_code[mgr_code].id if mgr_code else None,
            status="active",
            salary_basic=basic,
            salary_hra=hra,
            salary_allowances=allow,
            salary_deductions=ded,
            net_salary=Employee.expected_net(basic, hra, allow, ded),
            salary_currency="INR",
            address={"street": street, "city": "Bangalore", "state": "Karnataka",
                     "country": "India", "zipCode": zipcode},
        )
        session.add(emp)
        session.flush()
        by_code[code] = emp
    return by_code


def _seed_workflows(session, tenant: Tenant, emps: Dict[str, Employee]) -> Dict[str, int]:
    tid = tenant.id

    plans = {
        p.name: p for p in [
            BenefitPlan(tenant_id=tid, name="Premium Health Plan", plan_type="health", coverage="Family", premium=450),
            BenefitPlan(tenant_id=tid, name="Basic Health Plan", plan_type="health", coverage="Individual", premium=200),
            BenefitPlan(tenant_id=tid, name="401(k) Retirement", plan_type="retirement", match_pct=6),
            BenefitPlan(tenant_id=tid, name="Wellness Program", plan_type="wellness", benefit="$500/year"),
        ]
    }
    session.add_all(plans.values())
    session.flush()
    enrollments = [
        BenefitEnrollment(tenant_id=tid, employee_id=emps["EMP006"].id, plan_id=plans["Premium Health Plan"].id,
                          status=EnrollmentStatus.ACTIVE.value, start_date=date(2024, 1, 1), dependents=3),
        BenefitEnrollment(tenant_id=tid, employee_id=emps["EMP007"].id, plan_id=plans["401(k) Retirement"].id,
                          status=EnrollmentStatus.ACTIVE.value, start_date=date(2023, 6, 1), contribution_pct=8),
        BenefitEnrollment(tenant_id=tid, employee_id=emps["EMP008"].id, plan_id=plans["Basic Health Plan"].id,
                          status=EnrollmentStatus.PENDING.value, start_date=date(2024, 2, 1)),
    ]
    session.add_all(enrollments)

    trip = ExpenseReport(tenant_id=tid, employee_id=emps["EMP006"].id, title="January Business Trip",
                         report_date=date(2024, 1, 20), status=ExpenseReportStatus.SUBMITTED.value)
    session.add(trip)
    session.flush()
    items = [
        ExpenseItem(tenant_id=tid, employee_id=emps["EMP006"].id, report_id=trip.id, category="travel",
                    description="Flight to NYC", amount=450, expense_date=date(2024, 1, 15),
                    status=ExpenseStatus.PENDING.value),
        ExpenseItem(tenant_id=tid, employee_id=emps["EMP007"].id, category="meals",
                    description="Client dinner", amount=120, expense_date=date(2024, 1, 14),
                    status=ExpenseStatus.APPROVED.value),
        ExpenseItem(tenant_id=tid, employee_id=emps["EMP008"].id, category="transport",
                    description="Uber rides", amount=85, expense_date=date(2024, 1, 13),
                    status=ExpenseStatus.APPROVED.value),
        ExpenseItem(tenant_id=tid, employee_id=emps["EMP009"].id, category="lodging",
                    description="Hotel stay", amount=320, expense_date=date(2024, 1, 12),
                    status=ExpenseStatus.REJECTED.value),
    ]
    session.add_all(items)

    onboarding = [
        OnboardingCase(tenant_id=tid, employee_id=emps["EMP008"].id, buddy_id=emps["EMP007"].id,
                       position="Software Engineer", start_date=date(2024, 1, 15), progress=75,
                       status=CaseStatus.IN_PROGRESS.value),
        OnboardingCase(tenant_id=tid, employee_id=emps["EMP009"].id, buddy_id=emps["EMP003"].id,
                       position="HR Manager", start_date=date(2024, 1, 8), progress=100,
                       status=CaseStatus.COMPLETED.value),
    ]
    offboarding = [
        OffboardingCase(tenant_id=tid, employee_id=emps["EMP010"].id, position="Finance Manager",
                        last_day=date(2024, 2, 28), progress=20, status=CaseStatus.PENDING.value,
                        clearance_done=1, clearance_total=5),
    ]
    session.add_all(onboarding + offboarding)

    projects = {
        name: Project(tenant_id=tid, name=name, client=client, budget_hours=budget)
        for name, client, budget in (
            ("Project Alpha", "Acme Corp", 200),
            ("Project Beta", "Tech Inc", 100),
            ("Internal Meeting", "Internal", 50),
        )
    }
    session.add_all(projects.values())
    session.flush()

    sheet = Timesheet(tenant_id=tid, employee_id=emps["EMP006"].id, week_start=date(2024, 1, 15),
                      status=TimesheetStatus.DRAFT.value)
    sheet.entries = [TimesheetEntry(project_id=projects[name].id, hours=hours) for name, hours in SAMPLE_TIMESHEET]
    session.add(sheet)
    session.flush()

    return {
        "benefit_plans": len(plans),
        "benefit_enrollments": len(enrollments),
        "expense_reports": 1,
        "expense_items": len(items),
        "onboarding_cases": len(onboarding),
        "offboarding_cases": len(offboarding),
        "projects": len(projects),
        "timesheets": 1,
    }


def seed_sample_org(session, admin_password: str = SAMPLE_ADMIN_PASSWORD) -> SeedResult:
    """
    Insert the Acme sample organisation: 1 tenant, 5 departments, 10 employees
    with a reporting hierarchy, a tenant admin and sample workflow records.

    Keyed on the tenant slug: a second run changes nothing.
    """
    from hrm_api.services.org_hierarchy import org_chart_lines

    try:
        existing: Optional[Tenant] = session.query(Tenant).filter_by(slug=SAMPLE_TENANT_SLUG).first()
        if existing is not None:
            log.info("sample tenant %r already present (id=%s)", SAMPLE_TENANT_SLUG, existing.id)
            return SeedResult(
                tenant_id=existing.id,
                created=False,
                departments=session.query(Department).filter_by(tenant_id=existing.id).count(),
                employees=session.query(Employee).filter_by(tenant_id=existing.id).count(),
                users=session.query(User).filter_by(tenant_id=existing.id).count(),
                org_chart=org_chart_lines(TenantId(existing.id)),
            )

        tenant = _sample_tenant()
        session.add(tenant)
        session.flush()
        log.info("created tenant %s id=%s", tenant.slug, tenant.id)

        depts: Dict[str, Department] = {}
        for name, code, desc in DEPARTMENTS:
            depts[code] = Department(tenant_id=tenant.id, name=name, code=code, description=desc, status="active")
            session.add(depts[code])
        session.flush()

        emps = _seed_employees(session, tenant, depts)

        admin = User(
            tenant_id=tenant.id,
            email=SAMPLE_ADMIN_EMAIL,
            first_name="Admin",
            last_name="User",
            role=ROLE_TENANT_ADMIN,
            permissions=["all"],
            is_active=True,
        )
        admin.set_password(admin_password)
        session.add(admin)

        workflow_counts = _seed_workflows(session, tenant, emps)
        session.commit()
    except OperationalError as e:
        session.rollback()
        raise ConnectionFailure(f"Database unreachable: {e.orig if getattr(e, 'orig', None) else e}")

    return SeedResult(
        tenant_id=tenant.id,
        created=True,
        departments=len(depts),
        employees=len(emps),
        users=1,
        workflow_records=workflow_counts,
        org_chart=org_chart_lines(TenantId(tenant.id)),
    )
