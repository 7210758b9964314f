# hrm_api/services/lifecycle.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Type, Union
import logging

from hrm_api.common.errors import InvalidTransition, ValidationError
from hrm_api.models.benefits import BenefitEnrollment, EnrollmentStatus
from hrm_api.models.expense import ExpenseItem, ExpenseReport, ExpenseReportStatus, ExpenseStatus
from hrm_api.models.onboarding import CaseStatus, OffboardingCase, OnboardingCase
from hrm_api.models.timesheet import Timesheet, TimesheetStatus

log = logging.getLogger(__name__)

Transitions = Dict[Enum, FrozenSet[Enum]]

EXPENSE_TRANSITIONS: Transitions = {
    ExpenseStatus.PENDING: frozenset({ExpenseStatus.APPROVED, ExpenseStatus.REJECTED}),
    ExpenseStatus.APPROVED: frozenset(),
    ExpenseStatus.REJECTED: frozenset(),
}

EXPENSE_REPORT_TRANSITIONS: Transitions = {
    ExpenseReportStatus.DRAFT: frozenset({ExpenseReportStatus.SUBMITTED}),
    ExpenseReportStatus.SUBMITTED: frozenset({
        ExpenseReportStatus.PROCESSING, ExpenseReportStatus.APPROVED, ExpenseReportStatus.REJECTED,
    }),
    ExpenseReportStatus.PROCESSING: frozenset({ExpenseReportStatus.APPROVED, ExpenseReportStatus.REJECTED}),
    ExpenseReportStatus.APPROVED: frozenset(),
    ExpenseReportStatus.REJECTED: frozenset(),
}

CASE_TRANSITIONS: Transitions = {
    CaseStatus.PENDING: frozenset({CaseStatus.IN_PROGRESS}),
    CaseStatus.IN_PROGRESS: frozenset({CaseStatus.COMPLETED}),
    CaseStatus.COMPLETED: frozenset(),
}

TIMESHEET_TRANSITIONS: Transitions = {
    TimesheetStatus.DRAFT: frozenset({TimesheetStatus.SUBMITTED}),
    TimesheetStatus.SUBMITTED: frozenset({TimesheetStatus.APPROVED}),
    TimesheetStatus.APPROVED: frozenset(),
}

# no rejection or cancellation path for enrollments
ENROLLMENT_TRANSITIONS: Transitions = {
    EnrollmentStatus.PENDING: frozenset({EnrollmentStatus.ACTIVE}),
    EnrollmentStatus.ACTIVE: frozenset(),
}

# record type -> (status enum, transition table)
LIFECYCLES: Dict[type, tuple] = {
    ExpenseItem: (ExpenseStatus, EXPENSE_TRANSITIONS),
    ExpenseReport: (ExpenseReportStatus, EXPENSE_REPORT_TRANSITIONS),
    OnboardingCase: (CaseStatus, CASE_TRANSITIONS),
    OffboardingCase: (CaseStatus, CASE_TRANSITIONS),
    Timesheet: (TimesheetStatus, TIMESHEET_TRANSITIONS),
    BenefitEnrollment: (EnrollmentStatus, ENROLLMENT_TRANSITIONS),
}


def _lifecycle_for(record) -> tuple:
    try:
        return LIFECYCLES[type(record)]
    except KeyError:
        raise TypeError(f"{type(record).__name__} has no status lifecycle")


def _coerce(enum_cls: Type[Enum], value: Union[str, Enum]) -> Enum:
    try:
        return enum_cls(value.value if isinstance(value, Enum) else value)
    except ValueError:
        allowed = ", ".join(s.value for s in enum_cls)
        raise InvalidTransition(f"Unknown status {value!r}; expected one of: {allowed}")


def allowed_transitions(record) -> FrozenSet[Enum]:
    enum_cls, table = _lifecycle_for(record)
    return table[_coerce(enum_cls, record.status)]


def can_transition(record, new_status) -> bool:
    enum_cls, table = _lifecycle_for(record)
    try:
        target = _coerce(enum_cls, new_status)
    except InvalidTransition:
        return False
    return target in table[_coerce(enum_cls, record.status)]


def transition(record, new_status):
    """
    Move `record` to `new_status` if the lifecycle allows it.

    Raises InvalidTransition for unknown or unreachable states. Sets status and
    updated_at; does not commit.
    """
    enum_cls, table = _lifecycle_for(record)
    current = _coerce(enum_cls, record.status)
    target = _coerce(enum_cls, new_status)

    if target not in table[current]:
        raise InvalidTransition(
            f"Cannot move {type(record).__name__} from '{current.value}' to '{target.value}'",
            payload={"from": current.value, "to": target.value,
                     "allowed": sorted(s.value for s in table[current])},
        )

    if target is CaseStatus.COMPLETED and (record.progress or 0) != 100:
        raise InvalidTransition(
            f"Cannot complete a case at {record.progress}% progress",
            payload={"from": current.value, "to": target.value, "progress": record.progress},
        )

    record.status = target.value
    record.updated_at = datetime.utcnow()
    log.info("%s %s: %s -> %s", type(record).__name__, record.id, current.value, target.value)
    return record


def advance_progress(case: Union[OnboardingCase, OffboardingCase], progress: int):
    """
    Record checklist progress on an onboarding/offboarding case.

    Progress is 0..100 and never moves backwards; a completed case is frozen.
    """
    try:
        value = int(progress)
    except (TypeError, ValueError):
        raise ValidationError("progress must be an integer between 0 and 100")
    if not 0 <= value <= 100:
        raise ValidationError("progress must be between 0 and 100")
    if case.status == CaseStatus.COMPLETED.value:
        raise InvalidTransition("Progress of a completed case cannot change")
    if value < (case.progress or 0):
        raise InvalidTransition(
            f"Progress cannot decrease from {case.progress} to {value}",
            payload={"current": case.progress, "given": value},
        )
    case.progress = value
    case.updated_at = datetime.utcnow()
    return case
