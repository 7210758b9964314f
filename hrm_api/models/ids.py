# hrm_api/models/ids.py
"""
Per-entity identifier types.

All primary keys are plain integers in the database; these aliases keep a
tenant id from being passed where an employee id is expected in service
signatures.
"""
from typing import NewType

TenantId = NewType("TenantId", int)
DepartmentId = NewType("DepartmentId", int)
EmployeeId = NewType("EmployeeId", int)
