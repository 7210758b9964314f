# hrm_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Iterable, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from hrm_api.common.http import fail
from hrm_api.extensions import db
from hrm_api.models.ids import TenantId
from hrm_api.models.user import User, ROLE_SUPER_ADMIN, ROLE_TENANT_ADMIN

# roles that pass every permission check
_ALL_ACCESS_ROLES = {ROLE_SUPER_ADMIN, ROLE_TENANT_ADMIN}


# ---------- helpers ----------

def _wildcard_match(user_perm: str, required: str) -> bool:
    """
    Match required permission against a user's permission with simple wildcards.
    Examples:
      user_perm: '*'                  matches everything
      user_perm: 'expenses.*'         matches required: 'expenses.items.approve'
      user_perm: 'expenses.items.read' matches only exact
    """
    if user_perm in ("*", "all") or user_perm == required:
        return True
    if user_perm.endswith(".*"):
        prefix = user_perm[:-2]
        return required.startswith(prefix)
    return False


def _has_any_perm(user_perms: Set[str], required_perms: Iterable[str]) -> bool:
    if not required_perms:
        return True
    if not user_perms:
        return False
    for req in required_perms:
        if any(_wildcard_match(up, req) for up in user_perms):
            return True
    return False


def current_tenant_id() -> TenantId | None:
    claims = get_jwt() or {}
    tid = claims.get("tenant_id")
    return TenantId(int(tid)) if tid is not None else None


# ---------- decorators ----------

def requires_roles(*codes: str):
    """
    Require that the current user has one of the given roles.
    'super_admin' always passes.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            claims = get_jwt() or {}
            role = claims.get("role")
            if role is None:
                user = db.session.get(User, int(get_jwt_identity()))
                if not user or not user.is_active:
                    return fail("Unauthorized", status=401)
                role = user.role
            if role != ROLE_SUPER_ADMIN and role not in codes:
                return fail("Forbidden", status=403)
            return fn(*args, **kwargs)
        return inner
    return outer


def requires_perms(*perm_codes: str):
    """
    Require that the current user has ANY of the given permission codes.

    Fast path: read 'perms' and 'role' from JWT claims (issued at login).
    Fallback:  the user's row, for tokens minted before a permission change.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            if not perm_codes:
                return fn(*args, **kwargs)

            claims = get_jwt() or {}
            if claims.get("role") in _ALL_ACCESS_ROLES:
                return fn(*args, **kwargs)
            if _has_any_perm(set(claims.get("perms") or []), perm_codes):
                return fn(*args, **kwargs)

            uid = get_jwt_identity()
            user = db.session.get(User, int(uid)) if uid is not None else None
            if not user or not user.is_active:
                return fail("Unauthorized", status=401)
            if user.role in _ALL_ACCESS_ROLES:
                return fn(*args, **kwargs)
            if not _has_any_perm(set(user.permissions or []), perm_codes):
                return fail("Forbidden", status=403)
            return fn(*args, **kwargs)
        return inner
    return outer


def tenant_required(fn):
    """Reject tokens that carry no tenant scope."""
    @wraps(fn)
    @jwt_required()
    def inner(*args, **kwargs):
        if current_tenant_id() is None:
            return fail("Token has no tenant scope", status=403, code="NO_TENANT")
        return fn(*args, **kwargs)
    return inner
