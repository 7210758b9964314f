from datetime import timedelta

from flask import Blueprint
from flask_jwt_extended import (
    create_access_token, create_refresh_token,
    jwt_required, get_jwt_identity
)

from hrm_api.common.http import ok, fail, json_body
from hrm_api.extensions import db
from hrm_api.models.tenant import Tenant
from hrm_api.models.user import User

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _user_payload(u: User):
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name,
        "role": u.role,
        "permissions": list(u.permissions or []),
        "tenant_id": u.tenant_id,
    }


def _claims(u: User):
    return {"tenant_id": u.tenant_id, "role": u.role, "perms": list(u.permissions or []), "email": u.email}


@bp.post("/login")
def login():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    slug = (data.get("tenant") or "").strip().lower()

    q = User.query.filter_by(email=email)
    if slug:
        q = q.join(Tenant, Tenant.id == User.tenant_id).filter(Tenant.slug == slug)
    users = q.all()
    if len(users) > 1:
        return fail("Email is registered in several tenants; pass 'tenant'", 422)

    u = users[0] if users else None
    if not u or not u.is_active or not u.check_password(password):
        return fail("Invalid credentials", 401)

    access = create_access_token(identity=str(u.id), additional_claims=_claims(u), expires_delta=timedelta(days=1))
    refresh = create_refresh_token(identity=str(u.id), additional_claims={"tenant_id": u.tenant_id})
    return ok({"access": access, "refresh": refresh, "user": _user_payload(u)})


@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid else None
    if not u or not u.is_active:
        return fail("User not found", 401)
    return ok({"access": create_access_token(identity=str(u.id), additional_claims=_claims(u))})


@bp.get("/me")
@jwt_required()
def me():
    u = db.session.get(User, int(get_jwt_identity()))
    if not u:
        return fail("User not found", 404)
    return ok(_user_payload(u))
