# hrm_api/blueprints/tenants.py
from __future__ import annotations

from flask import Blueprint
from sqlalchemy import asc, or_

from hrm_api.common.auth import requires_roles
from hrm_api.common.errors import NotFound
from hrm_api.common.http import ok, iso, json_body
from hrm_api.common.paging import apply_sort, paginate, text_q
from hrm_api.extensions import db
from hrm_api.models.tenant import Tenant
from hrm_api.models.user import ROLE_SUPER_ADMIN
from hrm_api.services.tenants import create_tenant

bp = Blueprint("tenants", __name__, url_prefix="/api/v1/tenants")


def _row(t: Tenant):
    return {
        "id": t.id,
        "name": t.name,
        "slug": t.slug,
        "domain": t.domain,
        "status": t.status,
        "settings": t.settings,
        "subscription": t.subscription,
        "created_at": iso(t.created_at),
        "updated_at": iso(t.updated_at),
    }


@bp.get("")
@requires_roles(ROLE_SUPER_ADMIN)
def list_tenants():
    qry = Tenant.query
    s = text_q()
    if s:
        like = f"%{s}%"
        qry = qry.filter(or_(Tenant.name.ilike(like), Tenant.slug.ilike(like)))
    qry = apply_sort(qry, {"name": Tenant.name, "slug": Tenant.slug, "created_at": Tenant.created_at},
                     asc(Tenant.name))
    items, meta = paginate(qry)
    return ok([_row(t) for t in items], **meta)


@bp.get("/<int:tenant_id>")
@requires_roles(ROLE_SUPER_ADMIN)
def get_tenant(tenant_id: int):
    t = db.session.get(Tenant, tenant_id)
    if not t:
        raise NotFound("Tenant not found")
    return ok(_row(t))


@bp.post("")
@requires_roles(ROLE_SUPER_ADMIN)
def create():
    t = create_tenant(json_body())
    db.session.commit()
    return ok(_row(t), 201)
