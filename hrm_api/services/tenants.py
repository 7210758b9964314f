# hrm_api/services/tenants.py
from __future__ import annotations

import re
from datetime import datetime, timezone
import logging

from hrm_api.common.errors import DuplicateKey, ValidationError
from hrm_api.extensions import db
from hrm_api.models.tenant import Tenant, DEFAULT_SETTINGS

log = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9-]{1,62}$")


def _subscription(raw: dict | None, now: datetime) -> dict:
    sub = dict(raw or {})
    end = sub.get("endDate")
    if end:
        try:
            end_dt = datetime.fromisoformat(str(end))
        except ValueError:
            raise ValidationError("subscription.endDate must be an ISO date")
        if end_dt.tzinfo is not None:
            # creation time is naive UTC
            end_dt = end_dt.astimezone(timezone.utc).replace(tzinfo=None)
        if end_dt < now:
            raise ValidationError("subscription.endDate cannot be before the tenant's creation time")
        sub["endDate"] = end_dt.date().isoformat() if len(str(end)) == 10 else end_dt.isoformat()
    max_emp = sub.get("maxEmployees")
    if max_emp is not None and (not isinstance(max_emp, int) or max_emp < 1):
        raise ValidationError("subscription.maxEmployees must be a positive integer")
    return sub


def create_tenant(data: dict) -> Tenant:
    """Insert a tenant. Slug is lower-cased and must be globally unique. Caller commits."""
    name = (data.get("name") or "").strip()
    slug = (data.get("slug") or "").strip().lower()
    if not name or not slug:
        raise ValidationError("name and slug are required")
    if not _SLUG_RE.match(slug):
        raise ValidationError("slug may contain lowercase letters, digits and dashes only")
    if Tenant.query.filter_by(slug=slug).first():
        raise DuplicateKey(f"Tenant slug {slug!r} is already taken")

    now = datetime.utcnow()
    settings = dict(DEFAULT_SETTINGS)
    settings.update(data.get("settings") or {})
    tenant = Tenant(
        name=name,
        slug=slug,
        domain=data.get("domain"),
        status=data.get("status") or "active",
        settings=settings,
        subscription=_subscription(data.get("subscription"), now),
        created_at=now,
    )
    db.session.add(tenant)
    db.session.flush()
    log.info("tenant %s created id=%s", slug, tenant.id)
    return tenant
