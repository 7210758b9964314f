# hrm_api/common/paging.py
from flask import request
from sqlalchemy import asc, desc

DEFAULT_PAGE = 1
DEFAULT_SIZE = 20
MAX_SIZE = 100

def page_limit():
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except ValueError:
        page = DEFAULT_PAGE
    try:
        size = int(request.args.get("size", DEFAULT_SIZE))
        size = max(1, min(size, MAX_SIZE))
    except ValueError:
        size = DEFAULT_SIZE
    return page, size

def sort_params(allowed: dict[str, object]):
    """
    allowed: {"name": Model.name, "created_at": Model.created_at, ...}
    ?sort=name,-created_at  => returns list of (column, asc:bool)
    Unknown keys ignored.
    """
    raw = request.args.get("sort", "")
    items = []
    for part in [p.strip() for p in raw.split(",") if p.strip()]:
        ascending = True
        key = part
        if part.startswith("-"):
            ascending = False
            key = part[1:]
        col = allowed.get(key)
        if col is not None:
            items.append((col, ascending))
    return items

def text_q():
    q = request.args.get("q", "")
    return q.strip() or None

def apply_sort(qry, allowed: dict[str, object], default):
    sorts = sort_params(allowed)
    for col, ascending in sorts:
        qry = qry.order_by(asc(col) if ascending else desc(col))
    if not sorts:
        qry = qry.order_by(default)
    return qry

def paginate(qry):
    """Returns (items, meta) for the current ?page/&size."""
    page, size = page_limit()
    total = qry.count()
    items = qry.offset((page - 1) * size).limit(size).all()
    return items, {"page": page, "size": size, "total": total}
