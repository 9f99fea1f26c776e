"""
Scoped query builder.

Combines the mandatory policy scope with caller filters, free-text search
and a date window into one Mongo filter. The scope is always ANDed in; a
caller filter on the same key can narrow the result but never replace it.
"""

import re
from typing import Any, Dict, Iterable, List, Optional


def search_clause(search: Optional[str], fields: Iterable[str]) -> Optional[Dict[str, Any]]:
    """Case-insensitive OR across fields. User input is regex-escaped."""
    if not search or not search.strip():
        return None
    pattern = re.escape(search.strip())
    return {"$or": [{f: {"$regex": pattern, "$options": "i"}} for f in fields]}


def date_range_clause(date_field: str, start: Optional[str], end: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Inclusive range on an ISO date string field. A bare end date (YYYY-MM-DD)
    covers the whole day.
    """
    if not start and not end:
        return None
    bounds = {}
    if start:
        bounds["$gte"] = start
    if end:
        bounds["$lte"] = end + "T23:59:59.999999" if len(end) == 10 else end
    return {date_field: bounds}


def build_scoped_query(
    scope: Optional[Dict[str, Any]] = None,
    filters: Optional[Dict[str, Any]] = None,
    search: Optional[str] = None,
    search_fields: Iterable[str] = (),
    date_field: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> Dict[str, Any]:
    query: Dict[str, Any] = dict(scope or {})
    extra: List[Dict[str, Any]] = []

    for key, value in (filters or {}).items():
        if value is None:
            continue
        if key in query:
            extra.append({key: value})
        else:
            query[key] = value

    text = search_clause(search, search_fields)
    if text:
        extra.append(text)

    if date_field:
        window = date_range_clause(date_field, start, end)
        if window:
            if date_field in query:
                extra.append(window)
            else:
                query.update(window)

    if extra:
        query.setdefault("$and", [])
        query["$and"] = list(query["$and"]) + extra
    return query


def caller_filters(identity, mr: Optional[str] = None, **filters) -> Dict[str, Any]:
    """
    Drops the `mr` filter for non-admins: their scope already pins it and a
    client-supplied value must not widen or redirect it.
    """
    result = {k: v for k, v in filters.items() if v is not None}
    if mr and identity.is_admin:
        result["mr"] = mr
    return result


def pagination(page: int, limit: int) -> Dict[str, int]:
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    return {"page": page, "limit": limit, "skip": (page - 1) * limit}


def page_meta(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "currentPage": page,
        "totalPages": (total + limit - 1) // limit if limit else 0,
        "totalItems": total,
        "itemsPerPage": limit,
    }
