from __future__ import annotations
from typing import List, Tuple
from procureflow.errors import ValidationFailed


def parse_sort(sort_expr: str | None) -> List[Tuple[str, bool]]:
    """'-createdAt,srNumber' -> [('createdAt', True), ('srNumber', False)]"""
    out = []
    for raw in (sort_expr or '').split(','):
        token = raw.strip()
        if token:
            out.append((token.lstrip('-'), token.startswith('-')))
    return out


def apply_multi_sort(query, sort_expr: str | None, allowed: dict, tie_breaker, default=None):
    """Order a listing query by the camelCase keys in ``sort_expr``.

    Unknown keys are a 400. ``default`` clauses apply when nothing is requested;
    ``tie_breaker`` (ascending) is always appended so pages are stable.
    """
    fields = parse_sort(sort_expr)
    if not fields:
        return query.order_by(*(default or []), tie_breaker.asc())
    clauses = []
    for key, desc in fields:
        col = allowed.get(key)
        if col is None:
            raise ValidationFailed(description=f'Invalid sort field {key}')
        clauses.append(col.desc() if desc else col.asc())
    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)

__all__ = ['apply_multi_sort', 'parse_sort']
