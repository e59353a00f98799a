from __future__ import annotations
from typing import Callable, List, Tuple
from flask import request
from sqlalchemy.orm import Query
from procureflow.config.settings import normalize_pagination
from procureflow.errors import ValidationFailed


def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        raise ValidationFailed(description=str(e))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def paginated(q: Query, serialize: Callable) -> dict:
    paged_q, total, limit, offset = apply_pagination(q)
    rows: List = [serialize(r) for r in paged_q.all()]
    return build_list_payload(rows, total, limit, offset)

__all__ = ['apply_pagination', 'build_list_payload', 'paginated']
