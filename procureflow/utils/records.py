from __future__ import annotations
from datetime import datetime
from typing import Any, Optional
from procureflow.errors import NotFound


def get_or_404(session, model, pk: int, label: Optional[str] = None):
    obj = session.get(model, pk)
    if obj is None:
        raise NotFound(description=f'{label or model.__name__} not found')
    return obj


def iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat().replace('+00:00', 'Z')
    return str(value)

__all__ = ['get_or_404', 'iso']
