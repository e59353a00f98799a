"""Reusable validation helpers for request payloads.

Status lifecycle validation plus the few shape checks the workflow endpoints
share, all raising ValidationFailed (400).
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional
from procureflow.errors import ValidationFailed


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or raises 400.
    """
    if new_status not in allowed:
        raise ValidationFailed(description=f"{field_name} invalid")
    return new_status


def require_fields(data: Dict[str, Any], *names: str):
    missing = [n for n in names if data.get(n) in (None, '')]
    if missing:
        raise ValidationFailed(description=f"{', '.join(missing)} required")


def list_of_dicts(value: Any, field_name: str) -> List[Dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ValidationFailed(description=f'{field_name} must be a list of objects')
    return [dict(v) for v in value]


def optional_dict(value: Any, field_name: str) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationFailed(description=f'{field_name} must be an object')
    return dict(value)


def as_number(value: Any, field_name: str) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        raise ValidationFailed(description=f'{field_name} must be a number')

__all__ = ['validate_status', 'require_fields', 'list_of_dicts', 'optional_dict', 'as_number']
