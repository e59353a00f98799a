"""Application settings read from the environment (``.env`` loaded by create_app)."""
from __future__ import annotations
import os
from typing import Any, Dict

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

_TRUE = ('1', 'true', 'yes', 'on')


def env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    return raw.strip().lower() in _TRUE


def load_settings() -> Dict[str, Any]:
    return {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        # DRAFT | PENDING_CANVASS
        'JO_MR_INITIAL_STATUS': os.getenv('JO_MR_INITIAL_STATUS', 'DRAFT').strip().upper(),
        'CANVASS_REQUIRES_PENDING': env_bool('CANVASS_REQUIRES_PENDING', True),
        'PO_REQUIRES_BUDGET_APPROVAL': env_bool('PO_REQUIRES_BUDGET_APPROVAL', True),
        'NOTIFICATION_SINK': None,
    }


def normalize_pagination(limit_raw, offset_raw):
    try:
        limit = int(limit_raw) if limit_raw is not None else DEFAULT_LIMIT
        offset = int(offset_raw) if offset_raw is not None else 0
    except ValueError:
        raise ValueError('limit/offset must be int')
    limit = max(1, min(limit, MAX_LIMIT))
    offset = max(0, offset)
    return limit, offset
