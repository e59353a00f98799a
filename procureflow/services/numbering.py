"""Human-readable document numbers.

SR/JO/PO: ``PREFIX-YYYY-NNNN``; RR: ``RR-YYYYMMDD-NNNN``. The sequence is the
count of existing numbers under the same period prefix plus one.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import func, select


def _next_in_period(session, column, period_prefix: str) -> str:
    count = session.execute(
        select(func.count()).where(column.like(f'{period_prefix}-%'))
    ).scalar_one()
    return f'{period_prefix}-{count + 1:04d}'


def next_yearly_number(session, column, prefix: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return _next_in_period(session, column, f'{prefix}-{now.year}')


def next_daily_number(session, column, prefix: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return _next_in_period(session, column, f"{prefix}-{now.strftime('%Y%m%d')}")


__all__ = ['next_yearly_number', 'next_daily_number']
