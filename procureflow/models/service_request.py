from __future__ import annotations
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, JSON, DateTime, func

from .user import Base


class ServiceRequest(Base):
    __tablename__ = 'service_requests'
    STATUS_DRAFT = 'DRAFT'
    STATUS_SUBMITTED = 'SUBMITTED'
    STATUS_APPROVED = 'APPROVED'
    STATUS_REJECTED = 'REJECTED'
    ALL_STATUSES = (STATUS_DRAFT, STATUS_SUBMITTED, STATUS_APPROVED, STATUS_REJECTED)
    TERMINAL_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)

    PRIORITIES = ('LOW', 'MEDIUM', 'HIGH', 'URGENT')

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sr_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    requested_by: Mapped[str] = mapped_column(String(128), nullable=False)
    department: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    contact_person: Mapped[Optional[str]] = mapped_column(String(128))
    contact_email: Mapped[Optional[str]] = mapped_column(String(128))
    contact_phone: Mapped[Optional[str]] = mapped_column(String(32))
    date_of_request: Mapped[Optional[str]] = mapped_column(String(32))
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default='MEDIUM')
    service_category: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    brief_subject: Mapped[Optional[str]] = mapped_column(String(255))
    work_description: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    reason: Mapped[Optional[str]] = mapped_column(Text)
    budget_source: Mapped[Optional[str]] = mapped_column(String(128))
    target_start_date: Mapped[Optional[str]] = mapped_column(String(32))
    target_completion_date: Mapped[Optional[str]] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_SUBMITTED, index=True)
    approvals: Mapped[list] = mapped_column(JSON, default=list)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

__all__ = ['ServiceRequest']
