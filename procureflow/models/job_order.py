from __future__ import annotations
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, JSON, DateTime, ForeignKey, func

from .user import Base


class JobOrder(Base):
    __tablename__ = 'job_orders'
    TYPE_SERVICE = 'SERVICE'
    TYPE_MATERIAL_REQUISITION = 'MATERIAL_REQUISITION'
    ALL_TYPES = (TYPE_SERVICE, TYPE_MATERIAL_REQUISITION)

    STATUS_DRAFT = 'DRAFT'
    STATUS_PENDING_CANVASS = 'PENDING_CANVASS'
    STATUS_BUDGET_CLEARED = 'BUDGET_CLEARED'
    STATUS_APPROVED = 'APPROVED'
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_REJECTED = 'REJECTED'
    STATUS_CLOSED = 'CLOSED'
    ALL_STATUSES = (
        STATUS_DRAFT,
        STATUS_PENDING_CANVASS,
        STATUS_BUDGET_CLEARED,
        STATUS_APPROVED,
        STATUS_IN_PROGRESS,
        STATUS_COMPLETED,
        STATUS_REJECTED,
        STATUS_CLOSED,
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    jo_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    # unique: one Job Order per Service Request
    sr_id: Mapped[int] = mapped_column(ForeignKey('service_requests.id'), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default=TYPE_SERVICE)
    date_issued: Mapped[Optional[str]] = mapped_column(String(32))
    requested_by: Mapped[str] = mapped_column(String(128), nullable=False)
    department: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    contact_person: Mapped[Optional[str]] = mapped_column(String(128))
    contact_email: Mapped[Optional[str]] = mapped_column(String(128))
    priority_level: Mapped[str] = mapped_column(String(16), nullable=False, default='MEDIUM')
    target_start_date: Mapped[Optional[str]] = mapped_column(String(32))
    target_completion_date: Mapped[Optional[str]] = mapped_column(String(32))
    service_category: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    work_description: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    reason: Mapped[Optional[str]] = mapped_column(Text)
    materials: Mapped[list] = mapped_column(JSON, default=list)
    manpower: Mapped[dict] = mapped_column(JSON, default=dict)
    schedule: Mapped[list] = mapped_column(JSON, default=list)
    budget: Mapped[dict] = mapped_column(JSON, default=dict)
    acceptance: Mapped[dict] = mapped_column(JSON, default=dict)
    material_transfer: Mapped[dict] = mapped_column(JSON, default=dict)
    approvals: Mapped[list] = mapped_column(JSON, default=list)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_DRAFT, index=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    closed_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), nullable=True)

# Ledger drives DRAFT/BUDGET_CLEARED/APPROVED; IN_PROGRESS/COMPLETED come from execution
# commands, PO receipt and material transfer; CLOSED only from an explicit status change.

__all__ = ['JobOrder']
