from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Float, Text, JSON, ForeignKey, DateTime, func
from typing import Optional

from .user import Base


class PurchaseOrder(Base):
    __tablename__ = 'purchase_orders'
    # Status constants
    STATUS_DRAFT = 'DRAFT'
    STATUS_SUBMITTED = 'SUBMITTED'
    STATUS_APPROVED = 'APPROVED'
    STATUS_REJECTED = 'REJECTED'
    STATUS_PURCHASED = 'PURCHASED'
    STATUS_RECEIVED = 'RECEIVED'
    STATUS_CLOSED = 'CLOSED'
    ALL_STATUSES = (STATUS_DRAFT, STATUS_SUBMITTED, STATUS_APPROVED, STATUS_REJECTED,
                    STATUS_PURCHASED, STATUS_RECEIVED, STATUS_CLOSED)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    po_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    # unique: one Purchase Order per Job Order
    jo_id: Mapped[int] = mapped_column(ForeignKey('job_orders.id'), unique=True, nullable=False)
    sr_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    date_requested: Mapped[Optional[str]] = mapped_column(String(32))
    requested_by: Mapped[Optional[str]] = mapped_column(String(128))
    department: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    priority: Mapped[Optional[str]] = mapped_column(String(16))
    items: Mapped[list] = mapped_column(JSON, default=list)
    supplier_name: Mapped[Optional[str]] = mapped_column(String(150))
    supplier_contact: Mapped[Optional[str]] = mapped_column(String(150))
    supplier_address: Mapped[Optional[str]] = mapped_column(String(255))
    subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    tax: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_DRAFT, index=True)
    approvals: Mapped[list] = mapped_column(JSON, default=list)
    expected_delivery_date: Mapped[Optional[str]] = mapped_column(String(32))
    actual_delivery_date: Mapped[Optional[str]] = mapped_column(String(32))
    delivery_notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    closed_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), nullable=True)

__all__ = ['PurchaseOrder']
