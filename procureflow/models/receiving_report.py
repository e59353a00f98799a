from __future__ import annotations
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Float, Text, JSON, ForeignKey, DateTime, func
from .user import Base


class ReceivingReport(Base):
    __tablename__ = 'receiving_reports'
    STATUS_DRAFT = 'DRAFT'
    STATUS_SUBMITTED = 'SUBMITTED'
    STATUS_COMPLETED = 'COMPLETED'
    ALL_STATUSES = (STATUS_DRAFT, STATUS_SUBMITTED, STATUS_COMPLETED)

    UNKNOWN_SUPPLIER = 'Unknown Supplier'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    rr_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    po_id: Mapped[int] = mapped_column(ForeignKey('purchase_orders.id'), nullable=False, index=True)
    reference_number: Mapped[Optional[str]] = mapped_column(String(32))
    supplier_name: Mapped[str] = mapped_column(String(150), nullable=False)
    supplier_contact: Mapped[Optional[str]] = mapped_column(String(150))
    supplier_address: Mapped[Optional[str]] = mapped_column(String(255))
    department: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    memo: Mapped[Optional[str]] = mapped_column(Text)
    items: Mapped[list] = mapped_column(JSON, default=list)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    tax: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_DRAFT, index=True)
    received_by: Mapped[int] = mapped_column(Integer, nullable=False)
    received_by_name: Mapped[Optional[str]] = mapped_column(String(128))
    actual_delivery_date: Mapped[str] = mapped_column(String(32), nullable=False)
    delivery_notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

__all__ = ['ReceivingReport']
