"""Status derivation for workflow documents.

Each function is a pure reducer: (current status, ledger snapshot or the record
just admitted) -> next status. Nothing is persisted here. Statuses owned by
explicit commands (execution, receipt, transfer, manual status changes) are
never overwritten by a ledger recompute.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, Mapping, Optional

from procureflow.constants.departments import LEDGER_FINANCE, LEDGER_MANAGEMENT
from procureflow.errors import InvalidState
from procureflow.models.service_request import ServiceRequest
from procureflow.models.job_order import JobOrder
from procureflow.models.purchase_order import PurchaseOrder
from procureflow.services.ledger import (
    ACTION_APPROVED, ACTION_REJECTED, ACTION_NOTED, ACTION_SUBMITTED, ACTION_BUDGET_APPROVED,
)

Record = Mapping[str, Any]

# Statuses a ledger recompute leaves alone
JO_COMMAND_OWNED = (
    JobOrder.STATUS_IN_PROGRESS,
    JobOrder.STATUS_COMPLETED,
    JobOrder.STATUS_REJECTED,
    JobOrder.STATUS_CLOSED,
)


def _has(ledger: Iterable[Record], action: str, role: Optional[str] = None) -> bool:
    return any(r.get('action') == action and (role is None or r.get('role') == role) for r in ledger)


def budget_fully_approved(ledger: Iterable[Record]) -> bool:
    """Both FINANCE and MANAGEMENT have recorded BUDGET_APPROVED."""
    ledger = list(ledger)
    return (_has(ledger, ACTION_BUDGET_APPROVED, LEDGER_FINANCE)
            and _has(ledger, ACTION_BUDGET_APPROVED, LEDGER_MANAGEMENT))


def derive_sr_status(current: str, action: str) -> str:
    if current in ServiceRequest.TERMINAL_STATUSES:
        raise InvalidState(description=f'Service Request is already {current}')
    if action == ACTION_APPROVED:
        return ServiceRequest.STATUS_APPROVED
    if action == ACTION_REJECTED:
        return ServiceRequest.STATUS_REJECTED
    return current


def derive_jo_status(jo_type: str, current: str, ledger: Iterable[Record]) -> str:
    if current in JO_COMMAND_OWNED:
        return current
    ledger = list(ledger)
    if jo_type == JobOrder.TYPE_MATERIAL_REQUISITION:
        if _has(ledger, ACTION_APPROVED) or budget_fully_approved(ledger):
            return JobOrder.STATUS_APPROVED
        if _has(ledger, ACTION_NOTED):
            return JobOrder.STATUS_BUDGET_CLEARED
        baseline = JobOrder.STATUS_DRAFT
    else:
        if _has(ledger, ACTION_APPROVED, LEDGER_MANAGEMENT) or budget_fully_approved(ledger):
            return JobOrder.STATUS_APPROVED
        baseline = JobOrder.STATUS_DRAFT
    # Canvass owns the exit from PENDING_CANVASS
    if current == JobOrder.STATUS_PENDING_CANVASS:
        return current
    return baseline


def derive_budget_status(jo_type: str, current: str, ledger: Iterable[Record]) -> str:
    """Status after a budget sign-off. Both sign-offs approve either JO type."""
    return derive_jo_status(jo_type, current, ledger)


def derive_po_status(current: str, record: Dict[str, Any]) -> str:
    action = record.get('action')
    if action == ACTION_APPROVED and record.get('role') == LEDGER_MANAGEMENT:
        return PurchaseOrder.STATUS_APPROVED
    if action == ACTION_REJECTED:
        return PurchaseOrder.STATUS_REJECTED
    if action == ACTION_SUBMITTED and current == PurchaseOrder.STATUS_DRAFT:
        return PurchaseOrder.STATUS_SUBMITTED
    return current


__all__ = [
    'derive_sr_status', 'derive_jo_status', 'derive_budget_status', 'derive_po_status',
    'budget_fully_approved', 'JO_COMMAND_OWNED',
]
