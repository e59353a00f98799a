"""Role/department resolver.

Every gate returns a ``Decision``: either allowed with the ledger role to stamp on
the approval record, or denied with a reason. ``ensure`` turns a denial into a
403 for route handlers. Nothing here touches the database or the request.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import NamedTuple, Optional
from procureflow.constants.departments import (
    Department, canonical_department, same_department, handling_departments,
    ROLE_APPROVER, ROLE_MANAGEMENT, ROLE_REQUESTER, ADMIN_ROLES,
    LEDGER_DEPARTMENT_HEAD, LEDGER_FINANCE, LEDGER_MANAGEMENT, LEDGER_PURCHASING, LEDGER_OPERATIONS,
)
from procureflow.errors import Forbidden


@dataclass(frozen=True)
class Actor:
    id: int
    name: str
    role: str
    department: Optional[str] = None
    email: Optional[str] = None

    @property
    def dept(self) -> Optional[Department]:
        return canonical_department(self.department)


class Decision(NamedTuple):
    allowed: bool
    ledger_role: Optional[str] = None
    reason: Optional[str] = None


def allow(ledger_role: Optional[str] = None) -> Decision:
    return Decision(True, ledger_role, None)


def deny(reason: str) -> Decision:
    return Decision(False, None, reason)


def ensure(decision: Decision) -> Optional[str]:
    """Return the ledger role of an allowed decision or raise Forbidden."""
    if not decision.allowed:
        raise Forbidden(description=decision.reason)
    return decision.ledger_role


def is_admin(actor: Actor) -> bool:
    return actor.role in ADMIN_ROLES


def is_president(actor: Actor) -> bool:
    """President gate: SUPER_ADMIN, ADMIN, the MANAGEMENT literal or the President department."""
    return is_admin(actor) or actor.role == ROLE_MANAGEMENT or actor.dept is Department.PRESIDENT


def in_department(actor: Actor, dept: Department) -> bool:
    return actor.dept is dept


def is_approver_in(actor: Actor, dept: Department) -> bool:
    return actor.role == ROLE_APPROVER and actor.dept is dept


def resolve_sr_approval(actor: Actor, sr_department: str) -> Decision:
    """Department head of the requesting department, or an admin stamped as MANAGEMENT."""
    dept_match = same_department(actor.department, sr_department)
    if dept_match and (actor.role == ROLE_APPROVER or is_admin(actor)):
        return allow(LEDGER_DEPARTMENT_HEAD)
    if is_admin(actor):
        return allow(LEDGER_MANAGEMENT)
    return deny('Only the Department Head of the requesting department can approve this Service Request')


def resolve_jo_creation(actor: Actor, service_category: str) -> Decision:
    if is_admin(actor) or actor.dept is Department.PRESIDENT:
        return allow()
    if actor.role == ROLE_REQUESTER:
        return deny('Requesters cannot create Job Orders')
    allowed = handling_departments(service_category)
    if actor.dept in allowed:
        return allow()
    labels = ', '.join(d.label for d in allowed)
    return deny(f'Only {labels} Department can create Job Orders for "{service_category}" service requests')


def resolve_ledger_role(actor: Actor, requested_role: str, *, document_department: Optional[str] = None) -> Decision:
    """May ``actor`` stamp ``requested_role`` on a Job Order ledger entry."""
    if requested_role == LEDGER_MANAGEMENT:
        if is_president(actor):
            return allow(LEDGER_MANAGEMENT)
        return deny('Only the President can record a MANAGEMENT approval')
    if is_admin(actor):
        if requested_role in (LEDGER_FINANCE, LEDGER_PURCHASING, LEDGER_OPERATIONS, LEDGER_DEPARTMENT_HEAD):
            return allow(requested_role)
        return deny(f'Unknown approval role {requested_role}')
    if requested_role == LEDGER_FINANCE:
        return allow(LEDGER_FINANCE) if in_department(actor, Department.FINANCE) else deny('Only Finance can record a FINANCE approval')
    if requested_role == LEDGER_PURCHASING:
        return allow(LEDGER_PURCHASING) if in_department(actor, Department.PURCHASING) else deny('Only Purchasing can record a PURCHASING approval')
    if requested_role == LEDGER_OPERATIONS:
        return allow(LEDGER_OPERATIONS) if is_approver_in(actor, Department.OPERATIONS) else deny('Only an Operations approver can record an OPERATIONS approval')
    if requested_role == LEDGER_DEPARTMENT_HEAD:
        if actor.role == ROLE_APPROVER and same_department(actor.department, document_department):
            return allow(LEDGER_DEPARTMENT_HEAD)
        return deny('Only the Department Head of the requesting department can record a DEPARTMENT_HEAD approval')
    return deny(f'Unknown approval role {requested_role}')


def resolve_budget(actor: Actor) -> Decision:
    """Finance is stamped FINANCE (checked first), the President gate is stamped MANAGEMENT."""
    if in_department(actor, Department.FINANCE):
        return allow(LEDGER_FINANCE)
    if is_president(actor):
        return allow(LEDGER_MANAGEMENT)
    return deny('Only Finance and President can approve budgets')


def resolve_canvass(actor: Actor) -> Decision:
    if in_department(actor, Department.PURCHASING) or is_admin(actor):
        return allow(LEDGER_PURCHASING)
    return deny('Only Purchasing Department can submit canvass pricing')


def resolve_fulfillment(actor: Actor, service_category: str, requested_by: Optional[str] = None) -> Decision:
    if is_admin(actor) or actor.dept is Department.PRESIDENT:
        return allow()
    if actor.dept in handling_departments(service_category):
        return allow()
    if requested_by and actor.name == requested_by:
        return allow()
    if is_approver_in(actor, Department.OPERATIONS):
        return allow(LEDGER_OPERATIONS)
    return deny('You are not authorized to manage fulfillment for this Job Order')


def resolve_purchasing_desk(actor: Actor, document: str) -> Decision:
    """PO creation and receiving reports: Purchasing approvers or admins."""
    if is_admin(actor) or is_approver_in(actor, Department.PURCHASING):
        return allow(LEDGER_PURCHASING)
    return deny(f'Only Purchasing department, ADMIN, or SUPER_ADMIN can manage {document}')


def resolve_po_approval(actor: Actor, action: str) -> Decision:
    if in_department(actor, Department.FINANCE):
        return allow(LEDGER_FINANCE)
    if is_president(actor):
        return allow(LEDGER_MANAGEMENT)
    if action == 'SUBMITTED' and is_approver_in(actor, Department.PURCHASING):
        return allow(LEDGER_PURCHASING)
    return deny('Only the President can approve Purchase Orders')


__all__ = [
    'Actor', 'Decision', 'allow', 'deny', 'ensure', 'is_admin', 'is_president',
    'resolve_sr_approval', 'resolve_jo_creation', 'resolve_ledger_role', 'resolve_budget',
    'resolve_canvass', 'resolve_fulfillment', 'resolve_purchasing_desk', 'resolve_po_approval',
]
