"""Notification triggers.

Workflow code builds ``NotificationEvent`` values and hands them to ``dispatch``,
which forwards them to the configured sink (``NOTIFICATION_SINK``; the default
sink stores ``Notification`` rows for the inbox endpoints). Delivery failures are
logged and never propagate to the action that triggered them.

Recipients are normalized labels: a department key (``'it'``, ``'finance'``),
``'management'`` for the President gate, or ``'user:<id>'`` for one account.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional
from flask import current_app

from procureflow.constants.departments import (
    normalize_department, handling_label, LEDGER_FINANCE, LEDGER_MANAGEMENT,
)
from procureflow.services.ledger import ACTION_APPROVED, ACTION_NOTED, ACTION_BUDGET_APPROVED

SERVICE_REQUEST_SUBMITTED = 'SERVICE_REQUEST_SUBMITTED'
SERVICE_REQUEST_APPROVED = 'SERVICE_REQUEST_APPROVED'
SERVICE_REQUEST_REJECTED = 'SERVICE_REQUEST_REJECTED'
JOB_ORDER_CREATED = 'JOB_ORDER_CREATED'
JOB_ORDER_NEEDS_APPROVAL = 'JOB_ORDER_NEEDS_APPROVAL'
JOB_ORDER_APPROVED = 'JOB_ORDER_APPROVED'
BUDGET_NEEDS_APPROVAL = 'BUDGET_NEEDS_APPROVAL'
BUDGET_APPROVED = 'BUDGET_APPROVED'
BUDGET_REJECTED = 'BUDGET_REJECTED'
CANVASS_COMPLETED = 'CANVASS_COMPLETED'
PURCHASE_ORDER_CREATED = 'PURCHASE_ORDER_CREATED'
PURCHASE_ORDER_NEEDS_APPROVAL = 'PURCHASE_ORDER_NEEDS_APPROVAL'
PURCHASE_ORDER_APPROVED = 'PURCHASE_ORDER_APPROVED'
PURCHASE_ORDER_REJECTED = 'PURCHASE_ORDER_REJECTED'
RECEIVING_REPORT_CREATED = 'RECEIVING_REPORT_CREATED'
FULFILLMENT_COMPLETED = 'FULFILLMENT_COMPLETED'

RECIPIENT_MANAGEMENT = 'management'
RECIPIENT_FINANCE = 'finance'
RECIPIENT_PURCHASING = 'purchasing'
RECIPIENT_OPERATIONS = 'operations'


def department_recipient(label: Optional[str]) -> str:
    return normalize_department(label)


def user_recipient(user_id) -> str:
    return f'user:{user_id}'


@dataclass(frozen=True)
class NotificationEvent:
    type: str
    entity_type: str
    entity_id: str
    recipient: str
    title: str
    message: str = ''
    link: Optional[str] = None


class DatabaseSink:
    """Persist each event as a Notification row."""

    def deliver(self, event: NotificationEvent):
        from procureflow import get_db
        from procureflow.models.notification import Notification
        session = get_db()
        session.add(Notification(
            type=event.type,
            entity_type=event.entity_type,
            entity_id=str(event.entity_id),
            recipient=event.recipient,
            title=event.title,
            message=event.message,
            link=event.link,
        ))
        session.commit()


class RecordingSink:
    """Keeps events in memory; handy for tests and dry runs."""

    def __init__(self):
        self.events: List[NotificationEvent] = []

    def deliver(self, event: NotificationEvent):
        self.events.append(event)


def get_sink():
    sink = current_app.config.get('NOTIFICATION_SINK')
    return sink if sink is not None else DatabaseSink()


def dispatch(events: Iterable[Optional[NotificationEvent]]) -> int:
    """Deliver events, returning how many were delivered."""
    sink = get_sink()
    delivered = 0
    for event in events:
        if event is None or not event.recipient:
            continue
        try:
            sink.deliver(event)
            delivered += 1
        except Exception:
            from procureflow import get_db
            get_db().rollback()
            current_app.logger.exception('notification %s for %s %s to %s failed',
                                         event.type, event.entity_type, event.entity_id, event.recipient)
    return delivered


# ---------------- Routing ---------------- #

def jo_approval_recipients(jo_type: str, service_category: str, ledger) -> List[str]:
    """Who must act next after a Job Order approval is recorded."""
    from procureflow.models.job_order import JobOrder
    ledger = list(ledger)
    if jo_type == JobOrder.TYPE_SERVICE:
        if any(r.get('role') == LEDGER_MANAGEMENT and r.get('action') == ACTION_APPROVED for r in ledger):
            return [department_recipient(handling_label(service_category))]
        return []
    finance_ok = any(r.get('role') == LEDGER_FINANCE and r.get('action') in (ACTION_NOTED, ACTION_BUDGET_APPROVED)
                     for r in ledger)
    management_ok = any(r.get('role') == LEDGER_MANAGEMENT and r.get('action') in (ACTION_APPROVED, ACTION_BUDGET_APPROVED)
                        for r in ledger)
    if finance_ok and not management_ok:
        return [RECIPIENT_MANAGEMENT]
    if not finance_ok:
        return [RECIPIENT_FINANCE]
    return []


def inbox_recipients(actor) -> List[str]:
    """Recipient labels whose notifications ``actor`` reads."""
    from procureflow.services.policy import is_president
    labels = [user_recipient(actor.id)]
    dept = department_recipient(actor.department)
    if dept:
        labels.append(dept)
    if is_president(actor) and RECIPIENT_MANAGEMENT not in labels:
        labels.append(RECIPIENT_MANAGEMENT)
    return labels


def jo_created_recipients(jo_type: str) -> List[str]:
    from procureflow.models.job_order import JobOrder
    if jo_type == JobOrder.TYPE_MATERIAL_REQUISITION:
        return [RECIPIENT_PURCHASING, RECIPIENT_FINANCE]
    return [RECIPIENT_OPERATIONS]


def event_for(type_: str, entity_type: str, entity_id, recipient: str, number: str, message: str = '',
              link: Optional[str] = None) -> NotificationEvent:
    title = f'{entity_type} {number}: {type_.replace("_", " ").title()}'
    return NotificationEvent(
        type=type_,
        entity_type=entity_type,
        entity_id=str(entity_id),
        recipient=recipient,
        title=title,
        message=message,
        link=link,
    )


__all__ = [
    'NotificationEvent', 'DatabaseSink', 'RecordingSink', 'dispatch', 'get_sink', 'event_for',
    'jo_approval_recipients', 'jo_created_recipients', 'inbox_recipients', 'department_recipient', 'user_recipient',
]
