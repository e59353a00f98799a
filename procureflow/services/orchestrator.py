"""Workflow orchestration across Service Requests, Job Orders, Purchase Orders
and Receiving Reports.

Every operation follows the same sequence: authorize through the resolver,
record on the approval ledger, derive the next status, commit the document,
then run dependent-document follow-ups and notifications. Follow-ups are
best effort (see ``services.saga``); the primary document is already committed
when they start.

Route handlers own request parsing, lookups and serialization; functions here
receive loaded model instances and raise ``procureflow.errors`` exceptions.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from procureflow.constants.departments import (
    LEDGER_DEPARTMENT_HEAD, LEDGER_FINANCE, LEDGER_MANAGEMENT, LEDGER_PURCHASING, LEDGER_ROLES,
    handling_label,
)
from procureflow.errors import Conflict, Forbidden, InvalidState, ValidationFailed
from procureflow.models.service_request import ServiceRequest
from procureflow.models.job_order import JobOrder
from procureflow.models.purchase_order import PurchaseOrder
from procureflow.models.receiving_report import ReceivingReport
from procureflow.services import notifications as nt
from procureflow.services.costing import canvass_total, estimate_budget_total, po_totals
from procureflow.services.ledger import (
    ACTION_APPROVED, ACTION_REJECTED, ACTION_SUBMITTED, ACTION_BUDGET_APPROVED, ACTION_BUDGET_REJECTED,
    ACTION_CANVASS_COMPLETED, ALL_ACTIONS, jo_ledger, make_record, po_ledger, sr_ledger, utcnow_iso,
)
from procureflow.services.numbering import next_daily_number, next_yearly_number
from procureflow.services.policy import (
    Actor, ensure, is_admin, resolve_budget, resolve_canvass, resolve_fulfillment, resolve_jo_creation,
    resolve_ledger_role, resolve_po_approval, resolve_purchasing_desk, resolve_sr_approval,
)
from procureflow.services.saga import FollowUp
from procureflow.services.status import (
    budget_fully_approved, derive_budget_status, derive_jo_status, derive_po_status, derive_sr_status,
)
from procureflow.utils.fsm import TransitionValidator
from procureflow.utils.validation import (
    as_number, list_of_dicts, optional_dict, require_fields, validate_status,
)

SR_FIELDS = {
    'requestedBy': 'requested_by',
    'department': 'department',
    'contactPerson': 'contact_person',
    'contactEmail': 'contact_email',
    'contactPhone': 'contact_phone',
    'dateOfRequest': 'date_of_request',
    'priority': 'priority',
    'serviceCategory': 'service_category',
    'briefSubject': 'brief_subject',
    'workDescription': 'work_description',
    'location': 'location',
    'reason': 'reason',
    'budgetSource': 'budget_source',
    'targetStartDate': 'target_start_date',
    'targetCompletionDate': 'target_completion_date',
}

JO_EDITABLE_FIELDS = {
    'workDescription': 'work_description',
    'location': 'location',
    'reason': 'reason',
    'priorityLevel': 'priority_level',
    'targetStartDate': 'target_start_date',
    'targetCompletionDate': 'target_completion_date',
    'contactPerson': 'contact_person',
    'contactEmail': 'contact_email',
}

PO_SUPPLIER_FIELDS = {
    'supplierName': 'supplier_name',
    'supplierContact': 'supplier_contact',
    'supplierAddress': 'supplier_address',
    'expectedDeliveryDate': 'expected_delivery_date',
    'deliveryNotes': 'delivery_notes',
}

EXECUTION_ACTIONS = ('START', 'UPDATE_MILESTONE', 'COMPLETE')
BUDGET_ACTIONS = ('APPROVE', 'REJECT')

RR_FSM = TransitionValidator({
    ReceivingReport.STATUS_DRAFT: {ReceivingReport.STATUS_SUBMITTED},
    ReceivingReport.STATUS_SUBMITTED: {ReceivingReport.STATUS_COMPLETED},
    ReceivingReport.STATUS_COMPLETED: set(),
}, label='Receiving Report')


def _now():
    return datetime.now(timezone.utc)


def _assign(obj, data: Dict[str, Any], mapping: Dict[str, str]):
    for key, attr in mapping.items():
        if key in data:
            setattr(obj, attr, data[key])


def _commit_unique(session, conflict_message: str):
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict(description=conflict_message)


def _log():
    return current_app.logger


# ---------------- Service Requests ---------------- #

def create_service_request(session, actor: Actor, data: Dict[str, Any]) -> ServiceRequest:
    require_fields(data, 'serviceCategory', 'workDescription')
    priority = validate_status(data.get('priority') or 'MEDIUM', ServiceRequest.PRIORITIES, 'priority')
    sr = ServiceRequest(
        sr_number=next_yearly_number(session, ServiceRequest.sr_number, 'SR'),
        requested_by=actor.name,
        department=actor.department or '',
        status=ServiceRequest.STATUS_SUBMITTED,
        approvals=[],
        created_by=actor.id,
    )
    _assign(sr, data, SR_FIELDS)
    sr.priority = priority
    if not sr.department:
        raise ValidationFailed(description='department required')
    session.add(sr)
    _commit_unique(session, f'Service Request number {sr.sr_number} already exists')
    nt.dispatch([
        nt.event_for(nt.SERVICE_REQUEST_SUBMITTED, 'ServiceRequest', sr.id,
                     nt.department_recipient(sr.department), sr.sr_number,
                     f'{sr.requested_by} submitted a {sr.service_category} request',
                     link=f'/service-requests/{sr.id}'),
    ])
    return sr


def update_service_request(session, actor: Actor, sr: ServiceRequest, data: Dict[str, Any]) -> ServiceRequest:
    if sr.status != ServiceRequest.STATUS_SUBMITTED:
        raise InvalidState(description=f'Service Request can only be edited while SUBMITTED. Current status: {sr.status}')
    if not (is_admin(actor) or sr.created_by == actor.id):
        raise Forbidden(description='Only the requester can edit this Service Request')
    if 'priority' in data:
        validate_status(data['priority'], ServiceRequest.PRIORITIES, 'priority')
    _assign(sr, data, SR_FIELDS)
    session.commit()
    return sr


def approve_service_request(session, actor: Actor, sr: ServiceRequest, action: str,
                            comments: Optional[str] = None) -> ServiceRequest:
    if action not in (ACTION_APPROVED, ACTION_REJECTED):
        raise ValidationFailed(description='action must be APPROVED or REJECTED')
    ledger_role = ensure(resolve_sr_approval(actor, sr.department))
    record = make_record(ledger_role, actor.id, actor.name, action, comments)
    approvals = sr_ledger(sr.approvals, sr.sr_number).record(record)
    sr.status = derive_sr_status(sr.status, action)
    sr.approvals = approvals
    session.commit()
    if sr.status == ServiceRequest.STATUS_APPROVED and ledger_role != LEDGER_DEPARTMENT_HEAD:
        _log().warning('Service Request %s approved by %s without a DEPARTMENT_HEAD entry',
                       sr.sr_number, ledger_role)

    requester = nt.user_recipient(sr.created_by) if sr.created_by else nt.department_recipient(sr.department)
    if sr.status == ServiceRequest.STATUS_APPROVED:
        events = [
            nt.event_for(nt.SERVICE_REQUEST_APPROVED, 'ServiceRequest', sr.id, requester, sr.sr_number,
                         f'Approved by {actor.name}', link=f'/service-requests/{sr.id}'),
            nt.event_for(nt.JOB_ORDER_NEEDS_APPROVAL, 'ServiceRequest', sr.id,
                         nt.department_recipient(handling_label(sr.service_category)), sr.sr_number,
                         'Service Request approved: create a Job Order', link=f'/service-requests/{sr.id}'),
        ]
    else:
        events = [
            nt.event_for(nt.SERVICE_REQUEST_REJECTED, 'ServiceRequest', sr.id, requester, sr.sr_number,
                         comments or f'Rejected by {actor.name}', link=f'/service-requests/{sr.id}'),
        ]
    nt.dispatch(events)
    return sr


# ---------------- Job Orders ---------------- #

def sr_ready_for_job_order(sr: ServiceRequest) -> bool:
    if sr.status == ServiceRequest.STATUS_APPROVED:
        return True
    return sr_ledger(sr.approvals).has(ACTION_APPROVED, LEDGER_DEPARTMENT_HEAD)


def initial_jo_status(jo_type: str) -> str:
    if jo_type == JobOrder.TYPE_MATERIAL_REQUISITION:
        return validate_status(current_app.config.get('JO_MR_INITIAL_STATUS', JobOrder.STATUS_DRAFT),
                               (JobOrder.STATUS_DRAFT, JobOrder.STATUS_PENDING_CANVASS), 'JO_MR_INITIAL_STATUS')
    return JobOrder.STATUS_DRAFT


def _material_lines(value: Any) -> List[Dict[str, Any]]:
    lines = list_of_dicts(value, 'materials')
    for line in lines:
        for key in ('quantity', 'estimatedCost'):
            if key in line:
                line[key] = as_number(line[key], f'materials.{key}')
    return lines


def _manpower(value: Any) -> Dict[str, Any]:
    manpower = optional_dict(value, 'manpower') or {}
    if 'outsourcePrice' in manpower:
        manpower['outsourcePrice'] = as_number(manpower['outsourcePrice'], 'manpower.outsourcePrice')
    return manpower


def create_job_order(session, actor: Actor, sr: ServiceRequest, data: Dict[str, Any]) -> JobOrder:
    ensure(resolve_jo_creation(actor, sr.service_category))
    if not sr_ready_for_job_order(sr):
        raise InvalidState(description=f'Service request must be APPROVED to create Job Order. Current status: {sr.status}')
    existing = session.execute(select(JobOrder).where(JobOrder.sr_id == sr.id)).scalar_one_or_none()
    if existing:
        raise Conflict(description=f'Job Order already exists for this Service Request. Existing JO: {existing.jo_number}')
    jo_type = validate_status(data.get('type') or JobOrder.TYPE_SERVICE, JobOrder.ALL_TYPES, 'type')
    materials = _material_lines(data.get('materials'))
    manpower = _manpower(data.get('manpower'))
    budget = optional_dict(data.get('budget'), 'budget') or {}
    budget.setdefault('budgetSource', sr.budget_source)
    budget['estimatedTotalCost'] = estimate_budget_total(materials, manpower, budget.get('estimatedTotalCost'))

    jo = JobOrder(
        jo_number=next_yearly_number(session, JobOrder.jo_number, 'JO'),
        sr_id=sr.id,
        type=jo_type,
        date_issued=data.get('dateIssued') or utcnow_iso()[:10],
        requested_by=sr.requested_by,
        department=sr.department,
        contact_person=sr.contact_person,
        contact_email=sr.contact_email,
        priority_level=sr.priority,
        target_start_date=sr.target_start_date,
        target_completion_date=sr.target_completion_date,
        service_category=sr.service_category,
        work_description=sr.work_description,
        location=sr.location,
        reason=sr.reason,
        materials=materials,
        manpower=manpower,
        schedule=list_of_dicts(data.get('schedule'), 'schedule'),
        budget=budget,
        acceptance={},
        material_transfer={},
        approvals=[],
        status=initial_jo_status(jo_type),
    )
    _assign(jo, data, JO_EDITABLE_FIELDS)
    session.add(jo)
    _commit_unique(session, f'Job Order already exists for Service Request {sr.sr_number}')
    nt.dispatch(
        nt.event_for(nt.JOB_ORDER_CREATED, 'JobOrder', jo.id, recipient, jo.jo_number,
                     f'{jo.type} Job Order created from {sr.sr_number}', link=f'/job-orders/{jo.id}')
        for recipient in nt.jo_created_recipients(jo.type)
    )
    return jo


def update_job_order(session, actor: Actor, jo: JobOrder, data: Dict[str, Any]) -> JobOrder:
    if jo.status == JobOrder.STATUS_CLOSED:
        raise InvalidState(description='Job Order is CLOSED and can no longer be edited')
    materials = _material_lines(data['materials']) if 'materials' in data else None
    manpower = _manpower(data['manpower']) if 'manpower' in data else None
    _assign(jo, data, JO_EDITABLE_FIELDS)
    if materials is not None:
        jo.materials = materials
    if manpower is not None:
        jo.manpower = manpower
    recompute = materials is not None or manpower is not None
    if 'schedule' in data:
        jo.schedule = list_of_dicts(data['schedule'], 'schedule')
    if 'acceptance' in data:
        jo.acceptance = {**(jo.acceptance or {}), **(optional_dict(data['acceptance'], 'acceptance') or {})}
    if recompute:
        jo.budget = {**(jo.budget or {}), 'estimatedTotalCost': estimate_budget_total(jo.materials, jo.manpower)}
    session.commit()
    return jo


def approve_job_order(session, actor: Actor, jo: JobOrder, role: str, action: str,
                      comments: Optional[str] = None) -> JobOrder:
    validate_status(role, LEDGER_ROLES, 'role')
    validate_status(action, ALL_ACTIONS, 'action')
    stamped = ensure(resolve_ledger_role(actor, role, document_department=jo.department))
    approvals = jo_ledger(jo.approvals, jo.jo_number).record(make_record(stamped, actor.id, actor.name, action, comments))
    previous = jo.status
    jo.approvals = approvals
    jo.status = derive_jo_status(jo.type, jo.status, approvals)
    session.commit()
    if jo.status != previous:
        _log().info('Job Order %s %s -> %s after %s %s', jo.jo_number, previous, jo.status, stamped, action)

    recipients = nt.jo_approval_recipients(jo.type, jo.service_category, approvals)
    kind = nt.JOB_ORDER_APPROVED if jo.type == JobOrder.TYPE_SERVICE else nt.JOB_ORDER_NEEDS_APPROVAL
    nt.dispatch(
        nt.event_for(kind, 'JobOrder', jo.id, recipient, jo.jo_number,
                     f'{stamped} recorded {action}', link=f'/job-orders/{jo.id}')
        for recipient in recipients
    )
    return jo


def _reject_service_request(session, sr_id: int):
    sr = session.get(ServiceRequest, sr_id)
    if sr is not None and sr.status != ServiceRequest.STATUS_REJECTED:
        sr.status = ServiceRequest.STATUS_REJECTED
    return sr


def update_budget(session, actor: Actor, jo: JobOrder, data: Dict[str, Any]) -> JobOrder:
    ledger_role = ensure(resolve_budget(actor))
    ledger = jo_ledger(jo.approvals, jo.jo_number)
    action = data.get('action')
    if action is not None:
        validate_status(action, BUDGET_ACTIONS, 'action')
    incoming = optional_dict(data.get('budget'), 'budget') or {}
    override = incoming.get('estimatedTotalCost')
    if override is not None:
        override = as_number(override, 'estimatedTotalCost')

    # Plain field edits by the President are allowed before Finance signs off
    changes_total = override is not None and override != ((jo.budget or {}).get('estimatedTotalCost') or 0)
    if (ledger_role == LEDGER_MANAGEMENT and (action is not None or changes_total)
            and not ledger.has(ACTION_BUDGET_APPROVED, LEDGER_FINANCE)):
        raise InvalidState(description='Finance must approve the budget before President can update or approve it')

    budget = {**(jo.budget or {}), **incoming}
    budget['estimatedTotalCost'] = estimate_budget_total(jo.materials, jo.manpower, override)
    jo.budget = budget

    comments = data.get('comments')
    follow_up = FollowUp(session, f'Budget {jo.jo_number}')
    if action == 'APPROVE':
        jo.approvals = ledger.record(make_record(ledger_role, actor.id, actor.name, ACTION_BUDGET_APPROVED, comments))
        jo.status = derive_budget_status(jo.type, jo.status, jo.approvals)
    elif action == 'REJECT':
        jo.approvals = ledger.record(make_record(ledger_role, actor.id, actor.name, ACTION_BUDGET_REJECTED, comments))
        jo.status = JobOrder.STATUS_REJECTED
        follow_up.add('reject service request', lambda: _reject_service_request(session, jo.sr_id))
    session.commit()
    follow_up.run()

    events = []
    if action == 'APPROVE':
        if budget_fully_approved(jo.approvals):
            events.append(nt.event_for(nt.BUDGET_APPROVED, 'JobOrder', jo.id, nt.RECIPIENT_PURCHASING, jo.jo_number,
                                       'Budget approved by Finance and President', link=f'/job-orders/{jo.id}'))
        elif ledger_role == LEDGER_FINANCE:
            events.append(nt.event_for(nt.BUDGET_NEEDS_APPROVAL, 'JobOrder', jo.id, nt.RECIPIENT_MANAGEMENT,
                                       jo.jo_number, f'Finance approved a budget of {budget["estimatedTotalCost"]:.2f}',
                                       link=f'/job-orders/{jo.id}'))
    elif action == 'REJECT':
        events.append(nt.event_for(nt.BUDGET_REJECTED, 'JobOrder', jo.id, nt.department_recipient(jo.department),
                                   jo.jo_number, comments or f'Budget rejected by {actor.name}',
                                   link=f'/job-orders/{jo.id}'))
    nt.dispatch(events)
    return jo


def submit_canvass(session, actor: Actor, jo: JobOrder, materials: Any) -> JobOrder:
    ensure(resolve_canvass(actor))
    if jo.type != JobOrder.TYPE_MATERIAL_REQUISITION:
        raise InvalidState(description=f'Canvass applies to MATERIAL_REQUISITION Job Orders. This Job Order is {jo.type}')
    if current_app.config.get('CANVASS_REQUIRES_PENDING', True) and jo.status != JobOrder.STATUS_PENDING_CANVASS:
        raise InvalidState(description=f'Job Order is not pending canvass. Current status: {jo.status}')
    priced = _material_lines(materials)
    if not priced:
        raise ValidationFailed(description='materials required')
    ledger = jo_ledger(jo.approvals, jo.jo_number)
    jo.materials = priced
    jo.budget = {**(jo.budget or {}), 'estimatedTotalCost': canvass_total(priced)}
    jo.approvals = ledger.record(make_record(LEDGER_PURCHASING, actor.id, actor.name, ACTION_CANVASS_COMPLETED))
    jo.status = JobOrder.STATUS_DRAFT
    session.commit()
    nt.dispatch([
        nt.event_for(nt.CANVASS_COMPLETED, 'JobOrder', jo.id, nt.RECIPIENT_FINANCE, jo.jo_number,
                     f'Canvass total {jo.budget["estimatedTotalCost"]:.2f} ready for budget review',
                     link=f'/job-orders/{jo.id}'),
    ])
    return jo


def run_execution(session, actor: Actor, jo: JobOrder, action: str, data: Dict[str, Any],
                  fulfillment: bool = False) -> JobOrder:
    """START / UPDATE_MILESTONE / COMPLETE. The fulfillment variant is gated by
    handling department and notifies the requester's department on completion."""
    if fulfillment:
        ensure(resolve_fulfillment(actor, jo.service_category, jo.requested_by))
    word = 'fulfillment' if fulfillment else 'execution'
    if action not in EXECUTION_ACTIONS:
        raise ValidationFailed(description='Invalid action. Use START, UPDATE_MILESTONE, or COMPLETE')
    acceptance = dict(jo.acceptance or {})
    if action == 'START':
        if jo.status not in (JobOrder.STATUS_APPROVED, JobOrder.STATUS_BUDGET_CLEARED):
            raise InvalidState(description=f'Job Order must be APPROVED or BUDGET_CLEARED to start {word}')
        jo.status = JobOrder.STATUS_IN_PROGRESS
        acceptance['actualStartDate'] = data.get('actualStartDate') or utcnow_iso()
    elif action == 'UPDATE_MILESTONE':
        if jo.status != JobOrder.STATUS_IN_PROGRESS:
            raise InvalidState(description='Job Order must be IN_PROGRESS to update milestones')
        if 'schedule' in data:
            jo.schedule = list_of_dicts(data['schedule'], 'schedule')
    else:
        if jo.status != JobOrder.STATUS_IN_PROGRESS:
            raise InvalidState(description=f'Job Order must be IN_PROGRESS to complete {word}')
        jo.status = JobOrder.STATUS_COMPLETED
        acceptance['actualCompletionDate'] = data.get('actualCompletionDate') or utcnow_iso()
        if data.get('workCompletionNotes'):
            acceptance['workCompletionNotes'] = data['workCompletionNotes']
    jo.acceptance = acceptance
    session.commit()
    if fulfillment and action == 'COMPLETE':
        nt.dispatch([
            nt.event_for(nt.FULFILLMENT_COMPLETED, 'JobOrder', jo.id, nt.department_recipient(jo.department),
                         jo.jo_number, f'Fulfillment completed by {actor.name}', link=f'/job-orders/{jo.id}'),
        ])
    return jo


def update_material_transfer(session, actor: Actor, jo: JobOrder, data: Dict[str, Any]) -> JobOrder:
    po = session.execute(select(PurchaseOrder).where(PurchaseOrder.jo_id == jo.id)).scalar_one_or_none()
    if po is None or po.status != PurchaseOrder.STATUS_RECEIVED:
        raise InvalidState(description='Purchase Order must be RECEIVED before materials can be transferred')
    existing = dict(jo.material_transfer or {})
    completed = bool(data.get('transferCompleted'))
    transfer = {
        'items': list_of_dicts(data['items'], 'items') if 'items' in data else existing.get('items', []),
        'transferNotes': data['transferNotes'] if 'transferNotes' in data else existing.get('transferNotes'),
        'transferCompleted': completed if 'transferCompleted' in data else existing.get('transferCompleted', False),
        'transferCompletedDate': utcnow_iso() if completed else existing.get('transferCompletedDate'),
        'transferCompletedBy': (data.get('transferCompletedBy') or actor.name) if completed
        else existing.get('transferCompletedBy'),
    }
    jo.material_transfer = transfer
    previous = jo.status
    if completed and jo.status not in (JobOrder.STATUS_COMPLETED, JobOrder.STATUS_CLOSED):
        acceptance = dict(jo.acceptance or {})
        if jo.type == JobOrder.TYPE_MATERIAL_REQUISITION:
            jo.status = JobOrder.STATUS_COMPLETED
            acceptance.setdefault('actualCompletionDate', utcnow_iso())
        elif jo.status != JobOrder.STATUS_IN_PROGRESS:
            jo.status = JobOrder.STATUS_IN_PROGRESS
            acceptance.setdefault('actualStartDate', utcnow_iso())
        jo.acceptance = acceptance
    session.commit()
    if jo.status != previous:
        _log().info('Job Order %s %s -> %s on material transfer completion', jo.jo_number, previous, jo.status)
    return jo


def set_job_order_status(session, actor: Actor, jo: JobOrder, status: str) -> JobOrder:
    jo.status = validate_status(status, JobOrder.ALL_STATUSES)
    if status == JobOrder.STATUS_CLOSED:
        jo.closed_at = _now()
    session.commit()
    return jo


# ---------------- Purchase Orders ---------------- #

def normalize_po_items(items: List[Dict[str, Any]], default_delivery: Optional[str]) -> List[Dict[str, Any]]:
    out = []
    for item in items:
        item = dict(item)
        qty = as_number(item.get('quantity'), 'quantity')
        unit = as_number(item.get('unitPrice'), 'unitPrice')
        item['quantity'] = qty
        item['unitPrice'] = unit
        if item.get('totalPrice') is None:
            item['totalPrice'] = qty * unit
        if not item.get('deliveryDate') and default_delivery:
            item['deliveryDate'] = default_delivery
        out.append(item)
    return out


def create_purchase_order(session, actor: Actor, jo: JobOrder, data: Dict[str, Any]) -> PurchaseOrder:
    ensure(resolve_purchasing_desk(actor, 'Purchase Orders'))
    if jo.type != JobOrder.TYPE_MATERIAL_REQUISITION:
        raise InvalidState(description=f'Purchase Orders can only be created for MATERIAL_REQUISITION Job Orders. '
                                       f'This Job Order is {jo.type}')
    if (current_app.config.get('PO_REQUIRES_BUDGET_APPROVAL', True)
            and not jo_ledger(jo.approvals).has(ACTION_BUDGET_APPROVED, LEDGER_MANAGEMENT)):
        raise InvalidState(description='Job Order budget must be approved by the President before creating a Purchase Order')
    existing = session.execute(select(PurchaseOrder).where(PurchaseOrder.jo_id == jo.id)).scalar_one_or_none()
    if existing:
        raise Conflict(description=f'Purchase Order already exists for this Job Order. Existing PO: {existing.po_number}')
    items = normalize_po_items(list_of_dicts(data.get('items'), 'items'), data.get('expectedDeliveryDate'))
    if not items:
        raise ValidationFailed(description='items required')
    subtotal, tax, total = po_totals(items, as_number(data.get('tax'), 'tax'))
    po = PurchaseOrder(
        po_number=next_yearly_number(session, PurchaseOrder.po_number, 'PO'),
        jo_id=jo.id,
        sr_id=jo.sr_id,
        date_requested=data.get('dateRequested') or utcnow_iso()[:10],
        requested_by=jo.requested_by,
        department=jo.department,
        priority=jo.priority_level,
        items=items,
        subtotal=subtotal,
        tax=tax,
        total_amount=total,
        status=PurchaseOrder.STATUS_DRAFT,
        approvals=[],
        created_by=actor.id,
    )
    _assign(po, data, PO_SUPPLIER_FIELDS)
    session.add(po)
    _commit_unique(session, f'Purchase Order already exists for Job Order {jo.jo_number}')
    nt.dispatch([
        nt.event_for(nt.PURCHASE_ORDER_CREATED, 'PurchaseOrder', po.id, nt.department_recipient(po.department),
                     po.po_number, f'Purchase Order created for {jo.jo_number}', link=f'/purchase-orders/{po.id}'),
    ])
    return po


def advance_job_order_on_receipt(session, jo_id: int) -> Optional[JobOrder]:
    jo = session.get(JobOrder, jo_id)
    if jo is None:
        return None
    if jo.status in (JobOrder.STATUS_IN_PROGRESS, JobOrder.STATUS_COMPLETED):
        return jo
    previous = jo.status
    jo.status = JobOrder.STATUS_IN_PROGRESS
    acceptance = dict(jo.acceptance or {})
    acceptance.setdefault('actualStartDate', utcnow_iso())
    jo.acceptance = acceptance
    _log().info('Job Order %s %s -> IN_PROGRESS on Purchase Order receipt', jo.jo_number, previous)
    return jo


def update_purchase_order(session, actor: Actor, po: PurchaseOrder, data: Dict[str, Any]) -> PurchaseOrder:
    _assign(po, data, PO_SUPPLIER_FIELDS)
    if 'items' in data or 'tax' in data:
        if 'items' in data:
            po.items = normalize_po_items(list_of_dicts(data['items'], 'items'), po.expected_delivery_date)
        po.subtotal, po.tax, po.total_amount = po_totals(
            po.items, as_number(data['tax'], 'tax') if 'tax' in data else po.tax)
    new_status = data.get('status')
    if new_status is not None:
        po.status = validate_status(new_status, PurchaseOrder.ALL_STATUSES)
        if new_status == PurchaseOrder.STATUS_CLOSED:
            po.closed_at = _now()
    session.commit()

    if new_status == PurchaseOrder.STATUS_RECEIVED:
        FollowUp(session, f'Purchase Order {po.po_number}').add(
            'advance job order', lambda: advance_job_order_on_receipt(session, po.jo_id)).run()
    elif new_status == PurchaseOrder.STATUS_SUBMITTED:
        nt.dispatch([
            nt.event_for(nt.PURCHASE_ORDER_NEEDS_APPROVAL, 'PurchaseOrder', po.id, nt.RECIPIENT_MANAGEMENT,
                         po.po_number, f'Purchase Order total {po.total_amount:.2f} needs approval',
                         link=f'/purchase-orders/{po.id}'),
        ])
    return po


def approve_purchase_order(session, actor: Actor, po: PurchaseOrder, action: str,
                           comments: Optional[str] = None) -> PurchaseOrder:
    validate_status(action, ALL_ACTIONS, 'action')
    ledger_role = ensure(resolve_po_approval(actor, action))
    record = make_record(ledger_role, actor.id, actor.name, action, comments)
    po.approvals = po_ledger(po.approvals, po.po_number).record(record)
    po.status = derive_po_status(po.status, record)
    session.commit()

    link = f'/purchase-orders/{po.id}'
    if po.status == PurchaseOrder.STATUS_APPROVED and action == ACTION_APPROVED:
        event = nt.event_for(nt.PURCHASE_ORDER_APPROVED, 'PurchaseOrder', po.id, nt.RECIPIENT_PURCHASING,
                             po.po_number, f'Approved by {actor.name}', link=link)
    elif action == ACTION_REJECTED:
        event = nt.event_for(nt.PURCHASE_ORDER_REJECTED, 'PurchaseOrder', po.id, nt.RECIPIENT_PURCHASING,
                             po.po_number, comments or f'Rejected by {actor.name}', link=link)
    elif action == ACTION_SUBMITTED:
        event = nt.event_for(nt.PURCHASE_ORDER_NEEDS_APPROVAL, 'PurchaseOrder', po.id, nt.RECIPIENT_MANAGEMENT,
                             po.po_number, f'Purchase Order total {po.total_amount:.2f} needs approval', link=link)
    else:
        event = None
    nt.dispatch([event])
    return po


# ---------------- Receiving Reports ---------------- #

def resolve_supplier(po: PurchaseOrder) -> Dict[str, Optional[str]]:
    """Supplier of the first item (supplierInfo, then supplier), then the PO-level fields."""
    first = (po.items or [{}])[0] if po.items else {}
    info = first.get('supplierInfo') or {}
    name = info.get('name') or first.get('supplier') or po.supplier_name or ReceivingReport.UNKNOWN_SUPPLIER
    return {
        'name': name,
        'contact': info.get('contact') or po.supplier_contact,
        'address': info.get('address') or po.supplier_address,
    }


def _rr_items(raw: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    out = []
    for item in raw:
        item = dict(item)
        qty = as_number(item.get('quantityReceived', item.get('quantity')), 'quantityReceived')
        unit = as_number(item.get('unitPrice'), 'unitPrice')
        item['quantityReceived'] = qty
        item['unitPrice'] = unit
        if item.get('totalPrice') is None:
            item['totalPrice'] = qty * unit
        out.append(item)
    return out


def _copy_delivery_to_po(session, po_id: int, actual_delivery_date: str, notes: Optional[str]):
    po = session.get(PurchaseOrder, po_id)
    if po is None:
        return None
    po.actual_delivery_date = actual_delivery_date
    if notes:
        po.delivery_notes = notes
    return po


def create_receiving_report(session, actor: Actor, po: PurchaseOrder, data: Dict[str, Any]) -> ReceivingReport:
    ensure(resolve_purchasing_desk(actor, 'Receiving Reports'))
    if po.status != PurchaseOrder.STATUS_RECEIVED:
        raise InvalidState(description=f'Purchase Order must be RECEIVED to create a Receiving Report. '
                                       f'Current status: {po.status}')
    require_fields(data, 'actualDeliveryDate')
    raw_items = list_of_dicts(data.get('items'), 'items') if data.get('items') is not None else list(po.items or [])
    items = _rr_items(raw_items)
    subtotal, tax, total = po_totals(items, as_number(data['tax'], 'tax') if 'tax' in data else po.tax)
    supplier = resolve_supplier(po)
    rr = ReceivingReport(
        rr_number=next_daily_number(session, ReceivingReport.rr_number, 'RR'),
        po_id=po.id,
        reference_number=po.po_number,
        supplier_name=supplier['name'],
        supplier_contact=supplier['contact'],
        supplier_address=supplier['address'],
        department=po.department,
        memo=data.get('memo'),
        items=items,
        subtotal=subtotal,
        tax=tax,
        total_amount=total,
        status=ReceivingReport.STATUS_DRAFT,
        received_by=actor.id,
        received_by_name=actor.name,
        actual_delivery_date=data['actualDeliveryDate'],
        delivery_notes=data.get('deliveryNotes'),
    )
    session.add(rr)
    _commit_unique(session, f'Receiving Report number {rr.rr_number} already exists')
    FollowUp(session, f'Receiving Report {rr.rr_number}').add(
        'copy delivery to purchase order',
        lambda: _copy_delivery_to_po(session, po.id, rr.actual_delivery_date, rr.delivery_notes)).run()
    nt.dispatch([
        nt.event_for(nt.RECEIVING_REPORT_CREATED, 'ReceivingReport', rr.id, nt.department_recipient(rr.department),
                     rr.rr_number, f'Items for {po.po_number} received', link=f'/receiving-reports/{rr.id}'),
    ])
    return rr


def update_receiving_report(session, actor: Actor, rr: ReceivingReport, data: Dict[str, Any]) -> ReceivingReport:
    if 'status' in data and data['status'] != rr.status:
        target = validate_status(data['status'], ReceivingReport.ALL_STATUSES)
        RR_FSM.assert_can_transition(rr.status, target)
        rr.status = target
    if 'items' in data or 'tax' in data:
        if 'items' in data:
            rr.items = _rr_items(list_of_dicts(data['items'], 'items'))
        rr.subtotal, rr.tax, rr.total_amount = po_totals(
            rr.items, as_number(data['tax'], 'tax') if 'tax' in data else rr.tax)
    if 'deliveryNotes' in data:
        rr.delivery_notes = data['deliveryNotes']
    if 'memo' in data:
        rr.memo = data['memo']
    session.commit()
    return rr


__all__ = [
    'create_service_request', 'update_service_request', 'approve_service_request',
    'create_job_order', 'update_job_order', 'approve_job_order', 'update_budget', 'submit_canvass',
    'run_execution', 'update_material_transfer', 'set_job_order_status',
    'create_purchase_order', 'update_purchase_order', 'approve_purchase_order', 'advance_job_order_on_receipt',
    'create_receiving_report', 'update_receiving_report', 'resolve_supplier', 'sr_ready_for_job_order',
]
