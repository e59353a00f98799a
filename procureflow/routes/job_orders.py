from __future__ import annotations
from flask import Blueprint, request
from sqlalchemy import select
from procureflow import get_db
from procureflow.decorators.auth import require_auth, current_actor
from procureflow.decorators.audit import audit_log
from procureflow.errors import ValidationFailed
from procureflow.models.job_order import JobOrder
from procureflow.models.purchase_order import PurchaseOrder
from procureflow.models.service_request import ServiceRequest
from procureflow.services import orchestrator
from procureflow.utils.listing import paginated
from procureflow.utils.records import get_or_404, iso
from procureflow.utils.sorting import apply_multi_sort
from procureflow.utils.validation import validate_status

jo_bp = Blueprint('job_orders', __name__)

SORTABLE = {
    'joNumber': JobOrder.jo_number,
    'status': JobOrder.status,
    'type': JobOrder.type,
    'department': JobOrder.department,
    'createdAt': JobOrder.created_at,
    'id': JobOrder.id,
}

# Listing hides these unless a status filter is given
HIDDEN_BY_DEFAULT = (JobOrder.STATUS_CLOSED, JobOrder.STATUS_REJECTED)


def _jo_json(jo: JobOrder):
    return {
        'id': jo.id,
        'joNumber': jo.jo_number,
        'srId': jo.sr_id,
        'type': jo.type,
        'dateIssued': jo.date_issued,
        'requestedBy': jo.requested_by,
        'department': jo.department,
        'contactPerson': jo.contact_person,
        'contactEmail': jo.contact_email,
        'priorityLevel': jo.priority_level,
        'targetStartDate': jo.target_start_date,
        'targetCompletionDate': jo.target_completion_date,
        'serviceCategory': jo.service_category,
        'workDescription': jo.work_description,
        'location': jo.location,
        'reason': jo.reason,
        'materials': list(jo.materials or []),
        'manpower': dict(jo.manpower or {}),
        'schedule': list(jo.schedule or []),
        'budget': dict(jo.budget or {}),
        'acceptance': dict(jo.acceptance or {}),
        'materialTransfer': dict(jo.material_transfer or {}),
        'approvals': list(jo.approvals or []),
        'status': jo.status,
        'createdAt': iso(jo.created_at),
        'updatedAt': iso(jo.updated_at),
        'closedAt': iso(jo.closed_at),
    }


def _prefetch_jo(jo_id):
    jo = get_db().get(JobOrder, jo_id)
    return {'status': jo.status} if jo else {}


def _load(jo_id: int) -> JobOrder:
    return get_or_404(get_db(), JobOrder, jo_id, 'Job Order')


def _status_audit(action: str):
    return audit_log(
        action,
        entity='JobOrder',
        entity_id_key='id',
        diff_keys=['status'],
        pre_fetch=lambda a, kw: _prefetch_jo(kw.get('jo_id')),
        meta_keys=['status'],
    )


@jo_bp.get('')
@require_auth
def list_job_orders():
    session = get_db()
    q = session.query(JobOrder)
    status = request.args.get('status')
    if status in ('all', 'everything'):
        pass
    elif status:
        q = q.filter(JobOrder.status==validate_status(status, JobOrder.ALL_STATUSES))
    else:
        q = q.filter(JobOrder.status.not_in(HIDDEN_BY_DEFAULT))
    if request.args.get('type'):
        q = q.filter(JobOrder.type==validate_status(request.args['type'], JobOrder.ALL_TYPES, 'type'))
    if request.args.get('department'):
        q = q.filter(JobOrder.department==request.args['department'])
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, JobOrder.id, default=[JobOrder.created_at.desc()])
    return paginated(q, _jo_json)


@jo_bp.post('')
@require_auth
@audit_log('JO.CREATE', entity='JobOrder', entity_id_key='id', meta_keys=['joNumber', 'type', 'status'])
def create_job_order():
    session = get_db()
    data = request.json or {}
    if data.get('srId') is None:
        raise ValidationFailed(description='srId required')
    try:
        sr_id = int(data['srId'])
    except (TypeError, ValueError):
        raise ValidationFailed(description='srId must be int')
    sr = get_or_404(session, ServiceRequest, sr_id, 'Service Request')
    jo = orchestrator.create_job_order(session, current_actor(), sr, data)
    return _jo_json(jo), 201


@jo_bp.get('/<int:jo_id>')
@require_auth
def get_job_order(jo_id: int):
    session = get_db()
    jo = _load(jo_id)
    body = _jo_json(jo)
    po = session.execute(select(PurchaseOrder).where(PurchaseOrder.jo_id==jo.id)).scalar_one_or_none()
    body['purchaseOrder'] = {'id': po.id, 'poNumber': po.po_number, 'status': po.status} if po else None
    return body


@jo_bp.patch('/<int:jo_id>')
@require_auth
@audit_log('JO.UPDATE', entity='JobOrder', entity_id_key='id')
def update_job_order(jo_id: int):
    jo = orchestrator.update_job_order(get_db(), current_actor(), _load(jo_id), request.json or {})
    return _jo_json(jo)


@jo_bp.post('/<int:jo_id>/approve')
@require_auth
@_status_audit('JO.APPROVE')
def approve_job_order(jo_id: int):
    data = request.json or {}
    jo = orchestrator.approve_job_order(get_db(), current_actor(), _load(jo_id),
                                        data.get('role'), data.get('action'), data.get('comments'))
    return _jo_json(jo)


@jo_bp.patch('/<int:jo_id>/budget')
@require_auth
@_status_audit('JO.BUDGET')
def update_budget(jo_id: int):
    jo = orchestrator.update_budget(get_db(), current_actor(), _load(jo_id), request.json or {})
    return _jo_json(jo)


@jo_bp.post('/<int:jo_id>/canvass')
@require_auth
@_status_audit('JO.CANVASS')
def submit_canvass(jo_id: int):
    data = request.json or {}
    jo = orchestrator.submit_canvass(get_db(), current_actor(), _load(jo_id), data.get('materials'))
    return _jo_json(jo)


@jo_bp.patch('/<int:jo_id>/execution')
@require_auth
@_status_audit('JO.EXECUTION')
def update_execution(jo_id: int):
    data = request.json or {}
    jo = orchestrator.run_execution(get_db(), current_actor(), _load(jo_id), data.get('action'), data)
    return _jo_json(jo)


@jo_bp.patch('/<int:jo_id>/fulfillment')
@require_auth
@_status_audit('JO.FULFILLMENT')
def update_fulfillment(jo_id: int):
    data = request.json or {}
    jo = orchestrator.run_execution(get_db(), current_actor(), _load(jo_id), data.get('action'), data,
                                    fulfillment=True)
    return _jo_json(jo)


@jo_bp.get('/<int:jo_id>/transfer')
@require_auth
def get_material_transfer(jo_id: int):
    jo = _load(jo_id)
    return {'materialTransfer': dict(jo.material_transfer) if jo.material_transfer else None}


@jo_bp.patch('/<int:jo_id>/transfer')
@require_auth
@_status_audit('JO.TRANSFER')
def update_material_transfer(jo_id: int):
    jo = orchestrator.update_material_transfer(get_db(), current_actor(), _load(jo_id), request.json or {})
    return _jo_json(jo)


@jo_bp.patch('/<int:jo_id>/status')
@require_auth
@_status_audit('JO.STATUS')
def set_status(jo_id: int):
    data = request.json or {}
    if not data.get('status'):
        raise ValidationFailed(description='status required')
    jo = orchestrator.set_job_order_status(get_db(), current_actor(), _load(jo_id), data['status'])
    return _jo_json(jo)
