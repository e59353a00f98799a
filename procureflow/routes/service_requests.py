from __future__ import annotations
from flask import Blueprint, request
from sqlalchemy import select
from procureflow import get_db
from procureflow.constants.departments import ROLE_REQUESTER, categories_for_department
from procureflow.decorators.auth import require_auth, current_actor
from procureflow.decorators.audit import audit_log
from procureflow.models.service_request import ServiceRequest
from procureflow.models.job_order import JobOrder
from procureflow.services import orchestrator
from procureflow.services.policy import is_admin
from procureflow.utils.listing import paginated
from procureflow.utils.records import get_or_404, iso
from procureflow.utils.sorting import apply_multi_sort
from procureflow.utils.validation import validate_status

sr_bp = Blueprint('service_requests', __name__)

SORTABLE = {
    'srNumber': ServiceRequest.sr_number,
    'status': ServiceRequest.status,
    'priority': ServiceRequest.priority,
    'department': ServiceRequest.department,
    'createdAt': ServiceRequest.created_at,
    'id': ServiceRequest.id,
}


def _sr_json(sr: ServiceRequest):
    return {
        'id': sr.id,
        'srNumber': sr.sr_number,
        'requestedBy': sr.requested_by,
        'department': sr.department,
        'contactPerson': sr.contact_person,
        'contactEmail': sr.contact_email,
        'contactPhone': sr.contact_phone,
        'dateOfRequest': sr.date_of_request,
        'priority': sr.priority,
        'serviceCategory': sr.service_category,
        'briefSubject': sr.brief_subject,
        'workDescription': sr.work_description,
        'location': sr.location,
        'reason': sr.reason,
        'budgetSource': sr.budget_source,
        'targetStartDate': sr.target_start_date,
        'targetCompletionDate': sr.target_completion_date,
        'status': sr.status,
        'approvals': list(sr.approvals or []),
        'createdBy': sr.created_by,
        'createdAt': iso(sr.created_at),
        'updatedAt': iso(sr.updated_at),
    }


def _prefetch_sr(sr_id):
    sr = get_db().get(ServiceRequest, sr_id)
    return {'status': sr.status} if sr else {}


@sr_bp.get('')
@require_auth
def list_service_requests():
    session = get_db()
    actor = current_actor()
    q = session.query(ServiceRequest)
    if actor.role == ROLE_REQUESTER:
        q = q.filter(ServiceRequest.created_by==actor.id)
    status = request.args.get('status')
    if status:
        q = q.filter(ServiceRequest.status==validate_status(status, ServiceRequest.ALL_STATUSES))
    if request.args.get('department'):
        q = q.filter(ServiceRequest.department==request.args['department'])
    if request.args.get('serviceCategory'):
        q = q.filter(ServiceRequest.service_category==request.args['serviceCategory'])
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, ServiceRequest.id,
                         default=[ServiceRequest.created_at.desc()])
    return paginated(q, _sr_json)


@sr_bp.get('/approved')
@require_auth
def list_approved_without_job_order():
    """Approved Service Requests that still need a Job Order, limited to the caller's handling categories."""
    session = get_db()
    actor = current_actor()
    taken = select(JobOrder.sr_id)
    q = session.query(ServiceRequest).filter(
        ServiceRequest.status==ServiceRequest.STATUS_APPROVED,
        ServiceRequest.id.not_in(taken),
    )
    if not is_admin(actor):
        q = q.filter(ServiceRequest.service_category.in_(categories_for_department(actor.department)))
    q = q.order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.asc())
    return paginated(q, _sr_json)


@sr_bp.post('')
@require_auth
@audit_log('SR.CREATE', entity='ServiceRequest', entity_id_key='id', meta_keys=['srNumber', 'status'])
def create_service_request():
    sr = orchestrator.create_service_request(get_db(), current_actor(), request.json or {})
    return _sr_json(sr), 201


@sr_bp.get('/<int:sr_id>')
@require_auth
def get_service_request(sr_id: int):
    return _sr_json(get_or_404(get_db(), ServiceRequest, sr_id, 'Service Request'))


@sr_bp.patch('/<int:sr_id>')
@require_auth
@audit_log('SR.UPDATE', entity='ServiceRequest', entity_id_key='id')
def update_service_request(sr_id: int):
    session = get_db()
    sr = get_or_404(session, ServiceRequest, sr_id, 'Service Request')
    return _sr_json(orchestrator.update_service_request(session, current_actor(), sr, request.json or {}))


@sr_bp.post('/<int:sr_id>/approve')
@require_auth
@audit_log(
    'SR.APPROVE',
    entity='ServiceRequest',
    entity_id_key='id',
    diff_keys=['status'],
    pre_fetch=lambda a, kw: _prefetch_sr(kw.get('sr_id')),
    meta_keys=['status']
)
def approve_service_request(sr_id: int):
    session = get_db()
    data = request.json or {}
    sr = get_or_404(session, ServiceRequest, sr_id, 'Service Request')
    sr = orchestrator.approve_service_request(session, current_actor(), sr, data.get('action'), data.get('comments'))
    return _sr_json(sr)
