from __future__ import annotations
from flask import Blueprint, request
from procureflow import get_db
from procureflow.decorators.auth import require_auth, current_actor
from procureflow.decorators.audit import audit_log
from procureflow.errors import ValidationFailed
from procureflow.models.job_order import JobOrder
from procureflow.models.purchase_order import PurchaseOrder
from procureflow.services import orchestrator
from procureflow.utils.listing import paginated
from procureflow.utils.records import get_or_404, iso
from procureflow.utils.sorting import apply_multi_sort
from procureflow.utils.validation import validate_status

po_bp = Blueprint('purchase_orders', __name__)

SORTABLE = {
    'poNumber': PurchaseOrder.po_number,
    'status': PurchaseOrder.status,
    'totalAmount': PurchaseOrder.total_amount,
    'createdAt': PurchaseOrder.created_at,
    'id': PurchaseOrder.id,
}


def _po_json(po: PurchaseOrder):
    return {
        'id': po.id,
        'poNumber': po.po_number,
        'joId': po.jo_id,
        'srId': po.sr_id,
        'dateRequested': po.date_requested,
        'requestedBy': po.requested_by,
        'department': po.department,
        'priority': po.priority,
        'items': list(po.items or []),
        'supplierName': po.supplier_name,
        'supplierContact': po.supplier_contact,
        'supplierAddress': po.supplier_address,
        'subtotal': po.subtotal,
        'tax': po.tax,
        'totalAmount': po.total_amount,
        'status': po.status,
        'approvals': list(po.approvals or []),
        'expectedDeliveryDate': po.expected_delivery_date,
        'actualDeliveryDate': po.actual_delivery_date,
        'deliveryNotes': po.delivery_notes,
        'createdAt': iso(po.created_at),
        'updatedAt': iso(po.updated_at),
        'closedAt': iso(po.closed_at),
    }


def _prefetch_po(po_id):
    po = get_db().get(PurchaseOrder, po_id)
    return {'status': po.status, 'totalAmount': po.total_amount} if po else {}


@po_bp.get('')
@require_auth
def list_purchase_orders():
    session = get_db()
    q = session.query(PurchaseOrder)
    if request.args.get('status'):
        q = q.filter(PurchaseOrder.status==validate_status(request.args['status'], PurchaseOrder.ALL_STATUSES))
    if request.args.get('joId'):
        q = q.filter(PurchaseOrder.jo_id==request.args.get('joId', type=int))
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, PurchaseOrder.id,
                         default=[PurchaseOrder.created_at.desc()])
    return paginated(q, _po_json)


@po_bp.post('')
@require_auth
@audit_log('PO.CREATE', entity='PurchaseOrder', entity_id_key='id', meta_keys=['poNumber', 'totalAmount'])
def create_purchase_order():
    session = get_db()
    data = request.json or {}
    if data.get('joId') is None:
        raise ValidationFailed(description='joId required')
    try:
        jo_id = int(data['joId'])
    except (TypeError, ValueError):
        raise ValidationFailed(description='joId must be int')
    jo = get_or_404(session, JobOrder, jo_id, 'Job Order')
    po = orchestrator.create_purchase_order(session, current_actor(), jo, data)
    return _po_json(po), 201


@po_bp.get('/<int:po_id>')
@require_auth
def get_purchase_order(po_id: int):
    return _po_json(get_or_404(get_db(), PurchaseOrder, po_id, 'Purchase Order'))


@po_bp.patch('/<int:po_id>')
@require_auth
@audit_log(
    'PO.UPDATE',
    entity='PurchaseOrder',
    entity_id_key='id',
    diff_keys=['status', 'totalAmount'],
    pre_fetch=lambda a, kw: _prefetch_po(kw.get('po_id')),
    meta_keys=['status']
)
def update_purchase_order(po_id: int):
    session = get_db()
    po = get_or_404(session, PurchaseOrder, po_id, 'Purchase Order')
    po = orchestrator.update_purchase_order(session, current_actor(), po, request.json or {})
    return _po_json(po)


@po_bp.post('/<int:po_id>/approve')
@require_auth
@audit_log(
    'PO.APPROVE',
    entity='PurchaseOrder',
    entity_id_key='id',
    diff_keys=['status'],
    pre_fetch=lambda a, kw: _prefetch_po(kw.get('po_id')),
    meta_keys=['status']
)
def approve_purchase_order(po_id: int):
    session = get_db()
    data = request.json or {}
    po = get_or_404(session, PurchaseOrder, po_id, 'Purchase Order')
    po = orchestrator.approve_purchase_order(session, current_actor(), po, data.get('action'), data.get('comments'))
    return _po_json(po)
