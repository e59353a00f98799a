from __future__ import annotations
from flask import Blueprint, request
from procureflow import get_db
from procureflow.decorators.auth import require_auth, current_actor
from procureflow.decorators.audit import audit_log
from procureflow.errors import ValidationFailed
from procureflow.models.purchase_order import PurchaseOrder
from procureflow.models.receiving_report import ReceivingReport
from procureflow.services import orchestrator
from procureflow.utils.listing import paginated
from procureflow.utils.records import get_or_404, iso
from procureflow.utils.sorting import apply_multi_sort
from procureflow.utils.validation import validate_status

rr_bp = Blueprint('receiving_reports', __name__)

SORTABLE = {
    'rrNumber': ReceivingReport.rr_number,
    'status': ReceivingReport.status,
    'actualDeliveryDate': ReceivingReport.actual_delivery_date,
    'createdAt': ReceivingReport.created_at,
    'id': ReceivingReport.id,
}


def _rr_json(rr: ReceivingReport):
    return {
        'id': rr.id,
        'rrNumber': rr.rr_number,
        'poId': rr.po_id,
        'referenceNumber': rr.reference_number,
        'supplierName': rr.supplier_name,
        'supplierContact': rr.supplier_contact,
        'supplierAddress': rr.supplier_address,
        'department': rr.department,
        'memo': rr.memo,
        'items': list(rr.items or []),
        'subtotal': rr.subtotal,
        'tax': rr.tax,
        'totalAmount': rr.total_amount,
        'status': rr.status,
        'receivedBy': rr.received_by,
        'receivedByName': rr.received_by_name,
        'actualDeliveryDate': rr.actual_delivery_date,
        'deliveryNotes': rr.delivery_notes,
        'createdAt': iso(rr.created_at),
        'updatedAt': iso(rr.updated_at),
    }


def _prefetch_rr(rr_id):
    rr = get_db().get(ReceivingReport, rr_id)
    return {'status': rr.status} if rr else {}


@rr_bp.get('')
@require_auth
def list_receiving_reports():
    session = get_db()
    q = session.query(ReceivingReport)
    if request.args.get('status'):
        q = q.filter(ReceivingReport.status==validate_status(request.args['status'], ReceivingReport.ALL_STATUSES))
    if request.args.get('poId'):
        q = q.filter(ReceivingReport.po_id==request.args.get('poId', type=int))
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, ReceivingReport.id,
                         default=[ReceivingReport.created_at.desc()])
    return paginated(q, _rr_json)


@rr_bp.post('')
@require_auth
@audit_log('RR.CREATE', entity='ReceivingReport', entity_id_key='id', meta_keys=['rrNumber', 'referenceNumber'])
def create_receiving_report():
    session = get_db()
    data = request.json or {}
    if data.get('poId') is None:
        raise ValidationFailed(description='poId required')
    try:
        po_id = int(data['poId'])
    except (TypeError, ValueError):
        raise ValidationFailed(description='poId must be int')
    po = get_or_404(session, PurchaseOrder, po_id, 'Purchase Order')
    rr = orchestrator.create_receiving_report(session, current_actor(), po, data)
    return _rr_json(rr), 201


@rr_bp.get('/<int:rr_id>')
@require_auth
def get_receiving_report(rr_id: int):
    return _rr_json(get_or_404(get_db(), ReceivingReport, rr_id, 'Receiving Report'))


@rr_bp.patch('/<int:rr_id>')
@require_auth
@audit_log(
    'RR.UPDATE',
    entity='ReceivingReport',
    entity_id_key='id',
    diff_keys=['status'],
    pre_fetch=lambda a, kw: _prefetch_rr(kw.get('rr_id')),
    meta_keys=['status']
)
def update_receiving_report(rr_id: int):
    session = get_db()
    rr = get_or_404(session, ReceivingReport, rr_id, 'Receiving Report')
    rr = orchestrator.update_receiving_report(session, current_actor(), rr, request.json or {})
    return _rr_json(rr)
