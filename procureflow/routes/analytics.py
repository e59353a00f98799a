from __future__ import annotations
from datetime import datetime, timedelta, timezone
from flask import Blueprint, request
from sqlalchemy import func, select
from procureflow import get_db
from procureflow.constants.departments import ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_APPROVER, ROLE_MANAGEMENT
from procureflow.decorators.auth import require_roles
from procureflow.errors import ValidationFailed
from procureflow.models.service_request import ServiceRequest
from procureflow.models.job_order import JobOrder
from procureflow.models.purchase_order import PurchaseOrder
from procureflow.services.ledger import ACTION_BUDGET_APPROVED

analytics_bp = Blueprint('analytics', __name__)

TIME_RANGES = {'week': 7, 'month': 30, 'all': None}
SLOWEST_LIMIT = 5


def _utc_naive(value):
    """Stored timestamps come back naive on SQLite and aware elsewhere; compare in naive UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _hours(start, end) -> float:
    return (_utc_naive(end) - _utc_naive(start)).total_seconds() / 3600


def _since(time_range: str, now: datetime):
    if time_range not in TIME_RANGES:
        raise ValidationFailed(description=f'timeRange must be one of {", ".join(TIME_RANGES)}')
    days = TIME_RANGES[time_range]
    return now - timedelta(days=days) if days else None


def _month_bounds(now: datetime):
    this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_month = (this_month - timedelta(days=1)).replace(day=1)
    return last_month, this_month


def _response_times(rows):
    rows = sorted(rows, key=lambda r: r['hours'], reverse=True)
    total = sum(r['hours'] for r in rows)
    return {
        'avgHours': round(total / len(rows), 1) if rows else 0,
        'totalProcessed': len(rows),
        'slowest': [{**r, 'hours': round(r['hours'], 1)} for r in rows[:SLOWEST_LIMIT]],
    }


def _gather_analytics(since, now):
    session = get_db()

    def grouped(model, column, key):
        q = session.query(column, func.count(model.id))
        if since is not None:
            q = q.filter(model.created_at >= since)
        rows = [{key: value, 'count': int(count)} for value, count in q.group_by(column).all()]
        # Largest buckets first, ties by label for a stable payload
        rows.sort(key=lambda r: (-r['count'], str(r[key])))
        return rows

    def total(model, start=None, end=None):
        q = select(func.count(model.id))
        if start is not None:
            q = q.where(model.created_at >= start)
        if end is not None:
            q = q.where(model.created_at < end)
        return int(session.execute(q).scalar_one())

    po_value_q = select(func.coalesce(func.sum(PurchaseOrder.total_amount), 0))
    if since is not None:
        po_value_q = po_value_q.where(PurchaseOrder.created_at >= since)
    po_total = total(PurchaseOrder, since)
    po_value = float(session.execute(po_value_q).scalar_one())

    sr_to_jo = []
    q = session.query(ServiceRequest, JobOrder).join(JobOrder, JobOrder.sr_id == ServiceRequest.id)
    if since is not None:
        q = q.filter(ServiceRequest.created_at >= since)
    for sr, jo in q.all():
        if sr.created_at and jo.created_at:
            sr_to_jo.append({'srNumber': sr.sr_number, 'joNumber': jo.jo_number,
                             'hours': _hours(sr.created_at, jo.created_at)})

    jo_to_po = []
    q = (session.query(JobOrder, PurchaseOrder)
         .join(PurchaseOrder, PurchaseOrder.jo_id == JobOrder.id)
         .filter(JobOrder.type == JobOrder.TYPE_MATERIAL_REQUISITION))
    if since is not None:
        q = q.filter(JobOrder.created_at >= since)
    for jo, po in q.all():
        approved = next((a for a in (jo.approvals or []) if a.get('action') == ACTION_BUDGET_APPROVED), None)
        if approved and approved.get('timestamp') and po.created_at:
            jo_to_po.append({'joNumber': jo.jo_number, 'poNumber': po.po_number,
                             'hours': _hours(approved['timestamp'], po.created_at)})

    last_month, this_month = _month_bounds(now)
    return {
        'serviceRequests': {
            'total': total(ServiceRequest, since),
            'byStatus': grouped(ServiceRequest, ServiceRequest.status, 'status'),
            'byPriority': grouped(ServiceRequest, ServiceRequest.priority, 'priority'),
            'byDepartment': grouped(ServiceRequest, ServiceRequest.department, 'department'),
            'byCategory': grouped(ServiceRequest, ServiceRequest.service_category, 'category'),
        },
        'jobOrders': {
            'total': total(JobOrder, since),
            'byStatus': grouped(JobOrder, JobOrder.status, 'status'),
            'byType': grouped(JobOrder, JobOrder.type, 'type'),
            'byPriority': grouped(JobOrder, JobOrder.priority_level, 'priority'),
            'byDepartment': grouped(JobOrder, JobOrder.department, 'department'),
        },
        'purchaseOrders': {
            'total': po_total,
            'byStatus': grouped(PurchaseOrder, PurchaseOrder.status, 'status'),
            'byDepartment': grouped(PurchaseOrder, PurchaseOrder.department, 'department'),
            'totalValue': po_value,
            'avgOrderValue': round(po_value / po_total) if po_total else 0,
        },
        'responseTimes': {
            'srToJo': _response_times(sr_to_jo),
            'joToPo': _response_times(jo_to_po),
        },
        'trends': {
            'lastMonth': {
                'serviceRequests': total(ServiceRequest, last_month, this_month),
                'jobOrders': total(JobOrder, last_month, this_month),
                'purchaseOrders': total(PurchaseOrder, last_month, this_month),
            },
            'thisMonth': {
                'serviceRequests': total(ServiceRequest, this_month),
                'jobOrders': total(JobOrder, this_month),
                'purchaseOrders': total(PurchaseOrder, this_month),
            },
        },
    }


@analytics_bp.get('')
@require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_MANAGEMENT, ROLE_APPROVER)
def get_analytics():
    time_range = request.args.get('timeRange', 'all')
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    body = _gather_analytics(_since(time_range, now), now)
    body['timeRange'] = time_range
    return body
