from __future__ import annotations
from datetime import datetime, timezone
from flask import Blueprint, request
from procureflow import get_db
from procureflow.decorators.auth import require_auth, current_actor
from procureflow.errors import NotFound, ValidationFailed
from procureflow.models.notification import Notification
from procureflow.services.notifications import inbox_recipients
from procureflow.utils.listing import paginated
from procureflow.utils.records import iso

notif_bp = Blueprint('notifications', __name__)


def _notification_json(n: Notification):
    return {
        'id': n.id,
        'type': n.type,
        'entityType': n.entity_type,
        'entityId': n.entity_id,
        'recipient': n.recipient,
        'title': n.title,
        'message': n.message,
        'link': n.link,
        'isRead': n.is_read,
        'createdAt': iso(n.created_at),
        'readAt': iso(n.read_at),
    }


def _inbox_query():
    return get_db().query(Notification).filter(Notification.recipient.in_(inbox_recipients(current_actor())))


def _mark_read(rows):
    now = datetime.now(timezone.utc)
    for n in rows:
        if not n.is_read:
            n.is_read = True
            n.read_at = now
    get_db().commit()
    return len(rows)


@notif_bp.get('')
@require_auth
def list_notifications():
    q = _inbox_query()
    if request.args.get('unread') in ('1', 'true'):
        q = q.filter(Notification.is_read.is_(False))
    q = q.order_by(Notification.created_at.desc(), Notification.id.desc())
    payload = paginated(q, _notification_json)
    payload['unread'] = _inbox_query().filter(Notification.is_read.is_(False)).count()
    return payload


@notif_bp.patch('/<int:notification_id>')
@require_auth
def mark_notification_read(notification_id: int):
    n = _inbox_query().filter(Notification.id==notification_id).one_or_none()
    if n is None:
        raise NotFound(description='Notification not found')
    _mark_read([n])
    return _notification_json(n)


@notif_bp.post('/mark-all-read')
@require_auth
def mark_all_read():
    rows = _inbox_query().filter(Notification.is_read.is_(False)).all()
    return {'updated': _mark_read(rows)}


@notif_bp.post('/mark-read-by-entity')
@require_auth
def mark_read_by_entity():
    data = request.json or {}
    if not data.get('entityType') or data.get('entityId') is None:
        raise ValidationFailed(description='entityType and entityId required')
    rows = _inbox_query().filter(
        Notification.entity_type==data['entityType'],
        Notification.entity_id==str(data['entityId']),
        Notification.is_read.is_(False),
    ).all()
    return {'updated': _mark_read(rows)}
