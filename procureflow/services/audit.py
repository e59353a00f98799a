from __future__ import annotations
from typing import Any, Dict, Optional
from flask import g
from procureflow import get_db
from procureflow.models.audit import AuditLog


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. JO.BUDGET, PO.APPROVE, SR.CREATE
      entity: optional entity name (ServiceRequest, JobOrder, etc.)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    session = get_db()
    # Actor is set by require_auth; unauthenticated actions (signup) audit as 0
    actor = g.get('actor')
    log = AuditLog(
        actor_user_id=actor.id if actor else 0,
        actor_role=actor.role if actor else None,
        actor_department=actor.department if actor else None,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
