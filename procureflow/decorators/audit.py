"""Audit logging decorator for mutating workflow endpoints.

Usage examples:

@audit_log('SR.CREATE', entity='ServiceRequest', entity_id_key='id', meta_keys=['srNumber', 'status'])
def create_service_request():
    ... return _sr_json(sr), 201

@audit_log('JO.APPROVE', entity='JobOrder', entity_id_arg='jo_id',
           diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_jo(kw.get('jo_id')))
def approve_job_order(jo_id): ...

Parameters:
  action: required audit action code (e.g. JO.BUDGET)
  entity: optional entity label (ServiceRequest, JobOrder, PurchaseOrder, ReceivingReport)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if entity_id_key absent).
  meta_keys: keys to project from the returned JSON into meta.
  meta_builder: callable returning a meta dict; receives (data, original_return_value, args, kwargs).
  diff_keys / pre_fetch: snapshot taken before the handler runs; changed keys land in meta['changes'].

Only successful handler returns are audited; an exception raised by the handler
propagates untouched and leaves no audit row.
"""
from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict
from flask import current_app

from procureflow.services.audit import add_audit
from procureflow import get_db


def _extract_payload(rv: Any):
    """Return the JSON-able dict of a (body[, status[, headers]]) view return."""
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    changes = {}
    for k in keys:
        if k in before and k in after and before.get(k) != after.get(k):
            changes[k] = {'before': before.get(k), 'after': after.get(k)}
    return changes


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data = _extract_payload(rv)
            try:
                if not isinstance(data, dict):
                    add_audit(action, entity, kwargs.get(entity_id_arg) if entity_id_arg else None, None)
                else:
                    entity_id = None
                    if entity_id_key and entity_id_key in data:
                        entity_id = data.get(entity_id_key)
                    elif entity_id_arg and entity_id_arg in kwargs:
                        entity_id = kwargs.get(entity_id_arg)
                    if meta_builder:
                        meta = meta_builder(data, rv, args, kwargs)
                    elif meta_keys:
                        meta = {k: data.get(k) for k in meta_keys if k in data}
                    else:
                        meta = {}
                    if diff_keys and isinstance(before_snapshot, dict):
                        changes = _diff(before_snapshot, data, diff_keys)
                        if changes:
                            meta = dict(meta or {})
                            meta['changes'] = changes
                    add_audit(action, entity, entity_id, meta)
                get_db().commit()
            except Exception:
                # workflow action already committed; audit failure is logged only
                get_db().rollback()
                current_app.logger.exception('audit %s failed', action)
            return rv
        return wrapper
    return outer
