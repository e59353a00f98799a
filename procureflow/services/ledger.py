"""Append-only approval ledger shared by Service Requests, Job Orders and Purchase Orders.

Records are plain dicts (they live in a JSON column):
    {'role', 'userId', 'userName', 'action', 'timestamp', 'comments'}

Each document type admits a new record through its own dedup policy:
  * SR / PO reject a second record with the same (userId, action).
  * JO replaces an earlier record with the same (role, action).
``ApprovalLedger.record`` never mutates the list it was built from; callers assign
the returned list back onto the model so the JSON column is flagged dirty.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from procureflow.errors import Conflict

ACTION_PREPARED = 'PREPARED'
ACTION_REVIEWED = 'REVIEWED'
ACTION_NOTED = 'NOTED'
ACTION_APPROVED = 'APPROVED'
ACTION_REJECTED = 'REJECTED'
ACTION_SUBMITTED = 'SUBMITTED'
ACTION_BUDGET_APPROVED = 'BUDGET_APPROVED'
ACTION_BUDGET_REJECTED = 'BUDGET_REJECTED'
ACTION_CANVASS_COMPLETED = 'CANVASS_COMPLETED'
ALL_ACTIONS = (
    ACTION_PREPARED, ACTION_REVIEWED, ACTION_NOTED, ACTION_APPROVED, ACTION_REJECTED,
    ACTION_SUBMITTED, ACTION_BUDGET_APPROVED, ACTION_BUDGET_REJECTED, ACTION_CANVASS_COMPLETED,
)

APPEND = 'append'
REPLACE = 'replace'
REJECT = 'reject'

Record = Dict[str, Any]


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def make_record(role: str, user_id, user_name: str, action: str, comments: Optional[str] = None,
                timestamp: Optional[str] = None) -> Record:
    return {
        'role': role,
        'userId': str(user_id),
        'userName': user_name,
        'action': action,
        'timestamp': timestamp or utcnow_iso(),
        'comments': comments or '',
    }


class DedupPolicy:
    def admit(self, existing: Sequence[Record], incoming: Record) -> str:
        raise NotImplementedError


class RejectSameActorAction(DedupPolicy):
    def admit(self, existing, incoming):
        for rec in existing:
            if rec.get('userId') == incoming.get('userId') and rec.get('action') == incoming.get('action'):
                return REJECT
        return APPEND


class ReplaceSameRoleAction(DedupPolicy):
    def admit(self, existing, incoming):
        for rec in existing:
            if rec.get('role') == incoming.get('role') and rec.get('action') == incoming.get('action'):
                return REPLACE
        return APPEND


class ApprovalLedger:
    def __init__(self, entries: Optional[Iterable[Record]], policy: DedupPolicy, label: str = 'Document'):
        self._entries: Tuple[Record, ...] = tuple(dict(e) for e in (entries or ()))
        self.policy = policy
        self.label = label

    @property
    def snapshot(self) -> Tuple[Record, ...]:
        return self._entries

    def record(self, incoming: Record) -> List[Record]:
        verdict = self.policy.admit(self._entries, incoming)
        if verdict == REJECT:
            raise Conflict(description=f"{self.label} already {incoming.get('action')} by this user")
        if verdict == REPLACE:
            kept = [e for e in self._entries if not (e.get('role') == incoming.get('role') and e.get('action') == incoming.get('action'))]
        else:
            kept = list(self._entries)
        kept.append(dict(incoming))
        self._entries = tuple(kept)
        return list(kept)

    def has(self, action: str, role: Optional[str] = None) -> bool:
        return self.find(action, role) is not None

    def find(self, action: str, role: Optional[str] = None) -> Optional[Record]:
        """Oldest record matching action (and role if given)."""
        for e in self._entries:
            if e.get('action') == action and (role is None or e.get('role') == role):
                return e
        return None

    def __len__(self):
        return len(self._entries)


SR_POLICY = RejectSameActorAction()
PO_POLICY = RejectSameActorAction()
JO_POLICY = ReplaceSameRoleAction()


def sr_ledger(entries, number: str = '') -> ApprovalLedger:
    return ApprovalLedger(entries, SR_POLICY, f'Service Request {number}'.strip())


def po_ledger(entries, number: str = '') -> ApprovalLedger:
    return ApprovalLedger(entries, PO_POLICY, f'Purchase Order {number}'.strip())


def jo_ledger(entries, number: str = '') -> ApprovalLedger:
    return ApprovalLedger(entries, JO_POLICY, f'Job Order {number}'.strip())


__all__ = [
    'ApprovalLedger', 'DedupPolicy', 'RejectSameActorAction', 'ReplaceSameRoleAction',
    'make_record', 'sr_ledger', 'po_ledger', 'jo_ledger', 'ALL_ACTIONS',
]
