"""Simple finite state machine utility for enforcing allowed status transitions.

Used where a document's lifecycle is a fixed graph rather than ledger-derived
(Receiving Reports).
Usage:
    from procureflow.utils.fsm import TransitionValidator
    RR_FSM = TransitionValidator({
        'DRAFT': {'SUBMITTED'},
        'SUBMITTED': {'COMPLETED'},
        'COMPLETED': set(),
    }, label='Receiving Report')
    RR_FSM.assert_can_transition(current_status, target_status)

Raises InvalidState (400) naming the statuses the target can be reached from.
"""
from __future__ import annotations
from typing import Dict, List, Set
from procureflow.errors import InvalidState

class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status', label: str = 'Document'):
        self.graph = graph
        self.field_name = field_name
        self.label = label

    def sources_for(self, target: str) -> List[str]:
        return [src for src, targets in self.graph.items() if target in targets]

    def assert_can_transition(self, current: str, target: str):
        allowed = self.graph.get(current, set())
        if target not in allowed:
            required = ' or '.join(self.sources_for(target)) or 'none'
            raise InvalidState(
                description=f"Invalid {self.field_name} transition {current} -> {target}: "
                            f"{self.label} must be {required}"
            )
        return True

__all__ = ['TransitionValidator']
