"""Best-effort follow-up steps run after a workflow action has been persisted.

Steps run in order and each one commits on its own; nothing is rolled back
jointly. A failing step is logged and rolled back. Only a failure of the final
step is surfaced (as ``Unexpected``), earlier failures are swallowed so the
remaining steps still run.
"""
from __future__ import annotations
from typing import Any, Callable, List, NamedTuple, Optional
from flask import current_app

from procureflow.errors import Unexpected


class Step(NamedTuple):
    name: str
    fn: Callable[[], Any]


class FollowUp:
    def __init__(self, session, label: str):
        self.session = session
        self.label = label
        self.steps: List[Step] = []
        self.failed: List[str] = []

    def add(self, name: str, fn: Callable[[], Any]) -> 'FollowUp':
        self.steps.append(Step(name, fn))
        return self

    def run(self) -> List[Optional[Any]]:
        results: List[Optional[Any]] = []
        last = len(self.steps) - 1
        for idx, step in enumerate(self.steps):
            try:
                results.append(step.fn())
                self.session.commit()
            except Exception:
                self.session.rollback()
                self.failed.append(step.name)
                current_app.logger.exception('%s: follow-up step %s failed', self.label, step.name)
                if idx == last:
                    raise Unexpected(description=f'{self.label}: {step.name} failed')
                results.append(None)
        return results


__all__ = ['FollowUp', 'Step']
