"""Job Order cost estimation.

There are two computation sites and they intentionally differ:

* ``estimate_budget_total`` (budget endpoint, field edits): each material's
  ``estimatedCost`` is a unit cost and is multiplied by ``quantity``; the manpower
  outsourcing price is added on top.
* ``canvass_total`` (canvass submission): Purchasing enters ``estimatedCost`` as the
  line total, so the raw values are summed with no quantity factor.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, Optional


def _num(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def materials_cost(materials: Optional[Iterable[Dict[str, Any]]]) -> float:
    return sum(_num(m.get('estimatedCost')) * _num(m.get('quantity')) for m in (materials or []))


def estimate_budget_total(materials, manpower: Optional[Dict[str, Any]] = None,
                          override: Optional[float] = None) -> float:
    """Explicit override wins when truthy, otherwise Σ(cost × qty) + outsourcePrice."""
    if override:
        return _num(override)
    return materials_cost(materials) + _num((manpower or {}).get('outsourcePrice'))


def canvass_total(materials) -> float:
    return sum(_num(m.get('estimatedCost')) for m in (materials or []))


def po_totals(items, tax: Any = 0):
    """Return (subtotal, tax, total) for Purchase Order / Receiving Report line items."""
    subtotal = sum(_num(i.get('totalPrice')) for i in (items or []))
    tax_v = _num(tax)
    return subtotal, tax_v, subtotal + tax_v


__all__ = ['materials_cost', 'estimate_budget_total', 'canvass_total', 'po_totals']
