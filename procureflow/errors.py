"""Workflow error taxonomy.

All classes are werkzeug HTTP exceptions so pure workflow code can raise them
without a request context and the unified handler in ``create_app`` renders them
with the standard ``{'error': {...}}`` shape.
"""
from __future__ import annotations
from werkzeug import exceptions as wz


class InvalidState(wz.BadRequest):
    """Action not valid for the document's current status."""


class Conflict(wz.BadRequest):
    """Duplicate approval submission or duplicate JO/PO creation."""


class ValidationFailed(wz.BadRequest):
    pass


class Forbidden(wz.Forbidden):
    pass


class NotFound(wz.NotFound):
    pass


class Unexpected(wz.InternalServerError):
    pass


__all__ = ['InvalidState', 'Conflict', 'ValidationFailed', 'Forbidden', 'NotFound', 'Unexpected']
