from functools import wraps
from flask import g
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity
from procureflow.errors import Forbidden
from procureflow.services.policy import Actor


def actor_from_claims() -> Actor:
    claims = get_jwt() or {}
    return Actor(
        id=int(get_jwt_identity()),
        name=claims.get('name') or '',
        role=claims.get('role') or '',
        department=claims.get('department'),
        email=claims.get('email'),
    )


def current_actor() -> Actor:
    actor = g.get('actor')
    if actor is None:
        verify_jwt_in_request()
        actor = g.actor = actor_from_claims()
    return actor


def require_auth(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        g.actor = actor_from_claims()
        return fn(*args, **kwargs)
    return wrapper


def require_roles(*roles: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            g.actor = actor_from_claims()
            if g.actor.role not in roles:
                raise Forbidden(description='Missing role')
            return fn(*args, **kwargs)
        return wrapper
    return outer
