from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token
from sqlalchemy import select
from procureflow import get_db
from procureflow.constants.departments import ACCOUNT_ROLES, ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_REQUESTER
from procureflow.decorators.audit import audit_log
from procureflow.decorators.auth import require_auth, require_roles, current_actor
from procureflow.models.user import User
from procureflow.utils.validation import validate_status

auth_bp = Blueprint('auth', __name__)

MIN_PASSWORD_LENGTH = 6


def issue_token(user: User) -> str:
    claims = {
        'role': user.role,
        'department': user.department,
        'name': user.name,
        'email': user.email,
    }
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    return create_access_token(identity=str(user.id), additional_claims=claims)


def _user_json(user: User):
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'department': user.department,
        'is_active': user.is_active,
    }


@auth_bp.post('/signup')
@audit_log('USER.SIGNUP', entity='User', meta_builder=lambda data, rv, a, kw: {'email': data['user']['email']})
def signup():
    data = request.json or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password'); name = data.get('name'); department = data.get('department')
    if not email or not password or not name or not department:
        abort(400, description='email, password, name and department required')
    if len(password) < MIN_PASSWORD_LENGTH:
        abort(400, description=f'password must be at least {MIN_PASSWORD_LENGTH} characters long')
    session = get_db()
    if session.execute(select(User).where(User.email==email)).scalar_one_or_none():
        abort(400, description='User with this email already exists')
    # Self-service accounts are always requesters; approvers are provisioned
    user = User(name=name, email=email, password_hash='', role=ROLE_REQUESTER, department=department)
    user.set_password(password)
    session.add(user)
    session.commit()
    return {'user': _user_json(user), 'access_token': issue_token(user)}, 201


@auth_bp.post('/login')
def login():
    data = request.json or {}
    email = (data.get('email') or '').strip().lower(); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email==email)).scalar_one_or_none()
    if not user or not user.is_active or not user.verify_password(password):
        abort(401, description='invalid credentials')
    return {'access_token': issue_token(user), 'user': _user_json(user)}


@auth_bp.get('/me')
@require_auth
def me():
    session = get_db()
    user = session.get(User, current_actor().id)
    if not user:
        abort(404)
    return _user_json(user)


@auth_bp.post('/change-password')
@require_auth
@audit_log('USER.PASSWORD.CHANGE', entity='User', entity_id_key='id')
def change_password():
    data = request.json or {}
    current = data.get('currentPassword'); new = data.get('newPassword'); confirm = data.get('confirmPassword')
    if not current or not new or not confirm:
        abort(400, description='All fields are required')
    if len(new) < MIN_PASSWORD_LENGTH:
        abort(400, description=f'New password must be at least {MIN_PASSWORD_LENGTH} characters long')
    if new != confirm:
        abort(400, description='New password and confirmation do not match')
    if new == current:
        abort(400, description='New password must be different from current password')
    session = get_db()
    user = session.get(User, current_actor().id)
    if not user:
        abort(404)
    if not user.verify_password(current):
        abort(400, description='Current password is incorrect')
    user.set_password(new)
    session.commit()
    return {'id': user.id, 'message': 'Password changed successfully'}


@auth_bp.patch('/users/<int:user_id>')
@require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN)
@audit_log('USER.UPDATE', entity='User', entity_id_key='id', meta_keys=['role', 'department', 'is_active'])
def update_user(user_id: int):
    data = request.json or {}
    session = get_db()
    user = session.get(User, user_id)
    if not user:
        abort(404)
    if 'role' in data:
        user.role = validate_status(data['role'], ACCOUNT_ROLES, 'role')
    if 'department' in data:
        user.department = data['department']
    if 'is_active' in data:
        user.is_active = bool(data['is_active'])
    if 'name' in data and data['name']:
        user.name = data['name']
    session.commit()
    return _user_json(user)
