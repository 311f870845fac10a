from flask import Blueprint, request, abort
from sqlalchemy import select, update
from app import get_db
from app.constants.permissions import ROLE_MANAGER
from app.models.authz import User
from app.decorators.auth import admin_required
from app.decorators.audit import audit_log
from app.services.managers import effective_role, load_user, user_json
from app.services.permissions import default_permissions, normalize_permissions
from app.utils.listing import apply_pagination, build_list_payload
from app.utils.validation import require_fields, validate_password, validate_permissions_payload

managers_bp = Blueprint('managers', __name__)


def _load_manager_or_404(user_id: int) -> User:
    user = load_user(user_id)
    if not user or effective_role(user) != ROLE_MANAGER:
        abort(404, description='Manager not found')
    return user


def _assert_unique(session, email=None, username=None, exclude_id=None):
    if email:
        q = select(User).where(User.email == email)
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        if session.execute(q).scalar_one_or_none():
            abort(400, description='A user with this email already exists')
    if username:
        q = select(User).where(User.username == username)
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        if session.execute(q).scalar_one_or_none():
            abort(400, description='A user with this username already exists')


def _permissions_snapshot(user_id):
    user = load_user(user_id)
    if not user:
        return {}
    return {'permissions': normalize_permissions(user.permissions or {})}


@managers_bp.get('')
@admin_required
def list_managers():
    session = get_db()
    # rows saved before roles existed carry an empty role and count as managers
    q = session.query(User).filter(User.role.in_((ROLE_MANAGER, ''))).order_by(User.id.asc())
    paged_q, total, limit, offset = apply_pagination(q)
    rows = [user_json(u) for u in paged_q.all()]
    return build_list_payload(rows, total, limit, offset)


@managers_bp.post('')
@admin_required
@audit_log('MANAGER.CREATE', entity='Manager', entity_id_key='id', meta_keys=['username', 'email'])
def create_manager():
    data = request.json or {}
    require_fields(data, ['name', 'username', 'email', 'password'])
    validate_password(data['password'])
    session = get_db()
    _assert_unique(session, email=data['email'], username=data['username'])
    user = User(
        name=data['name'],
        username=data['username'],
        email=data['email'],
        phone=data.get('phone'),
        role=ROLE_MANAGER,
        module_access=[],
        permissions=default_permissions(),
    )
    user.set_password(data['password'])
    session.add(user)
    session.commit()
    return user_json(user), 201


@managers_bp.get('/<int:user_id>')
@admin_required
def get_manager(user_id: int):
    return user_json(_load_manager_or_404(user_id))


@managers_bp.put('/<int:user_id>')
@admin_required
@audit_log(
    'MANAGER.UPDATE',
    entity='Manager',
    entity_id_key='id',
    meta_keys=['username'],
    diff_keys=['permissions'],
    pre_fetch=lambda a, kw: _permissions_snapshot(kw.get('user_id')),
)
def update_manager(user_id: int):
    session = get_db()
    user = _load_manager_or_404(user_id)
    data = request.json or {}
    _assert_unique(session, email=data.get('email'), username=data.get('username'), exclude_id=user.id)
    for field in ('name', 'username', 'email', 'phone'):
        if data.get(field):
            setattr(user, field, data[field])
    if data.get('password'):
        user.set_password(validate_password(data['password']))
    if 'permissions' in data:
        user.permissions = normalize_permissions(validate_permissions_payload(data['permissions']))
    session.commit()
    return user_json(user)


@managers_bp.delete('/<int:user_id>')
@admin_required
@audit_log('MANAGER.DELETE', entity='Manager', entity_id_arg='user_id')
def delete_manager(user_id: int):
    session = get_db()
    user = _load_manager_or_404(user_id)
    # SQLite does not enforce ON DELETE SET NULL unless foreign keys are switched on
    session.execute(update(User).where(User.cloned_from == user.id).values(cloned_from=None))
    session.delete(user)
    session.commit()
    return {'message': 'Manager account removed successfully'}
