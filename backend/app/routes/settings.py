from flask import Blueprint, request, abort, make_response, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy import select
from app import get_db
from app.constants.permissions import ROLE_MANAGER, ROLES
from app.models.authz import User
from app.decorators.auth import admin_required
from app.decorators.audit import audit_log
from app.services.errors import NotFound, UnknownAction, UnknownSection, UnknownSubmodule
from app.services.managers import assert_valid_role, clone_permissions, load_user, user_json
from app.services.permission_edits import TOGGLE_SCOPES, apply_toggle
from app.services.permissions import normalize_module_access, normalize_permissions, selection_summary
from app.services.registry import resolve_registry
from app.utils.listing import assert_if_match, compute_etag, handle_if_none_match
from app.utils.validation import validate_module_access, validate_permissions_payload

settings_bp = Blueprint('settings', __name__)


def _load_for_access(user_id: int) -> User:
    user = load_user(user_id)
    if not user:
        raise NotFound('Manager not found with provided ID')
    assert_valid_role(user)
    return user


def _access_document(user: User):
    return {
        'moduleAccess': normalize_module_access(user.module_access),
        'permissions': normalize_permissions(user.permissions or {}),
    }


def _access_snapshot(user_id):
    user = load_user(user_id)
    return _access_document(user) if user else {}


@settings_bp.get('/managers')
@admin_required
def list_managers_with_access():
    session = get_db()
    rows = session.execute(select(User).where(User.role.in_((*ROLES, ''))).order_by(User.id.asc())).scalars().all()
    return {'data': [user_json(u) for u in rows]}


@settings_bp.get('/managers/<int:user_id>/module-access')
@admin_required
def get_module_access(user_id: int):
    user = _load_for_access(user_id)
    doc = _access_document(user)
    etag = compute_etag(doc)
    cond = handle_if_none_match(etag)
    if cond:
        return cond
    body = {**doc, 'clonedFrom': user.cloned_from, 'selection': selection_summary(doc['permissions'])}
    resp = make_response(jsonify(body))
    resp.headers['ETag'] = etag
    return resp


@settings_bp.put('/managers/<int:user_id>/module-access')
@admin_required
@audit_log(
    'PERMISSIONS.UPDATE',
    entity='Manager',
    entity_id_key='id',
    diff_keys=['permissions', 'moduleAccess'],
    pre_fetch=lambda a, kw: _access_snapshot(kw.get('user_id')),
)
def update_module_access(user_id: int):
    session = get_db()
    user = _load_for_access(user_id)
    assert_if_match(compute_etag(_access_document(user)))
    data = request.json or {}
    if not user.role:
        user.role = ROLE_MANAGER
    if 'moduleAccess' in data:
        user.module_access = normalize_module_access(validate_module_access(data['moduleAccess']))
    if 'permissions' in data:
        # wholesale replacement, never a merge
        user.permissions = normalize_permissions(validate_permissions_payload(data['permissions']))
    session.commit()
    return user_json(user), 200, {'ETag': compute_etag(_access_document(user))}


@settings_bp.post('/managers/<int:user_id>/clone-permissions')
@admin_required
@audit_log(
    'PERMISSIONS.CLONE',
    entity='Manager',
    entity_id_key='id',
    meta_builder=lambda data, rv, a, kw: {'source_id': data.get('clonedFrom')},
)
def clone_manager_permissions(user_id: int):
    data = request.json or {}
    source_id = data.get('sourceManagerId')
    if source_id is None or source_id == '':
        abort(400, description='sourceManagerId required')
    session = get_db()
    store = clone_permissions(source_id, user_id, session=session)
    target = load_user(user_id, session)
    target.permissions = store
    target.cloned_from = load_user(source_id, session).id
    session.commit()
    return user_json(target)


@settings_bp.get('/permission-structure')
@jwt_required()
def permission_structure():
    return resolve_registry().to_dict()


@settings_bp.post('/permissions/toggle')
@admin_required
def toggle_draft():
    """Apply one toggle to a draft store without persisting it."""
    data = request.json or {}
    draft = data.get('permissions', {})
    validate_permissions_payload(draft)
    scope = data.get('scope')
    if scope not in TOGGLE_SCOPES:
        abort(400, description=f"scope must be one of {', '.join(TOGGLE_SCOPES)}")
    try:
        new_draft = apply_toggle(
            draft, scope,
            submodule=data.get('submodule'),
            action=data.get('action'),
            section=data.get('section'),
        )
    except (UnknownSection, UnknownSubmodule, UnknownAction) as e:
        abort(400, description=str(e))
    return {'permissions': new_draft, 'selection': selection_summary(new_draft)}
