from __future__ import annotations
import copy
from typing import Any, Dict, Optional
from flask import current_app, has_app_context
from sqlalchemy import select
from app import get_db
from app.constants.permissions import ROLE_ADMIN, ROLE_MANAGER, ROLES
from app.models.authz import User
from app.services.errors import InvalidOperation, NotFound
from app.services.permissions import PermissionStore, normalize_module_access, normalize_permissions


def load_user(user_id, session=None) -> Optional[User]:
    session = session or get_db()
    if isinstance(user_id, bool) or (isinstance(user_id, float) and not user_id.is_integer()):
        return None
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        return None
    return session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()


def effective_role(user: User) -> str:
    """Stored role, defaulting rows created before roles existed to Manager."""
    return user.role or ROLE_MANAGER


def assert_valid_role(user: User, label: str = 'manager'):
    role = effective_role(user)
    if role not in ROLES:
        raise InvalidOperation(f'Invalid role for {label}: {role}')


def clone_permissions(source_user_id, target_user_id, session=None) -> PermissionStore:
    """Return the source user's store as the complete replacement for the target's.

    Wholesale replacement: nothing from the target's current store survives. The result is a
    normalized deep copy, so later edits to either user never alias the other.
    """
    session = session or get_db()
    target = load_user(target_user_id, session)
    if target is None:
        raise NotFound('Target manager not found with provided ID')
    source = load_user(source_user_id, session)
    if source is None:
        raise NotFound('Source manager not found with provided ID')
    # ids arrive as JSON numbers or strings; compare the rows, not the raw values
    if source.id == target.id:
        raise InvalidOperation('Cannot clone permissions from a manager onto itself')
    assert_valid_role(target, 'target manager')
    assert_valid_role(source, 'source manager')
    if effective_role(source) == ROLE_ADMIN and has_app_context():
        current_app.logger.warning('cloning permissions from admin user %s; admins carry no explicit store', source.id)
    return copy.deepcopy(normalize_permissions(source.permissions or {}))


def user_json(user: User) -> Dict[str, Any]:
    return {
        'id': user.id,
        'name': user.name,
        'username': user.username,
        'email': user.email,
        'phone': user.phone,
        'role': effective_role(user),
        'moduleAccess': normalize_module_access(user.module_access),
        'permissions': normalize_permissions(user.permissions or {}),
        'clonedFrom': user.cloned_from,
    }


__all__ = ['load_user', 'effective_role', 'assert_valid_role', 'clone_permissions', 'user_json']
