from __future__ import annotations
import hmac
from typing import Any, Dict, Optional, Tuple
from flask import current_app
from flask_jwt_extended import get_jwt, get_jwt_identity
from sqlalchemy import select
from app.constants.permissions import ROLE_ADMIN
from app.models.authz import User
from app.services.permissions import Subject, normalize_module_access, normalize_permissions
from app import get_db

# Identity of the environment-configured administrator (no users row)
ADMIN_IDENTITY = 'admin'


def claims_for(subject: Subject) -> Dict[str, Any]:
    """Authorization claims embedded in access tokens."""
    if subject.is_admin:
        return {'role': ROLE_ADMIN, 'permissions': {}, 'module_access': []}
    return {
        'role': subject.role,
        'permissions': normalize_permissions(subject.permissions),
        'module_access': normalize_module_access(subject.module_access),
    }


def current_subject() -> Subject:
    """Subject from the verified JWT of the current request (token-time snapshot)."""
    claims = get_jwt()
    return Subject(
        role=claims.get('role') or '',
        permissions=claims.get('permissions'),
        module_access=claims.get('module_access'),
        user_id=get_jwt_identity(),
    )


def current_user_id() -> Optional[int]:
    ident = get_jwt_identity()
    if ident is None or ident == ADMIN_IDENTITY:
        return None
    try:
        return int(ident)
    except (TypeError, ValueError):
        return None


def fresh_subject() -> Tuple[Subject, Optional[User]]:
    """Subject re-read from the database for DB users, so edits apply before re-login."""
    user_id = current_user_id()
    if user_id is None:
        return current_subject(), None
    user = get_db().execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if user is None:
        return current_subject(), None
    return Subject.from_user(user), user


def _is_builtin_admin(email: str, password: str) -> Optional[bool]:
    """True/False when email is the configured admin's, None when it is not."""
    admin_email = current_app.config.get('ADMIN_EMAIL')
    admin_password = current_app.config.get('ADMIN_PASSWORD')
    if not admin_email or not admin_password or email != admin_email:
        return None
    return hmac.compare_digest(password.encode('utf-8'), admin_password.encode('utf-8'))


def authenticate(email: str, password: str) -> Optional[Tuple[str, Subject, Optional[User]]]:
    """Return (identity, subject, user row or None) or None on bad credentials."""
    builtin = _is_builtin_admin(email, password)
    if builtin is not None:
        if not builtin:
            return None
        return ADMIN_IDENTITY, Subject(role=ROLE_ADMIN, permissions={}, module_access=[], user_id=ADMIN_IDENTITY), None
    user = get_db().execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.verify_password(password):
        return None
    return str(user.id), Subject.from_user(user), user


def builtin_admin_profile() -> Dict[str, Any]:
    return {
        'id': ADMIN_IDENTITY,
        'name': 'Admin User',
        'email': current_app.config.get('ADMIN_EMAIL'),
        'role': ROLE_ADMIN,
    }
