from __future__ import annotations
from typing import Any, Dict, Optional
from flask import current_app
from flask_jwt_extended import get_jwt
from app import get_db
from app.models.audit import AuditLog
from app.services.policy import current_user_id


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Add an audit log entry to the current DB session.

    Parameters:
      action: short action code e.g. MANAGER.CREATE, PERMISSIONS.UPDATE, PERMISSIONS.CLONE
      entity: optional entity name (Manager, User)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (shallow copied)
    """
    session = get_db()
    actor = None
    role = None
    try:
        actor = current_user_id()
        role = (get_jwt() or {}).get('role')
    except RuntimeError:
        # outside a request with a verified JWT (scripts, tests)
        current_app.logger.debug('audit %s recorded without JWT context', action)
    log = AuditLog(
        actor_user_id=actor,
        actor_role=role,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
