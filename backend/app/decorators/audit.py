from __future__ import annotations
"""Audit logging decorator for admin endpoints that change users or their permissions.

Usage:

@audit_log('MANAGER.CREATE', entity='Manager', entity_id_key='id', meta_keys=['username'])
def create_manager():
    ... return user_json(user), 201

@audit_log('PERMISSIONS.UPDATE', entity='Manager', entity_id_arg='user_id',
           diff_keys=['permissions'], pre_fetch=lambda a, kw: _snapshot(kw['user_id']))
def update_module_access(user_id): ...

Parameters:
  action: audit action code
  entity: optional entity label
  entity_id_key: key in the returned JSON object whose value becomes entity_id
  entity_id_arg: view keyword argument used for entity_id when entity_id_key is absent
  meta_keys: keys projected from the returned JSON into meta
  meta_builder: callable(data, rv, args, kwargs) -> meta dict; overrides meta_keys
  diff_keys / pre_fetch: pre_fetch(args, kwargs) returns a before-snapshot; keys in diff_keys whose
    value changed are recorded under meta['changes'] as {'before', 'after'}

Only successful (2xx) responses are audited. Audit failures are logged and never change the response.
"""

from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from flask import current_app

from app.services.audit import add_audit
from app import get_db


def _extract_payload(rv: Any):
    """Return (data, status) for dict / (dict, status) / (dict, status, headers) returns."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, getattr(rv, 'status_code', 200)


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    changes = {}
    for k in keys:
        if k in before and k in after and before.get(k) != after.get(k):
            changes[k] = {'before': before.get(k), 'after': after.get(k)}
    return changes


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = None
            if diff_keys and pre_fetch:
                before_snapshot = pre_fetch(args, kwargs)
            rv = fn(*args, **kwargs)
            data, status = _extract_payload(rv)
            if not 200 <= status < 300:
                return rv
            try:
                data = data if isinstance(data, dict) else {}
                entity_id = None
                if entity_id_key and entity_id_key in data:
                    entity_id = data.get(entity_id_key)
                elif entity_id_arg and entity_id_arg in kwargs:
                    entity_id = kwargs.get(entity_id_arg)
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs) or {}
                else:
                    meta = {k: data.get(k) for k in (meta_keys or []) if k in data}
                if diff_keys and isinstance(before_snapshot, dict):
                    changes = _diff(before_snapshot, data, diff_keys)
                    if changes:
                        meta['changes'] = changes
                add_audit(action, entity, entity_id, meta)
                get_db().commit()
            except Exception:
                current_app.logger.exception('audit logging failed for %s', action)
                get_db().rollback()
            return rv
        return wrapper
    return outer
