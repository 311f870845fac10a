from __future__ import annotations
"""Request payload validation helpers.

Aborts with 400 on shapes that cannot be interpreted at all. Leaf values inside a permission
store are not rejected here; normalization coerces them to booleans.
"""
from typing import Any, Dict, Iterable, List
from flask import abort


def require_fields(data: Dict[str, Any], fields: Iterable[str]):
    missing = [f for f in fields if not data.get(f)]
    if missing:
        abort(400, description=f"{', '.join(missing)} required")


def validate_permissions_payload(value: Any, field_name: str = 'permissions') -> Dict[str, Any]:
    if not isinstance(value, dict):
        abort(400, description=f"{field_name} must be an object of submodule -> action -> bool")
    return value


def validate_module_access(value: Any, field_name: str = 'moduleAccess') -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or any(not isinstance(m, str) for m in value):
        abort(400, description=f"{field_name} must be a list of module ids")
    return value


def validate_password(value: Any, min_length: int = 6) -> str:
    if not isinstance(value, str) or len(value) < min_length:
        abort(400, description=f"password must be at least {min_length} characters")
    return value


__all__ = ['require_fields', 'validate_permissions_payload', 'validate_module_access', 'validate_password']
