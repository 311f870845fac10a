from __future__ import annotations
"""Toggle operations over a draft permission store.

Every function returns a new store and leaves its input untouched: the outer mapping is
copied and only the submodule entries being changed are rebuilt, so callers may keep the
previous draft around (undo, diffing, audit). Bulk toggles are all-or-nothing: if every
action in scope is already granted the scope is cleared, otherwise (including a partial
selection) everything in scope is granted.
"""
from typing import Any, Dict, Mapping, Optional, Sequence

from app.services.errors import InvalidOperation, UnknownAction
from app.services.permissions import (
    PermissionStore,
    all_actions_selected,
    all_modules_selected,
    all_submodules_selected,
)
from app.services.registry import PermissionRegistry, resolve_registry

TOGGLE_SCOPES = ('action', 'submodule', 'section', 'all')


def _copy_store(store: Any) -> Dict[str, Any]:
    return dict(store) if isinstance(store, Mapping) else {}


def _copy_entry(store: Mapping[str, Any], submodule_id: str) -> Dict[str, Any]:
    entry = store.get(submodule_id)
    return dict(entry) if isinstance(entry, Mapping) else {}


def _set_actions(new_store: Dict[str, Any], submodule_id: str, actions: Sequence[str], value: bool):
    entry = _copy_entry(new_store, submodule_id)
    for action in actions:
        entry[action] = value
    new_store[submodule_id] = entry


def toggle_action(store: Any, submodule_id: str, action: str,
                  registry: Optional[PermissionRegistry] = None) -> PermissionStore:
    reg = resolve_registry(registry)
    registered = reg.actions_of(submodule_id)
    if action not in registered:
        raise UnknownAction(submodule_id, action)
    new_store = _copy_store(store)
    entry = _copy_entry(new_store, submodule_id)
    for a in registered:
        entry.setdefault(a, False)
    entry[action] = entry.get(action) is not True
    new_store[submodule_id] = entry
    return new_store


def toggle_submodule(store: Any, submodule_id: str, actions: Optional[Sequence[str]] = None,
                     registry: Optional[PermissionRegistry] = None) -> PermissionStore:
    reg = resolve_registry(registry)
    if actions is None:
        actions = reg.actions_of(submodule_id)
    else:
        registered = reg.actions_of(submodule_id)
        for action in actions:
            if action not in registered:
                raise UnknownAction(submodule_id, action)
    target = not all_actions_selected(store, submodule_id, actions, reg)
    new_store = _copy_store(store)
    _set_actions(new_store, submodule_id, actions, target)
    return new_store


def toggle_section(store: Any, section_id: str,
                   registry: Optional[PermissionRegistry] = None) -> PermissionStore:
    reg = resolve_registry(registry)
    target = not all_submodules_selected(store, section_id, reg)
    new_store = _copy_store(store)
    for sub in reg.submodules_of(section_id).values():
        _set_actions(new_store, sub.id, sub.actions, target)
    return new_store


def toggle_all(store: Any, registry: Optional[PermissionRegistry] = None) -> PermissionStore:
    reg = resolve_registry(registry)
    target = not all_modules_selected(store, reg)
    new_store = _copy_store(store)
    for sub in reg.iter_submodules():
        _set_actions(new_store, sub.id, sub.actions, target)
    return new_store


def apply_toggle(store: Any, scope: str, *, submodule: Optional[str] = None, action: Optional[str] = None,
                 section: Optional[str] = None, registry: Optional[PermissionRegistry] = None) -> PermissionStore:
    """Dispatch a single toggle by scope name."""
    if scope == 'action':
        if not submodule or not action:
            raise InvalidOperation('submodule and action required for action toggle')
        return toggle_action(store, submodule, action, registry=registry)
    if scope == 'submodule':
        if not submodule:
            raise InvalidOperation('submodule required for submodule toggle')
        return toggle_submodule(store, submodule, registry=registry)
    if scope == 'section':
        if not section:
            raise InvalidOperation('section required for section toggle')
        return toggle_section(store, section, registry=registry)
    if scope == 'all':
        return toggle_all(store, registry=registry)
    raise InvalidOperation(f"unknown toggle scope: {scope}")


__all__ = ['TOGGLE_SCOPES', 'toggle_action', 'toggle_submodule', 'toggle_section', 'toggle_all', 'apply_toggle']
