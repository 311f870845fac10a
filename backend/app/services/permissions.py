from __future__ import annotations
"""Granular permission evaluation.

A permission store maps submodule id -> action id -> bool. It is sparse: a missing submodule
or action reads as denied. Stores come from persisted JSON, so every predicate treats anything
other than a literal ``True`` as denied instead of raising.

Evaluation order for a subject (user/manager):
  1. role Admin -> allowed
  2. granular entry for the submodule present -> decided by that entry
  3. otherwise legacy ``module_access`` list -> whole-submodule grant
  4. otherwise denied
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from app.constants.permissions import ROLE_ADMIN, ROLE_MANAGER, SIDEBAR_SECTIONS
from app.services.registry import PermissionRegistry, resolve_registry

log = logging.getLogger(__name__)

PermissionStore = Dict[str, Dict[str, bool]]


@dataclass
class Subject:
    role: str = ROLE_MANAGER
    permissions: Any = None
    module_access: Any = None
    user_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'Subject':
        module_access = data.get('module_access')
        if module_access is None:
            module_access = data.get('moduleAccess')
        user_id = data.get('id', data.get('_id'))
        return cls(
            role=data.get('role') or ROLE_MANAGER,
            permissions=data.get('permissions'),
            module_access=module_access,
            user_id=str(user_id) if user_id is not None else None,
        )

    @classmethod
    def from_user(cls, user) -> 'Subject':
        return cls(
            role=getattr(user, 'role', None) or ROLE_MANAGER,
            permissions=getattr(user, 'permissions', None),
            module_access=getattr(user, 'module_access', None),
            user_id=str(user.id) if getattr(user, 'id', None) is not None else None,
        )


ANONYMOUS = Subject(role='', permissions={}, module_access=[])


def as_subject(user: Any) -> Subject:
    if user is None:
        return ANONYMOUS
    if isinstance(user, Subject):
        return user
    if isinstance(user, Mapping):
        return Subject.from_mapping(user)
    return Subject.from_user(user)


def _granular_entry(store: Any, submodule_id: str) -> Optional[Mapping[str, Any]]:
    """Return the store entry for a submodule, None when absent.

    A present but malformed (non-mapping) entry reads as an empty entry so it denies
    without falling through to legacy access.
    """
    if not isinstance(store, Mapping):
        return None
    try:
        entry = store.get(submodule_id)
    except TypeError:
        return None
    if entry is None:
        return None
    return entry if isinstance(entry, Mapping) else {}


def _counted_actions(entry: Mapping[str, Any], submodule_id: str, registry: PermissionRegistry) -> Iterable[str]:
    # extra keys on a registered submodule are ignored
    if registry.has_submodule(submodule_id):
        return registry.actions_of(submodule_id)
    return list(entry.keys())


def _legacy_grant(subject: Subject, submodule_id: str) -> bool:
    access = subject.module_access
    if not isinstance(access, (list, tuple)):
        return False
    return submodule_id in access


def has_permission(user: Any, submodule_id: str, action: str,
                   registry: Optional[PermissionRegistry] = None) -> bool:
    subject = as_subject(user)
    if subject.is_admin:
        return True
    entry = _granular_entry(subject.permissions, submodule_id)
    if entry is not None:
        reg = resolve_registry(registry)
        if reg.has_submodule(submodule_id) and action not in reg.actions_of(submodule_id):
            return False
        return entry.get(action) is True
    return _legacy_grant(subject, submodule_id)


def has_any_permission_in_module(user: Any, submodule_id: str,
                                 registry: Optional[PermissionRegistry] = None) -> bool:
    subject = as_subject(user)
    if subject.is_admin:
        return True
    entry = _granular_entry(subject.permissions, submodule_id)
    if entry is not None:
        reg = resolve_registry(registry)
        return any(entry.get(a) is True for a in _counted_actions(entry, submodule_id, reg))
    return _legacy_grant(subject, submodule_id)


def is_module_visible(user: Any, submodule_id: str,
                      registry: Optional[PermissionRegistry] = None) -> bool:
    """A module is visible when at least one of its actions is granted."""
    return has_any_permission_in_module(user, submodule_id, registry=registry)


def has_module_access(user: Any, submodule_ids: Union[str, Sequence[str]],
                      registry: Optional[PermissionRegistry] = None) -> bool:
    """Single id: module visibility. Sequence of ids: visible if any one of them is."""
    subject = as_subject(user)
    if subject.is_admin:
        return True
    if isinstance(submodule_ids, str):
        return is_module_visible(subject, submodule_ids, registry=registry)
    return any(is_module_visible(subject, m, registry=registry) for m in submodule_ids)


def is_action_visible_but_disabled(user: Any, submodule_id: str, action: str,
                                   registry: Optional[PermissionRegistry] = None) -> bool:
    subject = as_subject(user)
    if subject.is_admin:
        return False
    return (is_module_visible(subject, submodule_id, registry=registry)
            and not has_permission(subject, submodule_id, action, registry=registry))


def visible_sections(user: Any, sections: Optional[Mapping[str, Sequence[str]]] = None,
                     registry: Optional[PermissionRegistry] = None) -> Dict[str, List[str]]:
    """Sidebar gating: section key -> visible module ids, omitting sections with none."""
    subject = as_subject(user)
    out: Dict[str, List[str]] = {}
    for key, module_ids in (sections if sections is not None else SIDEBAR_SECTIONS).items():
        if not has_module_access(subject, list(module_ids), registry=registry):
            continue
        out[key] = [m for m in module_ids if subject.is_admin or is_module_visible(subject, m, registry=registry)]
    return out


# --- Aggregate selection over a draft store ---

def all_actions_selected(store: Any, submodule_id: str, actions: Optional[Sequence[str]] = None,
                         registry: Optional[PermissionRegistry] = None) -> bool:
    entry = _granular_entry(store, submodule_id)
    if entry is None:
        return False
    if actions is None:
        actions = resolve_registry(registry).actions_of(submodule_id)
    return all(entry.get(a) is True for a in actions)


def some_actions_selected(store: Any, submodule_id: str, actions: Optional[Sequence[str]] = None,
                          registry: Optional[PermissionRegistry] = None) -> bool:
    entry = _granular_entry(store, submodule_id)
    if entry is None:
        return False
    if actions is None:
        actions = resolve_registry(registry).actions_of(submodule_id)
    return any(entry.get(a) is True for a in actions)


def all_submodules_selected(store: Any, section_id: str,
                            registry: Optional[PermissionRegistry] = None) -> bool:
    reg = resolve_registry(registry)
    return all(all_actions_selected(store, sub.id, sub.actions, reg)
               for sub in reg.submodules_of(section_id).values())


def some_submodules_selected(store: Any, section_id: str,
                             registry: Optional[PermissionRegistry] = None) -> bool:
    reg = resolve_registry(registry)
    return any(some_actions_selected(store, sub.id, sub.actions, reg)
               for sub in reg.submodules_of(section_id).values())


def all_modules_selected(store: Any, registry: Optional[PermissionRegistry] = None) -> bool:
    reg = resolve_registry(registry)
    return all(all_submodules_selected(store, s.id, reg) for s in reg.list_sections())


def some_modules_selected(store: Any, registry: Optional[PermissionRegistry] = None) -> bool:
    reg = resolve_registry(registry)
    return any(some_submodules_selected(store, s.id, reg) for s in reg.list_sections())


class SelectionState(str, enum.Enum):
    CHECKED = 'checked'
    INDETERMINATE = 'indeterminate'
    UNCHECKED = 'unchecked'


def selection_state(all_selected: bool, some_selected: bool) -> SelectionState:
    if all_selected:
        return SelectionState.CHECKED
    if some_selected:
        return SelectionState.INDETERMINATE
    return SelectionState.UNCHECKED


def selection_summary(store: Any, registry: Optional[PermissionRegistry] = None) -> Dict[str, Any]:
    """Checkbox state for every level of the tree, JSON-ready."""
    reg = resolve_registry(registry)
    sections = {}
    for section in reg.list_sections():
        subs = {
            sub.id: selection_state(
                all_actions_selected(store, sub.id, sub.actions, reg),
                some_actions_selected(store, sub.id, sub.actions, reg),
            ).value
            for sub in section.submodules
        }
        sections[section.id] = {
            'state': selection_state(
                all_submodules_selected(store, section.id, reg),
                some_submodules_selected(store, section.id, reg),
            ).value,
            'submodules': subs,
        }
    return {
        'state': selection_state(all_modules_selected(store, reg), some_modules_selected(store, reg)).value,
        'sections': sections,
    }


# --- Boundary normalization ---

def normalize_permissions(raw: Any, registry: Optional[PermissionRegistry] = None) -> PermissionStore:
    """Full-shape store: every registered submodule/action present, unknown keys dropped,
    anything not literally True stored as False."""
    reg = resolve_registry(registry)
    source = raw if isinstance(raw, Mapping) else {}
    out: PermissionStore = {}
    for sub in reg.iter_submodules():
        entry = source.get(sub.id)
        entry = entry if isinstance(entry, Mapping) else {}
        out[sub.id] = {a: entry.get(a) is True for a in sub.actions}
    dropped = [k for k in source if not reg.has_submodule(k)]
    if dropped:
        log.debug('dropping unregistered permission submodules: %s', dropped)
    return out


def default_permissions(registry: Optional[PermissionRegistry] = None) -> PermissionStore:
    return normalize_permissions({}, registry=registry)


def normalize_module_access(raw: Any) -> List[str]:
    if not isinstance(raw, (list, tuple)):
        return []
    out: List[str] = []
    for m in raw:
        if isinstance(m, str) and m and m not in out:
            out.append(m)
    return out


def granted_actions(store: Any, registry: Optional[PermissionRegistry] = None) -> Dict[str, List[str]]:
    reg = resolve_registry(registry)
    out = {}
    for sub in reg.iter_submodules():
        entry = _granular_entry(store, sub.id) or {}
        granted = [a for a in sub.actions if entry.get(a) is True]
        if granted:
            out[sub.id] = granted
    return out


__all__ = [
    'PermissionStore', 'Subject', 'as_subject',
    'has_permission', 'has_any_permission_in_module', 'is_module_visible', 'has_module_access',
    'is_action_visible_but_disabled', 'visible_sections',
    'all_actions_selected', 'some_actions_selected', 'all_submodules_selected',
    'some_submodules_selected', 'all_modules_selected', 'some_modules_selected',
    'SelectionState', 'selection_state', 'selection_summary',
    'normalize_permissions', 'default_permissions', 'normalize_module_access', 'granted_actions',
]
