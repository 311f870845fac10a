from __future__ import annotations
"""Permission structure registry.

Single source of truth for which sections, submodules and actions exist. Built once at
startup from ``app.constants.permissions.PERMISSION_STRUCTURE`` (or a JSON file of the same
shape) and never mutated afterwards.

Structure shape:
    {
        "<section_id>": {
            "name": "Packing Materials",
            "submodules": {
                "<submodule_id>": {"name": "Item Master", "actions": ["view", "edit"]},
            },
        },
    }
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterator, Mapping, Optional, Tuple

from app.constants.permissions import ACTION_LABELS, PERMISSION_STRUCTURE, STRUCTURE_VERSION
from app.services.errors import RegistryError, UnknownSection, UnknownSubmodule

EXTENSION_KEY = 'permission_registry'


@dataclass(frozen=True)
class Submodule:
    id: str
    name: str
    actions: Tuple[str, ...]


@dataclass(frozen=True)
class Section:
    id: str
    name: str
    submodules: Tuple[Submodule, ...]


class PermissionRegistry:
    def __init__(self, sections: Tuple[Section, ...], version: int = STRUCTURE_VERSION,
                 labels: Optional[Mapping[str, str]] = None):
        self._sections = sections
        self._version = version
        self._labels = dict(labels or {})
        self._by_section: Dict[str, Section] = {s.id: s for s in sections}
        self._by_submodule: Dict[str, Submodule] = {}
        self._section_of: Dict[str, str] = {}
        for section in sections:
            for sub in section.submodules:
                self._by_submodule[sub.id] = sub
                self._section_of[sub.id] = section.id

    @property
    def version(self) -> int:
        return self._version

    def list_sections(self) -> Tuple[Section, ...]:
        return self._sections

    def get_section(self, section_id: str) -> Section:
        try:
            return self._by_section[section_id]
        except (KeyError, TypeError):
            raise UnknownSection(section_id) from None

    def submodules_of(self, section_id: str) -> Dict[str, Submodule]:
        return {sub.id: sub for sub in self.get_section(section_id).submodules}

    def get_submodule(self, submodule_id: str) -> Submodule:
        try:
            return self._by_submodule[submodule_id]
        except (KeyError, TypeError):
            raise UnknownSubmodule(submodule_id) from None

    def actions_of(self, submodule_id: str) -> Tuple[str, ...]:
        return self.get_submodule(submodule_id).actions

    def section_of(self, submodule_id: str) -> str:
        self.get_submodule(submodule_id)
        return self._section_of[submodule_id]

    def has_submodule(self, submodule_id: str) -> bool:
        try:
            return submodule_id in self._by_submodule
        except TypeError:
            return False

    def all_submodule_ids(self) -> FrozenSet[str]:
        return frozenset(self._by_submodule)

    def iter_submodules(self) -> Iterator[Submodule]:
        for section in self._sections:
            yield from section.submodules

    def action_label(self, action: str) -> str:
        return self._labels.get(action, action)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self._version,
            'sections': [
                {
                    'id': section.id,
                    'name': section.name,
                    'submodules': [
                        {
                            'id': sub.id,
                            'name': sub.name,
                            'actions': [{'id': a, 'label': self.action_label(a)} for a in sub.actions],
                        }
                        for sub in section.submodules
                    ],
                }
                for section in self._sections
            ],
        }


def _require_name(value: Any, where: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise RegistryError(f"{where}: name must be a non-empty string")
    return value


def build_registry(structure: Any, version: int = STRUCTURE_VERSION,
                   labels: Optional[Mapping[str, str]] = None) -> PermissionRegistry:
    """Validate ``structure`` and return an immutable registry. Raises RegistryError."""
    if not isinstance(structure, Mapping) or not structure:
        raise RegistryError('permission structure must be a non-empty mapping of sections')
    seen_submodules: Dict[str, str] = {}
    sections = []
    for section_id, section_def in structure.items():
        if not isinstance(section_id, str) or not section_id:
            raise RegistryError(f"invalid section id: {section_id!r}")
        if not isinstance(section_def, Mapping):
            raise RegistryError(f"section '{section_id}' must be a mapping")
        name = _require_name(section_def.get('name'), f"section '{section_id}'")
        subs_def = section_def.get('submodules')
        if not isinstance(subs_def, Mapping) or not subs_def:
            raise RegistryError(f"section '{section_id}' must declare at least one submodule")
        submodules = []
        for sub_id, sub_def in subs_def.items():
            if not isinstance(sub_id, str) or not sub_id:
                raise RegistryError(f"invalid submodule id in section '{section_id}': {sub_id!r}")
            if sub_id in seen_submodules:
                raise RegistryError(
                    f"submodule '{sub_id}' declared in both '{seen_submodules[sub_id]}' and '{section_id}'"
                )
            if not isinstance(sub_def, Mapping):
                raise RegistryError(f"submodule '{sub_id}' must be a mapping")
            sub_name = _require_name(sub_def.get('name'), f"submodule '{sub_id}'")
            actions = sub_def.get('actions', [])
            if not isinstance(actions, (list, tuple)):
                raise RegistryError(f"submodule '{sub_id}': actions must be a list")
            if any(not isinstance(a, str) or not a for a in actions):
                raise RegistryError(f"submodule '{sub_id}': action ids must be non-empty strings")
            if len(set(actions)) != len(actions):
                raise RegistryError(f"submodule '{sub_id}': duplicate action ids")
            seen_submodules[sub_id] = section_id
            submodules.append(Submodule(id=sub_id, name=sub_name, actions=tuple(actions)))
        sections.append(Section(id=section_id, name=name, submodules=tuple(submodules)))
    return PermissionRegistry(tuple(sections), version=version,
                              labels=ACTION_LABELS if labels is None else labels)


def load_registry_file(path: str) -> PermissionRegistry:
    """Load a registry from a JSON file. Accepts either the bare structure or
    ``{"version": n, "structure": {...}, "labels": {...}}``."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            doc = json.load(f)
    except (OSError, ValueError) as e:
        raise RegistryError(f"cannot read permission structure file {path}: {e}") from e
    if isinstance(doc, dict) and 'structure' in doc:
        version = doc.get('version', STRUCTURE_VERSION)
        if not isinstance(version, int):
            raise RegistryError('version must be int')
        return build_registry(doc['structure'], version=version, labels=doc.get('labels'))
    return build_registry(doc)


DEFAULT_REGISTRY = build_registry(PERMISSION_STRUCTURE)


def resolve_registry(registry: Optional[PermissionRegistry] = None) -> PermissionRegistry:
    """Explicit registry, else the one installed on the current app, else the built-in one."""
    if registry is not None:
        return registry
    from flask import current_app, has_app_context
    if has_app_context():
        installed = current_app.extensions.get(EXTENSION_KEY)
        if installed is not None:
            return installed
    return DEFAULT_REGISTRY


__all__ = [
    'Section', 'Submodule', 'PermissionRegistry', 'build_registry', 'load_registry_file',
    'DEFAULT_REGISTRY', 'resolve_registry', 'EXTENSION_KEY',
]
