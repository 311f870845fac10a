from __future__ import annotations


class PermissionEngineError(Exception):
    """Base class for permission engine failures."""


class RegistryError(PermissionEngineError, ValueError):
    """Permission structure is malformed; raised while building the registry."""


class UnknownSection(PermissionEngineError, LookupError):
    def __init__(self, section_id: str):
        super().__init__(f"Unknown permission section: {section_id}")
        self.section_id = section_id


class UnknownSubmodule(PermissionEngineError, LookupError):
    def __init__(self, submodule_id: str):
        super().__init__(f"Unknown permission submodule: {submodule_id}")
        self.submodule_id = submodule_id


class UnknownAction(PermissionEngineError, LookupError):
    def __init__(self, submodule_id: str, action):
        super().__init__(f"Unknown action for {submodule_id}: {action!r}")
        self.submodule_id = submodule_id
        self.action = action


class NotFound(PermissionEngineError):
    def __init__(self, description: str = 'Resource not found'):
        super().__init__(description)
        self.description = description


class InvalidOperation(PermissionEngineError):
    def __init__(self, description: str = 'Invalid operation'):
        super().__init__(description)
        self.description = description


__all__ = [
    'PermissionEngineError', 'RegistryError', 'UnknownSection', 'UnknownSubmodule', 'UnknownAction',
    'NotFound', 'InvalidOperation',
]
