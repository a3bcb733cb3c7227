"""Module-access parsing and the access-level comparison used by every protected route."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, List, Optional, Union

from .models import AccessLevelEnum, ModuleEnum
from .schemas import ModuleAccessEntry

ACCESS_LEVEL_RANK = {
    AccessLevelEnum.NO_ACCESS: 0,
    AccessLevelEnum.VIEW_ACCESS: 1,
    AccessLevelEnum.EDIT_ACCESS: 2,
    AccessLevelEnum.FULL_ACCESS: 3,
}

_MODULES = {module.value for module in ModuleEnum}
_ACCESS_LEVELS = {level.value for level in AccessLevelEnum}


def normalize_module_access(raw: Any) -> Optional[List[ModuleAccessEntry]]:
    """Turn a ``{module: access_level}`` request map into module access entries.

    The map is what a checkbox grid sends: one selected level per module.
    Unknown modules and unknown or non-string levels are dropped. Returns
    ``None`` when the input is not a mapping or nothing valid is left.
    """

    if not isinstance(raw, Mapping):
        return None

    entries: List[ModuleAccessEntry] = []
    for module_name, access_level in raw.items():
        if module_name not in _MODULES:
            continue
        if not isinstance(access_level, str) or access_level not in _ACCESS_LEVELS:
            continue
        entries.append(ModuleAccessEntry(module=ModuleEnum(module_name), access_level=AccessLevelEnum(access_level)))

    return entries or None


def effective_access_level(user: Any, module: Union[ModuleEnum, str]) -> AccessLevelEnum:
    """Level granted to ``user`` on ``module`` by their role, ``no_access`` when absent."""

    module = ModuleEnum(module)
    for entry in user.role.module_access:
        if ModuleEnum(entry.module) is module:
            return AccessLevelEnum(entry.access_level)
    return AccessLevelEnum.NO_ACCESS


def has_module_access(
    user: Any,
    module: Union[ModuleEnum, str],
    required: Union[AccessLevelEnum, str],
) -> bool:
    """Whether the user's resolved role grants at least ``required`` on ``module``."""

    effective = effective_access_level(user, module)
    return ACCESS_LEVEL_RANK[effective] >= ACCESS_LEVEL_RANK[AccessLevelEnum(required)]
