"""Name-uniqueness and rollout-value checks over declarations."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from .errors import DuplicateModelNamesError, InvalidSurgeOrUnavailableError
from .models import APIDeclaration, ModelResource

__all__ = [
    "check_duplicate_models",
    "find_duplicate_apis",
    "is_model_name_in",
    "validate_surge_or_unavailable",
]

_INT32_MAX = 2**31 - 1
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def check_duplicate_models(models: Iterable[ModelResource]) -> None:
    """Raise ``DuplicateModelNamesError`` on the first repeated name."""
    seen: set[str] = set()
    for model in models:
        if model.name in seen:
            raise DuplicateModelNamesError(model.name)
        seen.add(model.name)


def find_duplicate_apis(apis: Sequence[APIDeclaration]) -> list[APIDeclaration]:
    """
    Return the first group of APIs sharing a name, in declaration order.

    An empty list means every name is unique.
    """
    groups: dict[str, list[APIDeclaration]] = {}
    for api in apis:
        groups.setdefault(api.name, []).append(api)
    for group in groups.values():
        if len(group) > 1:
            return group
    return []


def is_model_name_in(models: Iterable[ModelResource], name: str) -> bool:
    return any(model.name == name for model in models)


def _parse_int32(value: str) -> int | None:
    if not _INTEGER_RE.fullmatch(value):
        return None
    parsed = int(value)
    if not -_INT32_MAX - 1 <= parsed <= _INT32_MAX:
        return None
    return parsed


def validate_surge_or_unavailable(value: str) -> str:
    """
    Validate a ``max_surge`` / ``max_unavailable`` value.

    Accepts a non-negative integer (``"3"``) or a percentage between 0 and
    100 (``"25%"``). Returns *value* unchanged.
    """
    if value.endswith("%"):
        parsed = _parse_int32(value[:-1])
        if parsed is None or not 0 <= parsed <= 100:
            raise InvalidSurgeOrUnavailableError(value)
    else:
        parsed = _parse_int32(value)
        if parsed is None or parsed < 0:
            raise InvalidSurgeOrUnavailableError(value)
    return value
