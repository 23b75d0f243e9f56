"""Placeholder substitution for ``{{dotted.path}}`` templates."""
from __future__ import annotations

from typing import Any, Mapping
import re


_PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]+)\}\}")


class TemplateError(ValueError):
    """Raised when template resolution fails."""


class TemplateResolver:
    """Resolve ``{{path}}`` placeholders against a nested context mapping.

    Substituted values are inserted literally; placeholders inside them are
    not expanded again.
    """

    def __init__(self, context: Mapping[str, Any]):
        self._context = context

    def resolve(self, template: str) -> str:
        def _replace(match: re.Match[str]) -> str:
            return self._value_for(match.group(1).strip())

        return _PLACEHOLDER_PATTERN.sub(_replace, template)

    def _value_for(self, path: str) -> str:
        current: Any = self._context
        for part in path.split("."):
            if isinstance(current, Mapping) and part in current:
                current = current[part]
                continue
            raise TemplateError(f"Cannot resolve path '{path}' in template context")
        if isinstance(current, (Mapping, list, tuple)):
            raise TemplateError(f"Placeholder '{path}' does not resolve to a scalar value")
        return "" if current is None else str(current)


__all__ = [
    "TemplateError",
    "TemplateResolver",
]
