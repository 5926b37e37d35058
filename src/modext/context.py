"""
Per-evaluation state passed explicitly to extension code.

Objects that must be reachable from anywhere inside one evaluation (the
repository registry, the vendor classifier) are attached to the
:class:`EvaluationContext` keyed by their type and looked up the same way.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

from .models import BUILTIN_LOCATION, Location
from .settings import settings

T = TypeVar("T")


@dataclass(frozen=True)
class Directories:
    """Filesystem roots a rule materializer may need to resolve paths."""

    workspace: Path
    output_base: Path

    @classmethod
    def from_settings(cls) -> "Directories":
        return cls(workspace=settings.workspace_root, output_base=settings.output_base)


class EvaluationContext:
    """One logical thread of extension execution."""

    def __init__(
        self,
        label: str = "<unknown>",
        semantics_version: Optional[str] = None,
    ) -> None:
        self.label = label
        self.semantics_version = semantics_version or settings.semantics_version
        self.caller_location: Location = BUILTIN_LOCATION
        self._locals: Dict[type, Any] = {}

    def set_local(self, key: Type[T], value: T) -> None:
        self._locals[key] = value

    def get_local(self, key: Type[T]) -> Optional[T]:
        return self._locals.get(key)

    def remove_local(self, key: type) -> None:
        self._locals.pop(key, None)

    def __repr__(self) -> str:
        return f"EvaluationContext(label={self.label!r})"
