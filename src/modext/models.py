"""
Value types produced by module extension evaluation.

A :class:`RepositorySpecification` is what the registry hands to the
dependency graph: the rule's defining file, the rule class name and the
validated attribute values. It is immutable and compares structurally.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class Location:
    """Source position of a call, used for diagnostics only."""

    file: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if not self.line:
            return self.file
        if not self.column:
            return f"{self.file}:{self.line}"
        return f"{self.file}:{self.line}:{self.column}"

    @classmethod
    def of_caller(cls, depth: int = 1) -> "Location":
        """Return the location of the frame ``depth`` levels above the caller."""
        frame = inspect.currentframe()
        try:
            target = frame.f_back if frame is not None else None
            for _ in range(depth):
                if target is None:
                    break
                target = target.f_back
            if target is None:
                return BUILTIN_LOCATION
            return cls(file=target.f_code.co_filename, line=target.f_lineno)
        finally:
            del frame


BUILTIN_LOCATION = Location(file="<builtin>")


def _freeze(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    return value


@dataclass(frozen=True)
class RepositorySpecification:
    """Everything needed to instantiate one generated repository later on."""

    bzl_file: str
    rule_class_name: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if "name" in self.attributes:
            raise ValueError("repository specifications never carry a 'name' attribute")
        object.__setattr__(self, "attributes", _freeze(self.attributes))

    def __hash__(self) -> int:
        return hash((self.bzl_file, self.rule_class_name, tuple(sorted(self.attributes))))

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-compatible representation."""
        return {
            "bzl_file": self.bzl_file,
            "rule_class_name": self.rule_class_name,
            "attributes": _thaw(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RepositorySpecification":
        return cls(
            bzl_file=data["bzl_file"],
            rule_class_name=data["rule_class_name"],
            attributes=data.get("attributes", {}),
        )


@dataclass(frozen=True)
class DeclarationRecord:
    """A generated specification together with the call that declared it."""

    specification: RepositorySpecification
    location: Location

    @property
    def rule_class_name(self) -> str:
        return self.specification.rule_class_name


def describe(spec: RepositorySpecification, name: Optional[str] = None) -> str:
    """Render a one-line summary, e.g. ``http_archive(name = "foo", sha256 = "abc")``."""
    parts = [f"name = {name!r}"] if name is not None else []
    parts.extend(f"{key} = {value!r}" for key, value in spec.attributes.items())
    return f"{spec.rule_class_name}({', '.join(parts)})"
