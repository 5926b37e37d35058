"""
Repository rule schemas and the default rule materializer.

The registry never inspects attribute types itself. It hands the raw keyword
values to a :class:`RuleMaterializer`, which validates them against a
:class:`RuleClass` and returns a :class:`Rule` whose attribute values have been
normalized (defaults applied, labels resolved, containers frozen).
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from pydantic import TypeAdapter, ValidationError

from .context import Directories
from .errors import InvalidRuleError
from .events import Event, EventHandler, EventKind
from .labels import Label, PackageIdentifier, RepositoryMapping
from .logger import get_logger

log = get_logger(__name__)


class AttributeType(str, enum.Enum):
    STRING = "string"
    INT = "int"
    BOOL = "bool"
    STRING_LIST = "string_list"
    STRING_DICT = "string_dict"
    LABEL = "label"
    LABEL_LIST = "label_list"


_PYTHON_TYPES: Dict[AttributeType, Any] = {
    AttributeType.STRING: str,
    AttributeType.INT: int,
    AttributeType.BOOL: bool,
    AttributeType.STRING_LIST: List[str],
    AttributeType.STRING_DICT: Dict[str, str],
    AttributeType.LABEL: str,
    AttributeType.LABEL_LIST: List[str],
}

_ADAPTERS: Dict[AttributeType, TypeAdapter] = {
    attr_type: TypeAdapter(python_type) for attr_type, python_type in _PYTHON_TYPES.items()
}

_ZERO_VALUES: Dict[AttributeType, Any] = {
    AttributeType.STRING: "",
    AttributeType.INT: 0,
    AttributeType.BOOL: False,
    AttributeType.STRING_LIST: (),
    AttributeType.STRING_DICT: MappingProxyType({}),
    AttributeType.LABEL: None,
    AttributeType.LABEL_LIST: (),
}


@dataclass(frozen=True)
class Attribute:
    """Schema entry for a single rule attribute."""

    name: str
    type: AttributeType = AttributeType.STRING
    default: Any = None
    mandatory: bool = False
    deprecated: Optional[str] = None
    doc: str = ""

    @property
    def default_value(self) -> Any:
        if self.default is None:
            return _ZERO_VALUES[self.type]
        if isinstance(self.default, list):
            return tuple(self.default)
        if isinstance(self.default, dict):
            return MappingProxyType(dict(self.default))
        return self.default


NAME_ATTRIBUTE = Attribute("name", AttributeType.STRING, mandatory=True)


@dataclass(frozen=True)
class RuleClass:
    """The schema of a repository rule plus the label of the file defining it."""

    name: str
    definition_label: Label
    attributes: Tuple[Attribute, ...] = ()
    doc: str = ""
    _by_name: Mapping[str, Attribute] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_name: Dict[str, Attribute] = {"name": NAME_ATTRIBUTE}
        for attr in self.attributes:
            if attr.name == "name":
                raise ValueError(f"rule '{self.name}' may not redefine the 'name' attribute")
            if attr.name in by_name:
                raise ValueError(f"duplicate attribute '{attr.name}' in rule '{self.name}'")
            by_name[attr.name] = attr
        object.__setattr__(self, "attributes", tuple(self.attributes))
        object.__setattr__(self, "_by_name", MappingProxyType(by_name))

    def get_attribute(self, name: str) -> Optional[Attribute]:
        return self._by_name.get(name)

    def attribute_names(self) -> Iterable[str]:
        return self._by_name.keys()


class Rule:
    """A rule instance whose attribute values passed schema validation."""

    def __init__(
        self,
        rule_class: RuleClass,
        name: str,
        values: Mapping[str, Any],
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.rule_class = rule_class
        self.name = name
        self._values = dict(values)
        # Defaults that needed resolving (labels) against the declaring package.
        self._defaults = dict(defaults or {})

    def get_attr(self, name: str) -> Any:
        if name == "name":
            return self.name
        if name in self._values:
            return self._values[name]
        if name in self._defaults:
            return self._defaults[name]
        attr = self.rule_class.get_attribute(name)
        if attr is None:
            raise KeyError(f"no such attribute '{name}' in '{self.rule_class.name}' rule")
        return attr.default_value

    def is_attribute_value_explicitly_specified(self, name: str) -> bool:
        return name == "name" or name in self._values

    def __repr__(self) -> str:
        return f"Rule({self.rule_class.name!r}, name={self.name!r})"


class RuleMaterializer(Protocol):
    """Builds a validated :class:`Rule` from raw keyword values."""

    def materialize(
        self,
        base_package: PackageIdentifier,
        repo_mapping: RepositoryMapping,
        directories: Directories,
        semantics_version: str,
        event_handler: EventHandler,
        call_site_label: str,
        rule_class: RuleClass,
        attribute_values: Mapping[str, Any],
    ) -> Rule:
        ...


class SchemaRuleMaterializer:
    """Validates attribute values strictly against a :class:`RuleClass` schema."""

    def materialize(
        self,
        base_package: PackageIdentifier,
        repo_mapping: RepositoryMapping,
        directories: Directories,
        semantics_version: str,
        event_handler: EventHandler,
        call_site_label: str,
        rule_class: RuleClass,
        attribute_values: Mapping[str, Any],
    ) -> Rule:
        values: Dict[str, Any] = {}
        for key, raw in attribute_values.items():
            attr = rule_class.get_attribute(key)
            if attr is None:
                raise InvalidRuleError(
                    f"no such attribute '{key}' in '{rule_class.name}' rule"
                )
            if raw is None:
                continue
            value = self._resolve_labels(
                attr, self._validate(rule_class, attr, raw), base_package, repo_mapping
            )
            if attr.deprecated:
                event_handler.handle(
                    Event(
                        EventKind.WARNING,
                        f"attribute '{key}' of '{rule_class.name}' is deprecated: "
                        f"{attr.deprecated}",
                    )
                )
            values[key] = _freeze_value(value)

        for attr in rule_class.attributes:
            if attr.mandatory and attr.name not in values:
                raise InvalidRuleError(
                    f"missing value for mandatory attribute '{attr.name}' in "
                    f"'{rule_class.name}' rule"
                )
        defaults: Dict[str, Any] = {}
        for attr in rule_class.attributes:
            if attr.name in values or attr.default is None:
                continue
            if attr.type in (AttributeType.LABEL, AttributeType.LABEL_LIST):
                defaults[attr.name] = _freeze_value(
                    self._resolve_labels(attr, attr.default, base_package, repo_mapping)
                )

        name = values.pop("name", None)
        if name is None:
            raise InvalidRuleError(
                f"missing value for mandatory attribute 'name' in '{rule_class.name}' rule"
            )

        log.debug(
            "rule_materialized",
            rule=rule_class.name,
            name=name,
            call_site=call_site_label,
            semantics_version=semantics_version,
            base_package=str(base_package),
        )
        return Rule(rule_class, name, values, defaults)

    @staticmethod
    def _resolve_labels(
        attr: Attribute,
        value: Any,
        base_package: PackageIdentifier,
        repo_mapping: RepositoryMapping,
    ) -> Any:
        if attr.type is AttributeType.LABEL:
            return Label.parse(value, base_package, repo_mapping).unambiguous_canonical_form
        if attr.type is AttributeType.LABEL_LIST:
            return [
                Label.parse(item, base_package, repo_mapping).unambiguous_canonical_form
                for item in value
            ]
        return value

    @staticmethod
    def _validate(rule_class: RuleClass, attr: Attribute, raw: Any) -> Any:
        if isinstance(raw, tuple):
            candidate: Any = list(raw)
        elif isinstance(raw, Mapping) and not isinstance(raw, dict):
            candidate = dict(raw)
        else:
            candidate = raw
        try:
            return _ADAPTERS[attr.type].validate_python(candidate, strict=True)
        except ValidationError as exc:
            raise InvalidRuleError(
                f"expected value of type '{attr.type.value}' for attribute "
                f"'{attr.name}' in '{rule_class.name}' rule, got {raw!r} "
                f"({type(raw).__name__})"
            ) from exc


def _freeze_value(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(value)
    if isinstance(value, dict):
        return MappingProxyType(value)
    return value
