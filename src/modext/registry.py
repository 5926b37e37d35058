"""
Registry of repositories generated by one module extension evaluation.

Each repository rule call made by an extension implementation lands in
:meth:`RepositoryRegistry.declare`. The registry enforces that every
user-chosen name is declared at most once, prefixes it to form the globally
unique canonical name, delegates attribute validation to a rule materializer,
and keeps the resulting :class:`RepositorySpecification` together with the
location of the call.

Once the implementation returns, the evaluation driver seals the registry and
pulls the specifications with :meth:`RepositoryRegistry.extract_all`.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .context import Directories, EvaluationContext
from .errors import (
    EvalError,
    InvalidRuleError,
    PackageLookupError,
    RegistrySealedError,
    RepositoryConflictError,
    RepositoryNameError,
    SchemaValidationError,
)
from .events import EventHandler
from .labels import PackageIdentifier, RepositoryMapping, validate_user_provided_repo_name
from .logger import get_logger
from .models import DeclarationRecord, Location, RepositorySpecification
from .rules import RuleClass, RuleMaterializer, SchemaRuleMaterializer
from .settings import settings

log = get_logger(__name__)

CALL_SITE_LABEL = "RepositoryRuleFunction.createRule"


class RepositoryRegistry:
    """Accumulates the repositories declared during one extension evaluation."""

    def __init__(
        self,
        repo_prefix: str,
        base_package: PackageIdentifier,
        repo_mapping: RepositoryMapping,
        directories: Directories,
        event_handler: EventHandler,
        materializer: Optional[RuleMaterializer] = None,
    ) -> None:
        self.repo_prefix = repo_prefix
        self.base_package = base_package
        self.repo_mapping = repo_mapping
        self.directories = directories
        self.event_handler = event_handler
        self.materializer = materializer or SchemaRuleMaterializer()
        self._declarations: Dict[str, DeclarationRecord] = {}
        self._sealed = False

    def store_in(self, ctx: EvaluationContext) -> None:
        """Attach this registry to ``ctx`` so rule calls can find it."""
        ctx.set_local(RepositoryRegistry, self)

    @staticmethod
    def from_context(ctx: EvaluationContext) -> Optional["RepositoryRegistry"]:
        return ctx.get_local(RepositoryRegistry)

    @staticmethod
    def from_context_or_fail(ctx: EvaluationContext, what: str) -> "RepositoryRegistry":
        registry = ctx.get_local(RepositoryRegistry)
        if registry is None:
            raise EvalError(f"{what} can only be called during module extension evaluation")
        return registry

    def declare(
        self,
        attribute_values: Mapping[str, Any],
        rule_class: RuleClass,
        location: Location,
        semantics_version: Optional[str] = None,
    ) -> RepositorySpecification:
        """Validate one repository declaration and record it.

        ``attribute_values`` are the keyword arguments of the rule call,
        including the mandatory ``name``. Raises :class:`RepositoryNameError`,
        :class:`RepositoryConflictError` or :class:`SchemaValidationError`; on
        any failure the registry is left unchanged.
        """
        if self._sealed:
            raise RegistrySealedError(
                f"cannot declare repositories after the generated repos of "
                f"'{self.repo_prefix}' were extracted"
            )

        name = attribute_values.get("name")
        if not isinstance(name, str):
            raise RepositoryNameError(
                f"expected string for attribute 'name', got '{type(name).__name__}'"
            )
        validate_user_provided_repo_name(name)

        conflict = self._declarations.get(name)
        if conflict is not None:
            log.info(
                "repository_conflict",
                name=name,
                first=str(conflict.location),
                second=str(location),
            )
            raise RepositoryConflictError(name, conflict.location)

        prefixed_name = self.repo_prefix + name
        substituted = {
            key: prefixed_name if key == "name" else value
            for key, value in attribute_values.items()
        }
        try:
            rule = self.materializer.materialize(
                self.base_package,
                self.repo_mapping,
                self.directories,
                semantics_version or settings.semantics_version,
                self.event_handler,
                CALL_SITE_LABEL,
                rule_class,
                substituted,
            )
        except (InvalidRuleError, PackageLookupError) as exc:
            raise SchemaValidationError(str(exc)) from exc

        attributes = {
            key: rule.get_attr(key) for key in attribute_values if key != "name"
        }
        spec = RepositorySpecification(
            bzl_file=rule_class.definition_label.unambiguous_canonical_form,
            rule_class_name=rule_class.name,
            attributes=attributes,
        )
        self._declarations[name] = DeclarationRecord(spec, location)
        log.debug(
            "repository_declared",
            name=name,
            canonical_name=prefixed_name,
            rule=rule_class.name,
            location=str(location),
        )
        return spec

    def create_repo(
        self,
        ctx: EvaluationContext,
        attribute_values: Mapping[str, Any],
        rule_class: RuleClass,
        location: Optional[Location] = None,
    ) -> RepositorySpecification:
        """Declare a repository using the caller location and semantics of ``ctx``."""
        return self.declare(
            attribute_values,
            rule_class,
            location if location is not None else ctx.caller_location,
            semantics_version=ctx.semantics_version,
        )

    def extract_all(self) -> Mapping[str, RepositorySpecification]:
        """Return the generated specifications keyed by their unprefixed names."""
        return MappingProxyType(
            {name: record.specification for name, record in self._declarations.items()}
        )

    def location_of(self, name: str) -> Optional[Location]:
        record = self._declarations.get(name)
        return record.location if record is not None else None

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __len__(self) -> int:
        return len(self._declarations)

    def __contains__(self, name: object) -> bool:
        return name in self._declarations

    def __repr__(self) -> str:
        return (
            f"RepositoryRegistry(prefix={self.repo_prefix!r}, "
            f"repos={len(self._declarations)})"
        )
