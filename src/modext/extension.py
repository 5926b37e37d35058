"""
Module extension evaluation driver.

An extension implementation is a plain callable taking an
:class:`~modext.context.EvaluationContext`. Repository rules created with
:func:`repository_rule` are called with that context as first argument::

    http_archive = repository_rule(
        "http_archive",
        attrs=[Attribute("url", mandatory=True), Attribute("sha256")],
        definition="@@bazel_tools//tools/build_defs/repo:http.bzl",
    )

    @module_extension("deps")
    def deps(ctx):
        http_archive(ctx, name="foo", url="https://example.com/foo.zip")

    result = evaluate_extension(deps, module_name="my_module")
    result.generated_repos["foo"]
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from .context import Directories, EvaluationContext
from .errors import EvalError, ExtensionEvaluationError
from .events import Event, EventHandler, LoggingEventHandler, StoredEventHandler
from .labels import (
    EMPTY_MAPPING,
    Label,
    PackageIdentifier,
    RepositoryMapping,
)
from .logger import get_logger
from .models import Location, RepositorySpecification
from .registry import RepositoryRegistry
from .rules import Attribute, RuleClass, RuleMaterializer
from .settings import settings

log = get_logger(__name__)

ExtensionImplementation = Callable[[EvaluationContext], Any]


class RepositoryRuleFunction:
    """Callable handle for a repository rule, usable inside extension code."""

    def __init__(self, rule_class: RuleClass) -> None:
        self.rule_class = rule_class

    @property
    def name(self) -> str:
        return self.rule_class.name

    def __call__(self, ctx: EvaluationContext, **kwargs: Any) -> None:
        registry = RepositoryRegistry.from_context_or_fail(ctx, f"{self.name}()")
        previous = ctx.caller_location
        ctx.caller_location = Location.of_caller()
        try:
            registry.create_repo(ctx, kwargs, self.rule_class)
        finally:
            ctx.caller_location = previous

    def __repr__(self) -> str:
        return f"<repository rule {self.name}>"


def repository_rule(
    name: str,
    attrs: Iterable[Attribute] = (),
    definition: Union[str, Label] = "//:extensions.bzl",
    doc: str = "",
) -> RepositoryRuleFunction:
    """Define a repository rule whose behaviour lives in ``definition``."""
    label = definition if isinstance(definition, Label) else Label.parse(definition)
    return RepositoryRuleFunction(
        RuleClass(name=name, definition_label=label, attributes=tuple(attrs), doc=doc)
    )


@dataclass(frozen=True)
class ModuleExtension:
    name: str
    implementation: ExtensionImplementation
    doc: str = ""


def module_extension(
    name: Optional[str] = None, doc: str = ""
) -> Callable[[ExtensionImplementation], ModuleExtension]:
    """Decorator turning an implementation function into a :class:`ModuleExtension`."""

    def decorator(func: ExtensionImplementation) -> ModuleExtension:
        return ModuleExtension(
            name=name or func.__name__,
            implementation=func,
            doc=doc or (func.__doc__ or ""),
        )

    return decorator


@dataclass
class ExtensionEvalResult:
    extension_id: str
    repo_prefix: str
    generated_repos: Mapping[str, RepositorySpecification]
    events: List[Event] = field(default_factory=list)

    def canonical_name(self, name: str) -> str:
        return self.repo_prefix + name


def extension_repo_prefix(
    module_name: str, extension_name: str, separator: Optional[str] = None
) -> str:
    """Prefix shared by every repository an extension generates.

    ``my_module`` + ``deps`` gives ``my_module++deps+``: the module's canonical
    name followed by the extension name, each terminated by the separator.
    """
    sep = separator if separator is not None else settings.repo_name_separator
    return f"{module_name}{sep}{sep}{extension_name}{sep}"


def evaluate_extension(
    extension: ModuleExtension,
    module_name: str = "_main",
    base_package: Optional[PackageIdentifier] = None,
    repo_mapping: RepositoryMapping = EMPTY_MAPPING,
    directories: Optional[Directories] = None,
    event_handler: Optional[EventHandler] = None,
    materializer: Optional[RuleMaterializer] = None,
    semantics_version: Optional[str] = None,
) -> ExtensionEvalResult:
    """Run ``extension`` once and return the repositories it generated."""
    extension_id = f"{module_name}%{extension.name}"
    repo_prefix = extension_repo_prefix(module_name, extension.name)
    events = StoredEventHandler(delegate=event_handler or LoggingEventHandler())

    ctx = EvaluationContext(label=extension_id, semantics_version=semantics_version)
    registry = RepositoryRegistry(
        repo_prefix=repo_prefix,
        base_package=base_package or PackageIdentifier(),
        repo_mapping=repo_mapping,
        directories=directories or Directories.from_settings(),
        event_handler=events,
        materializer=materializer,
    )
    registry.store_in(ctx)

    log.info("extension_evaluation_started", extension=extension_id, prefix=repo_prefix)
    try:
        extension.implementation(ctx)
    except EvalError as exc:
        log.error("extension_evaluation_failed", extension=extension_id, error=str(exc))
        raise ExtensionEvaluationError(extension_id, exc) from exc
    finally:
        registry.seal()
        ctx.remove_local(RepositoryRegistry)

    generated = registry.extract_all()
    log.info("extension_evaluation_completed", extension=extension_id, repos=len(generated))
    return ExtensionEvalResult(
        extension_id=extension_id,
        repo_prefix=repo_prefix,
        generated_repos=generated,
        events=list(events.events),
    )
