"""
Vendoring classification of canonical repositories.

A vendor file is a callable receiving an :class:`EvaluationContext`; it calls
:func:`ignore` and :func:`pin` to mark repositories that vendor mode must skip
entirely or keep exactly as they are on disk.
"""
from __future__ import annotations

from typing import Callable, Set

from .context import EvaluationContext
from .errors import EvalError, LabelSyntaxError
from .labels import RepositoryName
from .logger import get_logger

log = get_logger(__name__)


class VendorContext:
    """Collects the repositories marked by one vendor file."""

    def __init__(self) -> None:
        self.ignored_repos: Set[RepositoryName] = set()
        self.pinned_repos: Set[RepositoryName] = set()

    def store_in(self, ctx: EvaluationContext) -> None:
        ctx.set_local(VendorContext, self)

    @staticmethod
    def from_context_or_fail(ctx: EvaluationContext, what: str) -> "VendorContext":
        context = ctx.get_local(VendorContext)
        if context is None:
            raise EvalError(f"{what} can only be called from VENDOR files")
        return context

    def add_ignored_repo(self, name: RepositoryName) -> None:
        self.ignored_repos.add(name)

    def add_pinned_repo(self, name: RepositoryName) -> None:
        self.pinned_repos.add(name)


def _repository_name(repo_name: str) -> RepositoryName:
    if not repo_name:
        raise EvalError("repo_name parameter must be specified")
    if not repo_name.startswith("@@"):
        raise EvalError("repo_name parameter must be a canonical repo name")
    try:
        return RepositoryName.create(repo_name[2:])
    except LabelSyntaxError as exc:
        raise EvalError(f"Invalid repo name: {exc}") from exc


def ignore(ctx: EvaluationContext, repo_name: str = "") -> None:
    """Never vendor ``repo_name`` nor consider its directory in vendor mode."""
    context = VendorContext.from_context_or_fail(ctx, "ignore()")
    context.add_ignored_repo(_repository_name(repo_name))


def pin(ctx: EvaluationContext, repo_name: str = "") -> None:
    """Keep the vendored contents of ``repo_name`` as they are."""
    context = VendorContext.from_context_or_fail(ctx, "pin()")
    context.add_pinned_repo(_repository_name(repo_name))


def evaluate_vendor_file(vendor_file: Callable[[EvaluationContext], object]) -> VendorContext:
    ctx = EvaluationContext(label="VENDOR")
    context = VendorContext()
    context.store_in(ctx)
    vendor_file(ctx)
    log.info(
        "vendor_file_evaluated",
        ignored=len(context.ignored_repos),
        pinned=len(context.pinned_repos),
    )
    return context
