"""
Repository names, package identifiers and labels.

Labels follow the usual ``@repo//package:target`` syntax. ``@@name`` refers to
a canonical repository name directly; ``@name`` is an apparent name that is
translated through a :class:`RepositoryMapping`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from .errors import LabelSyntaxError, PackageLookupError, RepositoryNameError

_USER_PROVIDED_NAME = re.compile(r"[A-Za-z][-.\w]*", re.ASCII)
_CANONICAL_NAME = re.compile(r"[-.\w+]*", re.ASCII)
_PACKAGE_NAME = re.compile(r"[^:@\s]*", re.ASCII)
_TARGET_NAME = re.compile(r"[^:\s]+")


def _sanitize(value: str) -> str:
    return "".join(ch if ch.isprintable() else "?" for ch in value)


def validate_user_provided_repo_name(name: str) -> None:
    """Reject names an extension may not choose for a generated repository."""
    if not _USER_PROVIDED_NAME.fullmatch(name):
        raise RepositoryNameError(
            f"invalid user-provided repo name '{_sanitize(name)}': valid names may "
            "contain only A-Z, a-z, 0-9, '-', '_', '.', and must start with a letter"
        )


@dataclass(frozen=True)
class RepositoryName:
    """A canonical repository name; the empty name is the main repository."""

    name: str

    @classmethod
    def create(cls, name: str) -> "RepositoryName":
        if name in (".", "..") or not _CANONICAL_NAME.fullmatch(name):
            raise LabelSyntaxError(
                f"invalid repository name '{_sanitize(name)}': repo names may contain "
                "only A-Z, a-z, 0-9, '-', '_', '.' and '+'"
            )
        return cls(name)

    @property
    def is_main(self) -> bool:
        return not self.name

    def __str__(self) -> str:
        return f"@@{self.name}"


MAIN = RepositoryName("")


@dataclass(frozen=True)
class PackageIdentifier:
    repository: RepositoryName = MAIN
    package: str = ""

    def __str__(self) -> str:
        return f"{self.repository}//{self.package}"


@dataclass(frozen=True)
class RepositoryMapping:
    """Translates apparent repository names as seen from ``owner``."""

    entries: Mapping[str, str] = field(default_factory=dict)
    owner: str = "the main repository"

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def __hash__(self) -> int:
        return hash((tuple(sorted(self.entries.items())), self.owner))

    def get(self, apparent: str) -> Optional[RepositoryName]:
        if apparent == "":
            return MAIN
        canonical = self.entries.get(apparent)
        if canonical is None:
            return None
        return RepositoryName.create(canonical)


EMPTY_MAPPING = RepositoryMapping()


@dataclass(frozen=True)
class Label:
    package_id: PackageIdentifier
    name: str

    @property
    def unambiguous_canonical_form(self) -> str:
        return f"{self.package_id}:{self.name}"

    def __str__(self) -> str:
        return self.unambiguous_canonical_form

    @classmethod
    def parse(
        cls,
        raw: str,
        base: PackageIdentifier = PackageIdentifier(),
        mapping: RepositoryMapping = EMPTY_MAPPING,
    ) -> "Label":
        """Parse ``raw`` relative to ``base``, resolving apparent names through ``mapping``."""
        if not raw:
            raise LabelSyntaxError("empty label")
        repository = base.repository
        rest = raw
        if raw.startswith("@@"):
            repo_part, sep, rest = raw[2:].partition("//")
            repository = RepositoryName.create(repo_part)
            if not sep:
                if not repo_part:
                    raise LabelSyntaxError(f"invalid label '{_sanitize(raw)}'")
                return cls(PackageIdentifier(repository, ""), repo_part)
            rest = "//" + rest
        elif raw.startswith("@"):
            repo_part, sep, rest = raw[1:].partition("//")
            RepositoryName.create(repo_part)
            resolved = mapping.get(repo_part)
            if resolved is None:
                raise PackageLookupError(
                    f"No repository visible as '@{repo_part}' from {mapping.owner}"
                )
            repository = resolved
            if not sep:
                if not repo_part:
                    raise LabelSyntaxError(f"invalid label '{_sanitize(raw)}'")
                return cls(PackageIdentifier(repository, ""), repo_part)
            rest = "//" + rest

        if rest.startswith("//"):
            package, colon, target = rest[2:].partition(":")
            if not colon:
                target = package.rsplit("/", 1)[-1]
            package_id = PackageIdentifier(repository, package)
        else:
            target = rest[1:] if rest.startswith(":") else rest
            package_id = PackageIdentifier(repository, base.package)

        if not _PACKAGE_NAME.fullmatch(package_id.package) or package_id.package.endswith("/"):
            raise LabelSyntaxError(f"invalid package name in label '{_sanitize(raw)}'")
        if not target or not _TARGET_NAME.fullmatch(target):
            raise LabelSyntaxError(f"invalid target name in label '{_sanitize(raw)}'")
        return cls(package_id, target)
