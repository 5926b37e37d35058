"""Exception types raised while evaluating module extensions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Location


class ModextError(Exception):
    """Base class for every error raised by modext."""


class EvalError(ModextError):
    """Error surfaced to extension code; it stops the running implementation.

    Every ``EvalError`` raised by the registry is attributable to exactly one
    call and leaves previously accumulated declarations untouched.
    """


class RepositoryNameError(EvalError):
    """The ``name`` attribute is missing, not a string, or syntactically invalid."""


class RepositoryConflictError(EvalError):
    """A repository name was already declared earlier in the same evaluation."""

    def __init__(self, name: str, location: "Location") -> None:
        super().__init__(
            f"A repo named {name} is already generated by this module extension "
            f"at {location}"
        )
        self.name = name
        self.location = location


class SchemaValidationError(EvalError):
    """The rule materializer rejected the attribute values."""


class RegistrySealedError(EvalError):
    """A declaration was attempted after the specifications were extracted."""


class InvalidRuleError(ModextError):
    """Raised by a rule materializer when attribute values do not fit the schema."""


class LabelSyntaxError(InvalidRuleError):
    """A label or repository name string could not be parsed."""


class PackageLookupError(ModextError):
    """A label refers to a repository or package that cannot be resolved."""


class ExtensionEvaluationError(ModextError):
    """Evaluation of a module extension implementation failed."""

    def __init__(self, extension_id: str, cause: Exception) -> None:
        super().__init__(f"error evaluating module extension {extension_id}: {cause}")
        self.extension_id = extension_id
        self.cause = cause


__all__ = [
    "EvalError",
    "ExtensionEvaluationError",
    "InvalidRuleError",
    "LabelSyntaxError",
    "ModextError",
    "PackageLookupError",
    "RegistrySealedError",
    "RepositoryConflictError",
    "RepositoryNameError",
    "SchemaValidationError",
]
