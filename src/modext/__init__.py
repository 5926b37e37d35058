"""
Repository registry for module extension evaluation.

Extensions declare repositories by calling repository rules; the registry
validates each declaration, rejects duplicate names and turns the calls into
immutable :class:`RepositorySpecification` objects.
"""

from .context import Directories, EvaluationContext
from .errors import (
    EvalError,
    ExtensionEvaluationError,
    InvalidRuleError,
    LabelSyntaxError,
    ModextError,
    PackageLookupError,
    RegistrySealedError,
    RepositoryConflictError,
    RepositoryNameError,
    SchemaValidationError,
)
from .extension import (
    ExtensionEvalResult,
    ModuleExtension,
    RepositoryRuleFunction,
    evaluate_extension,
    module_extension,
    repository_rule,
)
from .labels import Label, PackageIdentifier, RepositoryMapping, RepositoryName
from .models import DeclarationRecord, Location, RepositorySpecification
from .registry import RepositoryRegistry
from .rules import Attribute, AttributeType, Rule, RuleClass, SchemaRuleMaterializer
from .version import __version__

__all__ = [
    "Attribute",
    "AttributeType",
    "DeclarationRecord",
    "Directories",
    "EvalError",
    "EvaluationContext",
    "ExtensionEvalResult",
    "ExtensionEvaluationError",
    "InvalidRuleError",
    "Label",
    "LabelSyntaxError",
    "Location",
    "ModextError",
    "ModuleExtension",
    "PackageIdentifier",
    "PackageLookupError",
    "RegistrySealedError",
    "RepositoryConflictError",
    "RepositoryMapping",
    "RepositoryName",
    "RepositoryNameError",
    "RepositoryRegistry",
    "RepositoryRuleFunction",
    "RepositorySpecification",
    "Rule",
    "RuleClass",
    "SchemaRuleMaterializer",
    "SchemaValidationError",
    "__version__",
    "evaluate_extension",
    "module_extension",
    "repository_rule",
]
