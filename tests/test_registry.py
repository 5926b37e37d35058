import pytest

from modext.context import EvaluationContext
from modext.errors import (
    EvalError,
    InvalidRuleError,
    PackageLookupError,
    RegistrySealedError,
    RepositoryConflictError,
    RepositoryNameError,
    SchemaValidationError,
)
from modext.labels import Label
from modext.models import Location
from modext.registry import RepositoryRegistry
from modext.rules import Attribute, AttributeType, RuleClass, SchemaRuleMaterializer

FIRST = Location("extensions.py", 3, 5)
SECOND = Location("extensions.py", 9, 5)


class RecordingMaterializer:
    def __init__(self) -> None:
        self.calls: list[dict] = []
        self._delegate = SchemaRuleMaterializer()

    def materialize(self, *args):
        self.calls.append(dict(args[-1]))
        return self._delegate.materialize(*args)


def test_declare_then_extract(make_registry, http_archive) -> None:
    registry = make_registry(prefix="ext+")
    registry.declare({"name": "foo", "sha256": "abc"}, http_archive, FIRST)

    repos = registry.extract_all()
    assert list(repos) == ["foo"]
    spec = repos["foo"]
    assert spec.rule_class_name == "http_archive"
    assert spec.bzl_file == "@@bazel_tools//tools/build_defs/repo:http.bzl"
    assert dict(spec.attributes) == {"sha256": "abc"}


def test_duplicate_name_reports_first_location(make_registry, http_archive) -> None:
    registry = make_registry(prefix="ext+")
    registry.declare({"name": "foo", "sha256": "abc"}, http_archive, FIRST)

    with pytest.raises(RepositoryConflictError) as excinfo:
        registry.declare({"name": "foo", "url": "https://example.com"}, http_archive, SECOND)

    assert excinfo.value.name == "foo"
    assert excinfo.value.location == FIRST
    assert str(excinfo.value) == (
        "A repo named foo is already generated by this module extension "
        "at extensions.py:3:5"
    )
    assert dict(registry.extract_all()["foo"].attributes) == {"sha256": "abc"}


def test_duplicate_with_identical_attributes_still_conflicts(make_registry, http_archive) -> None:
    registry = make_registry()
    registry.declare({"name": "foo", "sha256": "abc"}, http_archive, FIRST)
    with pytest.raises(RepositoryConflictError) as excinfo:
        registry.declare({"name": "foo", "sha256": "abc"}, http_archive, SECOND)
    assert excinfo.value.location == FIRST


def test_empty_name_is_rejected(make_registry, http_archive) -> None:
    registry = make_registry()
    with pytest.raises(RepositoryNameError, match="invalid user-provided repo name ''"):
        registry.declare({"name": ""}, http_archive, FIRST)
    assert dict(registry.extract_all()) == {}


@pytest.mark.parametrize(
    "attrs, expected",
    [
        ({"sha256": "abc"}, "got 'NoneType'"),
        ({"name": 42}, "got 'int'"),
        ({"name": ["foo"]}, "got 'list'"),
    ],
)
def test_name_must_be_a_string(make_registry, http_archive, attrs, expected) -> None:
    registry = make_registry()
    with pytest.raises(RepositoryNameError, match=expected):
        registry.declare(attrs, http_archive, FIRST)


@pytest.mark.parametrize("name", ["1foo", "foo/bar", "@foo", "foo bar", "_foo", "fo+o"])
def test_name_syntax_is_validated(make_registry, http_archive, name) -> None:
    registry = make_registry()
    with pytest.raises(RepositoryNameError):
        registry.declare({"name": name}, http_archive, FIRST)
    assert len(registry) == 0


def test_prefixed_name_is_given_to_materializer(make_registry, http_archive) -> None:
    materializer = RecordingMaterializer()
    registry = make_registry(prefix="my_module++deps+", materializer=materializer)

    registry.declare({"name": "foo", "sha256": "abc"}, http_archive, FIRST)
    registry.declare({"name": "bar"}, http_archive, SECOND)

    assert [call["name"] for call in materializer.calls] == [
        "my_module++deps+foo",
        "my_module++deps+bar",
    ]
    assert materializer.calls[0]["sha256"] == "abc"
    assert set(registry.extract_all()) == {"foo", "bar"}


def test_schema_errors_are_forwarded(make_registry, http_archive) -> None:
    registry = make_registry()
    registry.declare({"name": "foo"}, http_archive, FIRST)
    before = dict(registry.extract_all())

    with pytest.raises(SchemaValidationError) as excinfo:
        registry.declare({"name": "bar", "bogus": 1}, http_archive, SECOND)

    assert str(excinfo.value) == "no such attribute 'bogus' in 'http_archive' rule"
    assert isinstance(excinfo.value.__cause__, InvalidRuleError)
    assert dict(registry.extract_all()) == before
    assert "bar" not in registry


def test_package_lookup_errors_are_forwarded(make_registry, http_archive) -> None:
    registry = make_registry()
    with pytest.raises(SchemaValidationError) as excinfo:
        registry.declare(
            {"name": "foo", "patches": ["@unknown//:fix.patch"]}, http_archive, FIRST
        )
    assert "No repository visible as '@unknown' from module 'root'" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, PackageLookupError)
    assert len(registry) == 0


def test_failed_name_can_be_declared_later(make_registry, http_archive) -> None:
    registry = make_registry()
    with pytest.raises(SchemaValidationError):
        registry.declare({"name": "foo", "sha256": 1}, http_archive, FIRST)
    registry.declare({"name": "foo", "sha256": "abc"}, http_archive, SECOND)
    assert registry.location_of("foo") == SECOND


def test_attributes_are_normalized(make_registry, http_archive) -> None:
    registry = make_registry()
    spec = registry.declare(
        {
            "name": "foo",
            "urls": ["https://a", "https://b"],
            "patches": ["//patches:fix.patch", "@rules_foo//:p.patch"],
            "build_file": ":BUILD.foo",
            "strip_prefix": None,
        },
        http_archive,
        FIRST,
    )
    assert spec.attributes["urls"] == ("https://a", "https://b")
    assert spec.attributes["patches"] == (
        "@@//patches:fix.patch",
        "@@rules_foo+//:p.patch",
    )
    assert spec.attributes["build_file"] == "@@//:BUILD.foo"
    assert spec.attributes["strip_prefix"] == ""
    assert "patch_args" not in spec.attributes
    assert list(spec.attributes) == ["urls", "patches", "build_file", "strip_prefix"]


def test_extract_all_is_an_idempotent_snapshot(make_registry, http_archive) -> None:
    registry = make_registry()
    registry.declare({"name": "foo", "sha256": "abc"}, http_archive, FIRST)

    first = registry.extract_all()
    second = registry.extract_all()
    assert dict(first) == dict(second)

    registry.declare({"name": "bar"}, http_archive, SECOND)
    assert "bar" not in first
    assert list(registry.extract_all()) == ["foo", "bar"]

    with pytest.raises(TypeError):
        first["baz"] = first["foo"]  # type: ignore[index]


def test_sealed_registry_rejects_declarations(make_registry, http_archive) -> None:
    registry = make_registry()
    registry.declare({"name": "foo"}, http_archive, FIRST)
    registry.seal()

    with pytest.raises(RegistrySealedError):
        registry.declare({"name": "bar"}, http_archive, SECOND)
    assert registry.sealed
    assert list(registry.extract_all()) == ["foo"]


def test_registry_is_found_through_context(make_registry, http_archive) -> None:
    ctx = EvaluationContext(label="root%deps")
    assert RepositoryRegistry.from_context(ctx) is None
    with pytest.raises(EvalError, match="http_archive\\(\\) can only be called"):
        RepositoryRegistry.from_context_or_fail(ctx, "http_archive()")

    registry = make_registry()
    registry.store_in(ctx)
    assert RepositoryRegistry.from_context_or_fail(ctx, "http_archive()") is registry


def test_create_repo_uses_context_location(make_registry, http_archive) -> None:
    ctx = EvaluationContext(label="root%deps")
    ctx.caller_location = FIRST
    registry = make_registry()

    registry.create_repo(ctx, {"name": "foo"}, http_archive)
    registry.create_repo(ctx, {"name": "bar"}, http_archive, SECOND)

    assert registry.location_of("foo") == FIRST
    assert registry.location_of("bar") == SECOND
    assert registry.location_of("baz") is None


def test_label_defaults_are_recorded_canonically(make_registry) -> None:
    rule_class = RuleClass(
        name="local_repo",
        definition_label=Label.parse("@@rules_foo+//:defs.bzl"),
        attributes=(Attribute("build_file", AttributeType.LABEL, default="@rules_foo//:BUILD"),),
    )
    registry = make_registry()

    spec = registry.declare({"name": "foo", "build_file": None}, rule_class, FIRST)

    assert spec.attributes["build_file"] == "@@rules_foo+//:BUILD"


def test_specification_values_can_be_reused(make_registry) -> None:
    rule_class = RuleClass(
        name="env_repo",
        definition_label=Label.parse("@@rules_foo+//:defs.bzl"),
        attributes=(Attribute("env", AttributeType.STRING_DICT),),
    )
    registry = make_registry()
    first = registry.declare({"name": "foo", "env": {"K": "V"}}, rule_class, FIRST)

    second = registry.declare({"name": "bar", "env": first.attributes["env"]}, rule_class, SECOND)

    assert second.attributes["env"] == first.attributes["env"]
    assert second.to_dict()["attributes"] == {"env": {"K": "V"}}
