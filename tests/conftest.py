from pathlib import Path

import pytest

from modext.context import Directories
from modext.events import StoredEventHandler
from modext.labels import Label, PackageIdentifier, RepositoryMapping
from modext.registry import RepositoryRegistry
from modext.rules import Attribute, AttributeType, RuleClass


@pytest.fixture
def http_archive() -> RuleClass:
    return RuleClass(
        name="http_archive",
        definition_label=Label.parse("@@bazel_tools//tools/build_defs/repo:http.bzl"),
        attributes=(
            Attribute("url"),
            Attribute("urls", AttributeType.STRING_LIST),
            Attribute("sha256"),
            Attribute("strip_prefix"),
            Attribute("patches", AttributeType.LABEL_LIST),
            Attribute("build_file", AttributeType.LABEL),
            Attribute("patch_args", AttributeType.STRING_LIST, default=["-p0"]),
        ),
    )


@pytest.fixture
def events() -> StoredEventHandler:
    return StoredEventHandler()


@pytest.fixture
def make_registry(events: StoredEventHandler):
    def _make(prefix: str = "ext+", materializer=None) -> RepositoryRegistry:
        return RepositoryRegistry(
            repo_prefix=prefix,
            base_package=PackageIdentifier(),
            repo_mapping=RepositoryMapping({"rules_foo": "rules_foo+"}, owner="module 'root'"),
            directories=Directories(workspace=Path("/ws"), output_base=Path("/out")),
            event_handler=events,
            materializer=materializer,
        )

    return _make
