"""
Centralized settings for module extension evaluation.

Values come from ``MODEXT_*`` environment variables, optionally seeded from a
``modext_settings.toml`` file.
"""
from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, List

from pydantic_settings import BaseSettings, SettingsConfigDict


class ModextSettings(BaseSettings):
    """Project-wide settings loaded from env or .env files."""

    model_config = SettingsConfigDict(
        env_prefix="MODEXT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    workspace_root: Path = Path(".")
    output_base: Path = Path("./.modext")
    semantics_version: str = "1"
    repo_name_separator: str = "+"
    log_level: str = "WARNING"


_CONFIG_ENV_VAR = "MODEXT_CONFIG_PATH"
_DEFAULT_CONFIG_FILE = Path("modext_settings.toml")


def _load_toml_config() -> Dict[str, Any]:
    """Load configuration from the primary TOML file on disk."""
    candidates: List[Path] = []
    config_override = os.getenv(_CONFIG_ENV_VAR)
    if config_override:
        candidates.append(Path(config_override))
    candidates.append(_DEFAULT_CONFIG_FILE)

    for candidate in candidates:
        if candidate.is_file():
            with candidate.open("rb") as handle:
                return tomllib.load(handle)
    return {}


def _flatten_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Translate grouped TOML sections into ModextSettings keyword arguments."""
    data: Dict[str, Any] = {}

    workspace = raw.get("workspace", {})
    if "root" in workspace:
        data["workspace_root"] = workspace["root"]
    if "output_base" in workspace:
        data["output_base"] = workspace["output_base"]

    evaluation = raw.get("evaluation", {})
    if "semantics_version" in evaluation:
        data["semantics_version"] = str(evaluation["semantics_version"])
    if "repo_name_separator" in evaluation:
        data["repo_name_separator"] = evaluation["repo_name_separator"]

    logging_section = raw.get("logging", {})
    if "level" in logging_section:
        data["log_level"] = logging_section["level"]

    return data


def load_settings() -> ModextSettings:
    raw = _load_toml_config()
    flattened = _flatten_config(raw)
    return ModextSettings(**flattened)


settings = load_settings()
