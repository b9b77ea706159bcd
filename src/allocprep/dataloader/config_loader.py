# src/allocprep/dataloader/config_loader.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, NoReturn

import yaml
from pydantic import ValidationError

from allocprep.errors import ConfigError
from allocprep.schemas.models import Config

logger = logging.getLogger(__name__)

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def _fail(message: str, where: str, action: str) -> NoReturn:
    raise ConfigError(message=message, source=f"ConfigLoader.{where}", suggested_action=action)


def _describe(err: ValidationError) -> str:
    """One 'section.key: reason' item per pydantic error, joined with '; '."""
    parts = []
    for item in err.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)


class ConfigLoader:
    """
    @brief
    Reads config.yaml into a validated `Config`.

    @details
    Every section of the file is optional; omitted sections and keys keep
    the model defaults. Unknown keys are rejected at every level so typos do
    not silently fall back to defaults.
    """

    def load(self, path: Path) -> Config:
        """
        @brief
        Load and validate configuration from a YAML file.

        @raises
            ConfigError
                Missing or unreadable file, wrong extension, YAML syntax
                error, non-mapping root, or schema violation.
        """
        data = self._read_yaml(path)
        cfg = self._validate(data)
        logger.info("Config loaded from %s (sections: %s)", path, ", ".join(sorted(data)) or "-")
        return cfg

    def load_or_default(self, path: Path | None) -> Config:
        """`load(path)` when a path is given, built-in defaults otherwise."""
        if path is None:
            logger.info("No config file given; using built-in defaults")
            return Config()
        return self.load(path)

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        # (1) Location checks
        if not isinstance(path, Path):
            _fail(
                f"Invalid path type: expected pathlib.Path, got {type(path).__name__}",
                "_read_yaml",
                "Pass a pathlib.Path object pointing to config.yaml.",
            )
        if not path.exists():
            _fail(
                f"Configuration file not found: {path}",
                "_read_yaml",
                "Check the --config path or omit it to run with defaults.",
            )
        if path.suffix.lower() not in YAML_SUFFIXES:
            _fail(
                f"Invalid configuration file extension: {path.suffix}",
                "_read_yaml",
                "Use a .yaml or .yml file.",
            )

        # (2) Parse
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(
                message=f"YAML parsing failed: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Fix YAML syntax/indentation.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Unable to read configuration file: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check file permissions.",
            ) from e

        # (3) Shape of the document
        if data is None:
            _fail(
                "Configuration file is empty.",
                "_read_yaml",
                "Add at least one section, or omit --config to use defaults.",
            )
        if not isinstance(data, Mapping):
            _fail(
                "Configuration root must be a mapping of section names.",
                "_read_yaml",
                "Use top-level keys such as 'validation:' or 'export:'.",
            )
        return dict(data)

    def _validate(self, data: dict[str, Any]) -> Config:
        try:
            return Config.model_validate(data)
        except ValidationError as e:
            raise ConfigError(
                message=f"Invalid configuration structure: {_describe(e)}",
                source="ConfigLoader._validate",
                suggested_action=(
                    "Compare the listed keys with config/config.yaml; "
                    "unknown keys are not allowed."
                ),
            ) from e


__all__ = ["ConfigLoader"]
