"""Composer configuration loader.

Configuration priority (highest to lowest):
1. Caller overrides
2. Project config (.composer/composer.json or composer.yaml in the vault)
3. User config (~/.composer/composer.json or composer.yaml)
4. System defaults (config/defaults/composer.json)
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from config.schema import ComposerSettings

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".composer"
CONFIG_FILE_STEM = "composer"


class ConfigLoader:
    """Three-tier loader for composer settings."""

    def __init__(self, vault_root: str | Path | None = None):
        self.vault_root = Path(vault_root).resolve() if vault_root else None
        self._system_defaults_dir = Path(__file__).parent / "defaults"

    def load(self, overrides: dict[str, Any] | None = None) -> ComposerSettings:
        merged = self._deep_merge(
            self._load_system_defaults(),
            self._load_user_config(),
            self._load_project_config(),
        )
        if overrides:
            merged = self._deep_merge(merged, overrides)
        if self.vault_root and not merged.get("vault_root"):
            merged["vault_root"] = str(self.vault_root)

        merged = self._expand_env_vars(merged)
        merged = self._remove_none_values(merged)
        return ComposerSettings(**merged)

    # ── Internal helpers ──

    def _load_system_defaults(self) -> dict[str, Any]:
        return self._load_file(self._system_defaults_dir / f"{CONFIG_FILE_STEM}.json")

    def _load_user_config(self) -> dict[str, Any]:
        return self._load_first(Path.home() / CONFIG_DIR_NAME)

    def _load_project_config(self) -> dict[str, Any]:
        if not self.vault_root:
            return {}
        return self._load_first(self.vault_root / CONFIG_DIR_NAME)

    def _load_first(self, config_dir: Path) -> dict[str, Any]:
        """composer.json wins over composer.yaml / composer.yml."""
        for name in (f"{CONFIG_FILE_STEM}.json", f"{CONFIG_FILE_STEM}.yaml", f"{CONFIG_FILE_STEM}.yml"):
            path = config_dir / name
            if path.exists():
                return self._load_file(path)
        return {}

    @staticmethod
    def _load_file(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) if path.suffix in (".yaml", ".yml") else json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError, OSError) as e:
            logger.warning("Ignoring unreadable config %s: %s", path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _deep_merge(self, *dicts: dict[str, Any]) -> dict[str, Any]:
        """Deep merge multiple dictionaries. Later dicts override earlier ones."""
        result: dict[str, Any] = {}
        for d in dicts:
            for key, value in d.items():
                if key not in result:
                    result[key] = value
                elif value is None:
                    continue
                elif isinstance(value, dict) and isinstance(result[key], dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = value
        return result

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ${VAR} and ~ in string values."""
        if isinstance(obj, dict):
            return {k: self._expand_env_vars(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [self._expand_env_vars(v) for v in obj]
        if isinstance(obj, str):
            return os.path.expandvars(os.path.expanduser(obj))
        return obj

    def _remove_none_values(self, obj: Any) -> Any:
        """Recursively remove None values to allow Pydantic defaults."""
        if isinstance(obj, dict):
            return {k: self._remove_none_values(v) for k, v in obj.items() if v is not None}
        if isinstance(obj, list):
            return [self._remove_none_values(v) for v in obj if v is not None]
        return obj


def load_config(
    vault_root: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ComposerSettings:
    """Convenience function to load composer configuration."""
    return ConfigLoader(vault_root=vault_root).load(overrides=overrides)
