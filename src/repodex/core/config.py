"""Configuration system for repodex using Pydantic."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_REF = re.compile(r"\$\{(\w+)\}")


class RebuildConfig(BaseModel):
    """Paging and concurrency of index rebuilds."""

    page_size: int = Field(default=100, gt=0)
    max_workers: int = Field(default=4, gt=0)


class StoreConfig(BaseModel):
    """Metadata store location."""

    db_path: Path = Path(".repodex") / "metadata.db"


class IndexConfig(BaseModel):
    """Where built indexes are written."""

    index_root: Path = Path(".repodex") / "indexes"


class PluginsConfig(BaseModel):
    """Plugin discovery."""

    directory: Path | None = None


class RepodexConfig(BaseModel):
    """Root configuration model."""

    rebuild: RebuildConfig = Field(default_factory=RebuildConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)


class EnvSettings(BaseSettings):
    """Environment variable overrides."""

    model_config = SettingsConfigDict(
        env_prefix="REPODEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    page_size: int | None = None
    log_level: str = "INFO"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dicts, override wins on conflicts."""
    result = {**base}
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a YAML config file, return empty dict if not found."""
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _resolve_env_vars(value: Any) -> Any:
    """Recursively replace ${ENV_VAR} references; unset variables are left as-is."""
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def load_config(project_dir: Path | None = None) -> RepodexConfig:
    """Load configuration with layered precedence.

    Order (later overrides earlier):
    1. Built-in defaults (Pydantic defaults)
    2. ~/.repodex/config.yaml (global user config)
    3. .repodex/config.yaml (project-level config)
    4. Environment variables (REPODEX_PAGE_SIZE)

    Relative store/index paths are resolved against the project directory.
    """
    root = project_dir or Path.cwd()

    merged: dict[str, Any] = {}
    for config_path in [
        Path.home() / ".repodex" / "config.yaml",
        root / ".repodex" / "config.yaml",
    ]:
        merged = _deep_merge(merged, load_yaml_config(config_path))

    config = RepodexConfig(**_resolve_env_vars(merged))

    env = EnvSettings()
    if env.page_size:
        config = config.model_copy(
            update={"rebuild": RebuildConfig(page_size=env.page_size, max_workers=config.rebuild.max_workers)}
        )

    if not config.store.db_path.is_absolute():
        config = config.model_copy(
            update={"store": StoreConfig(db_path=root / config.store.db_path)}
        )
    if not config.index.index_root.is_absolute():
        config = config.model_copy(
            update={"index": IndexConfig(index_root=root / config.index.index_root)}
        )
    return config
