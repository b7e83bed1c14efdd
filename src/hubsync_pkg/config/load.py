"""Configuration discovery and environment overrides."""

from __future__ import annotations
import os
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..contracts.errors import ConfigError
from .constants import CONFIG_FILENAME, ENV_CONFIG_PATH, ENV_PREFIX
from .model import AppConfig


def default_config() -> AppConfig:
    """Create default configuration."""
    return AppConfig()


def config_search_paths() -> Iterator[Path]:
    """Candidate configuration files, most specific first."""
    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        yield Path(env_path)
    yield Path(CONFIG_FILENAME)
    yield Path.home() / ".hubsync" / "config.toml"


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    """Load configuration from a TOML file and apply environment overrides.

    Args:
        path: Explicit configuration file. When None the first existing
            entry of ``config_search_paths`` is used, and the defaults
            when there is none. A ``HUBSYNC_CONFIG`` path must exist.

    Returns:
        Loaded and validated configuration

    Raises:
        ConfigError: If the file is missing or does not hold a valid configuration
    """
    if path is None:
        path = next(
            (
                candidate for candidate in config_search_paths()
                if candidate.exists() or str(candidate) == os.environ.get(ENV_CONFIG_PATH)
            ),
            None,
        )

    if path is None:
        config = default_config()
    else:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        try:
            config = AppConfig.from_toml_file(path)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}", {"path": str(path)}) from e

    return apply_env_overrides(config)


def section_overrides(section_name: str, section: BaseModel) -> Dict[str, str]:
    """Environment values of one section, keyed by field name.

    A field ``configuration_name`` of section ``mapping`` is read from
    ``HUBSYNC_MAPPING_CONFIGURATION_NAME``.
    """
    overrides = {}
    for field_name in type(section).model_fields:
        value = os.environ.get(f"{ENV_PREFIX}{section_name}_{field_name}".upper())
        if value is not None:
            overrides[field_name] = value
    return overrides


def apply_env_overrides(config: AppConfig) -> AppConfig:
    """Rebuild every section that has ``HUBSYNC_<SECTION>_<FIELD>`` overrides.

    The section model coerces the raw strings, so ``"false"`` becomes a
    bool and an unknown log level is rejected like in a file.

    Raises:
        ConfigError: If an override does not validate
    """
    updated: Dict[str, BaseModel] = {}
    for section_name, section in _sections(config):
        overrides = section_overrides(section_name, section)
        if not overrides:
            continue
        try:
            updated[section_name] = type(section).model_validate({**section.model_dump(), **overrides})
        except PydanticValidationError as e:
            raise ConfigError(
                f"Invalid environment override for [{section_name}]: {e}",
                {"section": section_name, "fields": sorted(overrides)},
            ) from e

    return config.model_copy(update=updated) if updated else config


def _sections(config: AppConfig) -> Iterator[Tuple[str, BaseModel]]:
    for name in AppConfig.model_fields:
        yield name, getattr(config, name)
