"""Configuration validation utilities."""

from typing import List
import structlog

from ..contracts.errors import ValidationError
from .model import AppConfig

logger = structlog.get_logger()


def validate_config(config: AppConfig) -> None:
    """Validate configuration for common issues and conflicts.
    
    Args:
        config: Configuration to validate
        
    Raises:
        ValidationError: If configuration is invalid
    """
    errors: List[str] = []
    warnings: List[str] = []
    
    _validate_engine(config, errors)
    _validate_mapping(config, errors)
    _validate_script(config, errors)
    _validate_transfer(config, warnings)
    
    for warning in warnings:
        logger.warning(warning)
    
    if errors:
        raise ValidationError(
            f"Configuration validation failed: {'; '.join(errors)}"
        )


def _validate_engine(config: AppConfig, errors: List[str]) -> None:
    if "{path}" not in config.engine.run_command:
        errors.append("engine.run_command must contain a {path} placeholder")
    if not config.engine.list_command.strip():
        errors.append("engine.list_command must not be empty")


def _validate_mapping(config: AppConfig, errors: List[str]) -> None:
    if not config.mapping.tool_name.strip():
        errors.append("mapping.tool_name must not be empty")
    if not config.mapping.configuration_name.strip():
        errors.append("mapping.configuration_name must not be empty")


def _validate_script(config: AppConfig, errors: List[str]) -> None:
    if not config.script.temp_suffix.startswith("."):
        errors.append("script.temp_suffix must start with '.'")


def _validate_transfer(config: AppConfig, warnings: List[str]) -> None:
    if not config.transfer.require_log_entry:
        warnings.append("Log entries are disabled; transfers to the repository will not be annotated")
