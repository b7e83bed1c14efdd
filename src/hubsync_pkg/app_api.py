"""Main API facade for the hubsync package.

The command line tool and embedding applications go through these
functions rather than wiring the services themselves.
"""

from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import structlog

from .adapters import InMemoryEngine, InMemoryRepository
from .config import AppConfig, configure_logging, default_config, load_config, validate_config
from .contracts import LogEntryProvider, NumericEngine, Repository, ScriptParseResult
from .domain.workspace import WorkspaceVariable
from .engine import SynchronizationController
from .services import MappingCorrespondenceStore, ScriptParser, build_mapping_engine, compute_difference

logger = structlog.get_logger()


def get_default_config() -> AppConfig:
    """Get default configuration.

    Returns:
        Default configuration with environment overrides applied
    """
    return default_config()


def load_config_from_file(path: Union[str, Path]) -> AppConfig:
    """Load and validate configuration from file.

    Args:
        path: Path to configuration file

    Returns:
        Loaded and validated configuration

    Raises:
        ConfigError: If configuration cannot be loaded or is invalid
    """
    config = load_config(path)
    validate_config(config)
    return config


def validate_configuration(config: AppConfig) -> None:
    """Validate configuration for common issues.

    Raises:
        ValidationError: If configuration has errors
    """
    validate_config(config)


def parse_script(
    path: Union[str, Path],
    config: Optional[AppConfig] = None,
) -> Tuple[ScriptParseResult, List[WorkspaceVariable]]:
    """Detect the inputs of a script.

    Args:
        path: Script file
        config: Configuration, defaults used when omitted

    Returns:
        The parse result and the decomposed input variables, identified
        by script name

    Raises:
        ScriptParseError: If the script cannot be parsed
    """
    config = config or get_default_config()
    result = ScriptParser(config.script).parse(path)

    script_name = Path(path).stem
    variables: List[WorkspaceVariable] = []
    for variable in result.variables:
        for decomposed in variable.decompose():
            decomposed.derive_identifier(script_name)
            variables.append(decomposed)

    logger.info("Script inputs detected", script=script_name, inputs=len(variables))
    return result, variables


def build_controller(
    engine: Optional[NumericEngine] = None,
    repository: Optional[Repository] = None,
    config: Optional[AppConfig] = None,
    log_entry_provider: Optional[LogEntryProvider] = None,
) -> SynchronizationController:
    """Wire a synchronization controller.

    Missing collaborators are replaced by their in-memory versions.
    """
    config = config or get_default_config()
    configure_logging(config.logging)
    return SynchronizationController(
        engine=engine or InMemoryEngine(),
        repository=repository or InMemoryRepository(),
        log_entry_provider=log_entry_provider,
        config=config,
    )


def list_mapping_rules(config: Optional[AppConfig] = None) -> Dict[str, str]:
    """Registered mapping rules by direction."""
    config = config or get_default_config()
    repository = InMemoryRepository()
    store = MappingCorrespondenceStore(repository, config.mapping.tool_name)
    return build_mapping_engine(repository, store).list_rules()


def compare_values(old_value: str, new_value: str) -> Tuple[str, str]:
    """Difference and percent difference, as shown for pending transfers."""
    return compute_difference(old_value, new_value)
