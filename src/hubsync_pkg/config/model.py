"""Configuration data models."""

from __future__ import annotations
from pathlib import Path
from typing import Optional, Union
from pydantic import BaseModel, Field, field_validator

from .constants import (
    DEFAULT_CONFIGURATION_NAME,
    DEFAULT_INTEROP_NAME,
    DEFAULT_LIST_COMMAND,
    DEFAULT_RUN_COMMAND,
    DEFAULT_TOOL_NAME,
    DEFAULT_WORKSPACE_NAME,
    LOG_LEVELS,
)


class EngineConfig(BaseModel):
    """Numeric engine session settings."""
    
    version: Optional[str] = Field(None, description="Engine version requested on connect")
    interop_name: str = DEFAULT_INTEROP_NAME
    workspace_name: str = DEFAULT_WORKSPACE_NAME
    list_command: str = Field(DEFAULT_LIST_COMMAND, description="Command listing live variables")
    run_command: str = Field(DEFAULT_RUN_COMMAND, description="Template running a script, {path} is substituted")


class MappingConfig(BaseModel):
    """Mapping configuration (correspondence map) settings."""
    
    tool_name: str = DEFAULT_TOOL_NAME
    configuration_name: str = DEFAULT_CONFIGURATION_NAME


class TransferConfig(BaseModel):
    """Transfer behaviour."""
    
    require_log_entry: bool = True
    refresh_after_transfer: bool = True


class ScriptConfig(BaseModel):
    """Script loading settings."""
    
    temp_prefix: str = "f"
    temp_suffix: str = ".m"
    delete_temp_on_unload: bool = True


class LoggingConfig(BaseModel):
    """Structured logging settings."""
    
    level: str = "INFO"
    json_output: bool = Field(False, alias="json")

    model_config = {"populate_by_name": True}
    
    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {set(LOG_LEVELS)}")
        return level


class AppConfig(BaseModel):
    """Complete application configuration."""
    
    engine: EngineConfig = Field(default_factory=EngineConfig)
    mapping: MappingConfig = Field(default_factory=MappingConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    script: ScriptConfig = Field(default_factory=ScriptConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    
    def model_dump_toml(self) -> str:
        """Export configuration as TOML string."""
        try:
            import tomli_w
            return tomli_w.dumps(self.model_dump(by_alias=True, exclude_none=True))
        except ImportError:
            raise ImportError("tomli_w required for TOML export")
    
    @classmethod
    def from_toml_file(cls, path: Union[Path, str]) -> "AppConfig":
        """Load configuration from TOML file."""
        try:
            import tomllib
        except ImportError:
            import tomli as tomllib
            
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls.model_validate(data)
