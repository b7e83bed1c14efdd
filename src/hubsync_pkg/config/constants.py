"""Constants shared by configuration and runtime code."""

PLACEHOLDER_VALUE = "-"
"""Repository value meaning 'no value set'"""

DEFAULT_TOOL_NAME = "hubsync"
DEFAULT_CONFIGURATION_NAME = "default"
DEFAULT_INTEROP_NAME = "Matlab.Autoserver"
DEFAULT_WORKSPACE_NAME = "base"
DEFAULT_LIST_COMMAND = "who"
DEFAULT_RUN_COMMAND = "run('{path}')"

ENV_PREFIX = "HUBSYNC_"
ENV_CONFIG_PATH = "HUBSYNC_CONFIG"
CONFIG_FILENAME = "hubsync.toml"

LOG_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}
