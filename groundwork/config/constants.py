"""
Configuration-related constants and resource limits.
"""

# Maximum config file size (10MB) to prevent DoS attacks
MAX_CONFIG_SIZE_BYTES = 10 * 1024 * 1024

# Prefix of environment variables that override configuration values
ENV_PREFIX = "GROUNDWORK_"

# Process-control variables that share the prefix but are not config overrides
RESERVED_ENV_VARS = frozenset({"GROUNDWORK_MODE", "GROUNDWORK_TEST_RUNNER"})
