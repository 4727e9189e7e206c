# ABOUTME: Environment variable expansion for path-valued settings fields
import os
import re
import warnings
from collections.abc import Iterable, Mapping
from typing import Any

# ABOUTME: Pattern matches ${VAR_NAME} where VAR_NAME is uppercase with underscores
ENV_VAR_PATTERN = re.compile(r'\$\{([A-Z_][A-Z0-9_]*)\}')


def expand_env_vars(value: str) -> str:
    """Expand environment variables in ${VAR} format.

    ABOUTME: Unset variables are kept verbatim and reported with a UserWarning

    Examples:
        >>> expand_env_vars("${HOME}/mcp-out")
        '/home/user/mcp-out'
        >>> expand_env_vars("${UNSET_VAR}/out")
        '${UNSET_VAR}/out'  # with warning
    """
    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        if var_name in os.environ:
            return os.environ[var_name]
        warnings.warn(
            f"Environment variable '{var_name}' not found, keeping original",
            UserWarning,
            stacklevel=3
        )
        return match.group(0)

    return ENV_VAR_PATTERN.sub(replace_var, value)


def expand_fields(data: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    """Return a copy of data with ${VAR} expanded in the named string fields.

    ABOUTME: Non-string and missing fields are copied unchanged
    """
    result = dict(data)
    for key in keys:
        value = result.get(key)
        if isinstance(value, str):
            result[key] = expand_env_vars(value)
    return result


def find_env_references(value: str) -> list[str]:
    """List the variable names referenced as ${VAR} in value."""
    return [match.group(1) for match in ENV_VAR_PATTERN.finditer(value)]
