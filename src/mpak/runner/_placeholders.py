"""Placeholder substitution for manifest args and env values.

Two literal, single-pass families:

    ${__dirname}          -> absolute path of the bundle's cache directory
    ${user_config.<key>}  -> resolved user config value, if there is one

Unresolved user_config references are left verbatim.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

DIRNAME_PLACEHOLDER = "${__dirname}"

_USER_CONFIG_RE = re.compile(r"\$\{user_config\.([^}]+)\}")


def resolve_args(args: list[str], cache_dir: Path | str) -> list[str]:
    """Replace every ${__dirname} in each argument with cache_dir."""
    return [arg.replace(DIRNAME_PLACEHOLDER, str(cache_dir)) for arg in args]


def substitute_user_config(value: str, values: Mapping[str, str]) -> str:
    # A function replacement keeps backslashes in values literal
    return _USER_CONFIG_RE.sub(lambda m: values.get(m.group(1), m.group(0)), value)


def substitute_env(
    env: Mapping[str, str] | None,
    values: Mapping[str, str],
) -> dict[str, str]:
    """Substitute user_config references in env values. Keys are never touched."""
    if not env:
        return {}
    return {key: substitute_user_config(value, values) for key, value in env.items()}


def resolve_placeholders(value: str, cache_dir: Path | str, values: Mapping[str, str]) -> str:
    """Apply both passes: ${__dirname} first, then ${user_config.*}."""
    return substitute_user_config(value.replace(DIRNAME_PLACEHOLDER, str(cache_dir)), values)
