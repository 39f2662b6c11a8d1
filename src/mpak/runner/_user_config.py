"""Resolve a bundle's declared user_config fields to concrete string values."""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

from ..errors import MissingRequiredConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..models.manifest import UserConfigField
    from ._protocols import PackageConfigStore, Prompter

ENV_PREFIX = "MPAK_CONFIG_"

_DECLINE_ANSWERS = ("n", "no")

logger = logging.getLogger(__name__)


def config_env_var(key: str) -> str:
    """Environment variable that can supply a config key, e.g. MPAK_CONFIG_API_KEY."""
    return f"{ENV_PREFIX}{key.upper()}"


def is_interactive() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


def resolve_user_config(
    package: str,
    fields: Mapping[str, UserConfigField],
    store: PackageConfigStore,
    *,
    environ: Mapping[str, str] | None = None,
    prompter: Prompter | None = None,
    interactive: bool | None = None,
) -> dict[str, str]:
    """Return {field key: value} for every field that could be resolved.

    Each field takes the first of: stored config, MPAK_CONFIG_<KEY> from the
    environment, the declared default. Required fields still missing are
    prompted for in declaration order when interactive; otherwise
    MissingRequiredConfigError is raised before anything is prompted.

    Raises:
        MissingRequiredConfigError: Required values are missing and there is
            no terminal, or the operator left a required value empty.
    """
    environ = os.environ if environ is None else environ
    stored = store.get_package_config(package) or {}
    result: dict[str, str] = {}
    missing: list[str] = []

    for key, field in fields.items():
        env_value = environ.get(config_env_var(key))
        if key in stored:
            result[key] = stored[key]
            logger.debug("%s: %s from stored config", package, key)
        elif env_value is not None:
            result[key] = env_value
            logger.debug("%s: %s from %s", package, key, config_env_var(key))
        elif field.default is not None:
            result[key] = _stringify(field.default)
        elif field.required:
            missing.append(key)

    if not missing:
        return result

    if interactive is None:
        interactive = is_interactive()
    if not interactive or prompter is None:
        raise MissingRequiredConfigError(package, missing, env_prefix=ENV_PREFIX)

    prompter.say("=> Package requires configuration:")
    for key in missing:
        field = fields[key]
        value = _prompt_for_value(prompter, key, field)
        if not value:
            raise MissingRequiredConfigError(
                package, [key], message=f"{field.label(key)} is required"
            )
        result[key] = value

        answer = prompter.ask(f"=> Save {field.label(key)} for future runs? [Y/n]: ")
        if answer.strip().lower() not in _DECLINE_ANSWERS:
            store.set_package_config_value(package, key, value)
            prompter.say("=> Saved for future runs")

    return result


def _prompt_for_value(prompter: Prompter, key: str, field: UserConfigField) -> str:
    hint = f" ({field.description})" if field.description else ""
    default_hint = f" [{_stringify(field.default)}]" if field.default is not None else ""
    answer = prompter.ask(
        f"=> {field.label(key)}{hint}{default_hint}: ",
        hide_input=field.sensitive,
    )
    if not answer and field.default is not None:
        return _stringify(field.default)
    return answer


def _stringify(value: str | bool | int | float) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
