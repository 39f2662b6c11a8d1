"""Package runner API: cache, pull, resolve config, launch."""

from __future__ import annotations

from pathlib import Path

from .._paths import mpak_home
from ..registry import RegistryClient
from ._adapters import TerminalPrompter, ZipArchiveExtractor
from ._cache import META_FILENAME, CacheStore, cache_dir_name, needs_pull
from ._config_store import ConfigStore
from ._launcher import (
    LaunchPlan,
    ProcessState,
    ServerProcess,
    build_launch_plan,
    find_python_command,
    run_server,
)
from ._placeholders import (
    DIRNAME_PLACEHOLDER,
    resolve_args,
    resolve_placeholders,
    substitute_env,
    substitute_user_config,
)
from ._protocols import ArchiveExtractor, PackageConfigStore, Prompter, RegistryGateway
from ._runner import CachedBundle, PackageRunner
from ._user_config import ENV_PREFIX, config_env_var, is_interactive, resolve_user_config


def get_cache_dir(package_name: str, cache_root: Path | None = None) -> Path:
    """Cache directory for a package, e.g. ~/.mpak/cache/scope-name."""
    root = cache_root if cache_root is not None else mpak_home() / "cache"
    return root / cache_dir_name(package_name)


def make_package_runner(
    home: Path | None = None,
    registry_url: str | None = None,
    config: ConfigStore | None = None,
) -> PackageRunner:
    """Build a PackageRunner backed by the local filesystem and the HTTP registry.

    home: defaults to $MPAK_HOME or ~/.mpak
    registry_url: defaults to the config file's registryUrl, then
        $MPAK_REGISTRY_URL, then https://api.mpak.dev
    """
    home = Path(home) if home is not None else mpak_home()
    config = config or ConfigStore(home / "config.json")
    registry = RegistryClient(registry_url or config.get_registry_url())
    return PackageRunner(
        cache=CacheStore(home / "cache", ZipArchiveExtractor()),
        registry=registry,
        config=config,
        prompter=TerminalPrompter(),
    )


__all__ = [
    "DIRNAME_PLACEHOLDER",
    "ENV_PREFIX",
    "META_FILENAME",
    "ArchiveExtractor",
    "CacheStore",
    "CachedBundle",
    "ConfigStore",
    "LaunchPlan",
    "PackageConfigStore",
    "PackageRunner",
    "ProcessState",
    "Prompter",
    "RegistryGateway",
    "ServerProcess",
    "TerminalPrompter",
    "ZipArchiveExtractor",
    "build_launch_plan",
    "cache_dir_name",
    "config_env_var",
    "find_python_command",
    "get_cache_dir",
    "is_interactive",
    "make_package_runner",
    "needs_pull",
    "resolve_args",
    "resolve_placeholders",
    "resolve_user_config",
    "run_server",
    "substitute_env",
    "substitute_user_config",
]
