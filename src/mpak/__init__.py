"""mpak: pull MCP bundles from the registry and run them locally."""

from ._platform import detect_platform
from ._ref import PackageRef, parse_package_spec
from .errors import (
    ConfigCorruptedError,
    ExtractionError,
    LoadError,
    ManifestMissingError,
    MissingRequiredConfigError,
    MpakError,
    RegistryError,
    SpawnError,
    UnsupportedServerTypeError,
)
from .loaders import load_manifest
from .models import (
    CacheMetadata,
    DownloadInfo,
    Manifest,
    McpConfig,
    Platform,
    UserConfigField,
)
from .registry import RegistryClient
from .runner import (
    CacheStore,
    ConfigStore,
    LaunchPlan,
    PackageRunner,
    build_launch_plan,
    get_cache_dir,
    make_package_runner,
    resolve_args,
    resolve_user_config,
    substitute_env,
    substitute_user_config,
)

__version__ = "0.1.0"

__all__ = [
    "CacheMetadata",
    "CacheStore",
    "ConfigCorruptedError",
    "ConfigStore",
    "DownloadInfo",
    "ExtractionError",
    "LaunchPlan",
    "LoadError",
    "Manifest",
    "ManifestMissingError",
    "McpConfig",
    "MissingRequiredConfigError",
    "MpakError",
    "PackageRef",
    "PackageRunner",
    "Platform",
    "RegistryClient",
    "RegistryError",
    "SpawnError",
    "UnsupportedServerTypeError",
    "UserConfigField",
    "__version__",
    "build_launch_plan",
    "detect_platform",
    "get_cache_dir",
    "load_manifest",
    "make_package_runner",
    "parse_package_spec",
    "resolve_args",
    "resolve_user_config",
    "substitute_env",
    "substitute_user_config",
]
