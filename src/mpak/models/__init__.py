from .cache import CacheMetadata, Platform
from .config import CONFIG_VERSION, MpakConfig, PackageConfig
from .manifest import (
    SERVER_TYPES,
    BinaryServer,
    Manifest,
    McpConfig,
    NodeServer,
    PythonServer,
    ServerConfig,
    UserConfigField,
)
from .registry import BundleArtifact, DownloadInfo

__all__ = [
    "CONFIG_VERSION",
    "SERVER_TYPES",
    "BinaryServer",
    "BundleArtifact",
    "CacheMetadata",
    "DownloadInfo",
    "Manifest",
    "McpConfig",
    "MpakConfig",
    "NodeServer",
    "PackageConfig",
    "Platform",
    "PythonServer",
    "ServerConfig",
    "UserConfigField",
]
