from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class MpakError(Exception):
    """Base class for every failure raised by mpak.

    The CLI catches this at the invocation boundary, prints the message on
    stderr and exits with a non-zero status.
    """


class LoadError(MpakError):
    """Raised when a bundle manifest exists but cannot be parsed or validated.

    Attributes:
        path: The file that could not be loaded, if applicable.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class ManifestMissingError(LoadError):
    """Raised when an extracted bundle has no manifest.json."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Manifest not found in bundle: {path}", path=path)


class UnsupportedServerTypeError(MpakError):
    """Raised when a manifest declares a server type mpak cannot launch."""

    def __init__(self, server_type: object) -> None:
        self.server_type = server_type
        super().__init__(f"Unsupported server type: {server_type}")


class RegistryError(MpakError):
    """Raised when a registry request fails (HTTP error, network error, bad payload).

    Attributes:
        url: The URL that failed, if applicable.
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        self.url = url
        super().__init__(message)


class ExtractionError(MpakError):
    """Raised when a downloaded bundle cannot be extracted into the cache."""

    def __init__(self, message: str, archive: Path | None = None) -> None:
        self.archive = archive
        super().__init__(f"Failed to extract bundle: {message}")


class ConfigCorruptedError(MpakError):
    """Raised when ~/.mpak/config.json is unreadable or does not match its schema.

    The file has to be fixed or removed by hand; mpak never discards it.
    """

    def __init__(self, message: str, path: Path) -> None:
        self.path = path
        super().__init__(f"{message} ({path})")


class MissingRequiredConfigError(MpakError):
    """Raised when required user config cannot be resolved without a terminal."""

    def __init__(
        self,
        package: str,
        keys: list[str],
        env_prefix: str = "MPAK_CONFIG_",
        message: str | None = None,
    ) -> None:
        self.package = package
        self.keys = list(keys)
        if message is not None:
            super().__init__(message)
            return
        env_names = ", ".join(f"{env_prefix}{k.upper()}" for k in self.keys)
        super().__init__(
            f"Missing required config: {', '.join(self.keys)}\n"
            f"=> Run 'mpak config set {package} <key>=<value>' to set values\n"
            f"=> Or set environment variables: {env_names}"
        )


class SpawnError(MpakError):
    """Raised when the server process cannot be started."""

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        super().__init__(f"Failed to start server: {reason}")
