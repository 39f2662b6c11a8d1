"""Protocols (ports) for the package runner."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..models.cache import Platform
    from ..models.registry import DownloadInfo


class ArchiveExtractor(Protocol):
    """Unpacks a downloaded bundle into a directory (created if absent)."""

    def extract(self, archive: Path, dest: Path) -> None: ...


class RegistryGateway(Protocol):
    """Resolves name/version/platform to an artifact and downloads it."""

    def get_download_info(
        self, name: str, version: str | None, platform: Platform
    ) -> DownloadInfo: ...
    def download_bundle(self, url: str, dest: Path, sha256: str | None = None) -> None: ...


class PackageConfigStore(Protocol):
    """Per-package user config values (the `packages` section of config.json)."""

    def get_package_config(self, package: str) -> dict[str, str] | None: ...
    def set_package_config_value(self, package: str, key: str, value: str) -> None: ...


class Prompter(Protocol):
    """Line-oriented operator I/O on the controlling terminal.

    `say` writes a notice, `ask` reads one line (hidden when hide_input is set).
    """

    def say(self, message: str) -> None: ...
    def ask(self, prompt: str, *, hide_input: bool = False) -> str: ...
