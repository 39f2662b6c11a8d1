from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from ..errors import RegistryError
from ..models.registry import DownloadInfo

if TYPE_CHECKING:
    from pathlib import Path

    from ..models.cache import Platform

DEFAULT_REGISTRY_URL = "https://api.mpak.dev"

logger = logging.getLogger(__name__)


class RegistryClient:
    """Talks to the mpak registry's v1 bundle API.

    Only the two calls `mpak run` and `mpak pull` need are implemented: resolve
    a name/version/platform to a download URL, and download the bytes.
    """

    def __init__(self, base_url: str = DEFAULT_REGISTRY_URL, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def get_download_info(
        self,
        name: str,
        version: str | None,
        platform: Platform,
    ) -> DownloadInfo:
        """Ask the registry which artifact to download for this host.

        Raises:
            RegistryError: On an unscoped name, HTTP or network failure, or a
                response that does not match the expected shape.
        """
        scope, short_name = _split_scoped_name(name)
        version_path = f"/versions/{version}" if version else ""
        url = f"{self.base_url}/v1/bundles/@{scope}/{short_name}{version_path}/download"
        params = {"os": platform.os, "arch": platform.arch}
        logger.debug("Resolving %s via %s (%s)", name, url, platform)

        try:
            response = httpx.get(
                url,
                params=params,
                headers={"Accept": "application/json"},
                follow_redirects=True,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                label = f"{name}@{version}" if version else name
                raise RegistryError(f"Bundle not found: {label}", url=url) from e
            raise RegistryError(
                f"Failed to get download info ({status}): {e.response.text}", url=url
            ) from e
        except httpx.HTTPError as e:
            raise RegistryError(f"Network error fetching {url}: {e}", url=url) from e

        try:
            return DownloadInfo.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RegistryError(f"Invalid download info from {url}: {e}", url=url) from e

    def download_bundle(self, url: str, dest: Path, sha256: str | None = None) -> None:
        """Stream a bundle to dest, verifying its SHA-256 when one is given."""
        dest.parent.mkdir(parents=True, exist_ok=True)
        digest = hashlib.sha256()
        try:
            with httpx.stream("GET", url, follow_redirects=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with dest.open("wb") as fh:
                    for chunk in response.iter_bytes():
                        fh.write(chunk)
                        digest.update(chunk)
        except httpx.HTTPStatusError as e:
            raise RegistryError(f"Download failed ({e.response.status_code})", url=url) from e
        except httpx.HTTPError as e:
            raise RegistryError(f"Network error downloading {url}: {e}", url=url) from e

        if sha256 and digest.hexdigest() != sha256.lower():
            dest.unlink(missing_ok=True)
            raise RegistryError(
                f"SHA256 mismatch: expected {sha256}, got {digest.hexdigest()}", url=url
            )
        logger.debug("Downloaded %s to %s", url, dest)


def _split_scoped_name(name: str) -> tuple[str, str]:
    if not name.startswith("@") or "/" not in name:
        raise RegistryError(f"Package name must be scoped (@scope/name): {name}")
    scope, short_name = name[1:].split("/", 1)
    if not scope or not short_name:
        raise RegistryError(f"Package name must be scoped (@scope/name): {name}")
    return scope, short_name
