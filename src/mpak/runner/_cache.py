"""On-disk bundle cache: one extracted bundle plus metadata per package."""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ..models.cache import CacheMetadata
from ._adapters import ZipArchiveExtractor, _atomic_write

if TYPE_CHECKING:
    from ._protocols import ArchiveExtractor

META_FILENAME = ".mpak-meta.json"

logger = logging.getLogger(__name__)


def cache_dir_name(package_name: str) -> str:
    """Filesystem-safe directory name for a package.

    "@scope/name" becomes "scope-name"; unscoped names are used as they are.
    """
    name = package_name[1:] if package_name.startswith("@") else package_name
    return name.replace("/", "-").replace("\\", "-")


def needs_pull(
    metadata: CacheMetadata | None,
    requested_version: str | None,
    update: bool = False,
) -> bool:
    """Decide whether the registry has to be consulted for this run.

    Nothing cached, or an explicit update, always pulls. A pinned version
    pulls only when the cached version differs. "Latest" trusts the cache.
    """
    if update or metadata is None:
        return True
    if requested_version:
        return metadata.version != requested_version
    return False


class CacheStore:
    """Reads and writes ~/.mpak/cache/<scope>-<name>/."""

    def __init__(self, root: Path, extractor: ArchiveExtractor | None = None) -> None:
        self._root = Path(root)
        self._extractor = extractor or ZipArchiveExtractor()

    @property
    def root(self) -> Path:
        return self._root

    def cache_dir(self, package_name: str) -> Path:
        return self._root / cache_dir_name(package_name)

    def read_metadata(self, cache_dir: Path) -> CacheMetadata | None:
        """Return the cached bundle's metadata, or None if it is missing or corrupt."""
        meta_path = cache_dir / META_FILENAME
        if not meta_path.is_file():
            return None
        try:
            data = json.loads(meta_path.read_text(encoding="utf-8"))
            return CacheMetadata.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Ignoring unreadable cache metadata %s: %s", meta_path, e)
            return None

    def write_metadata(self, cache_dir: Path, metadata: CacheMetadata) -> None:
        _atomic_write(
            cache_dir / META_FILENAME,
            metadata.model_dump_json(by_alias=True, indent=2),
        )

    def extract(self, archive: Path, dest: Path) -> None:
        self._extractor.extract(archive, dest)

    def install(self, package_name: str, archive: Path, metadata: CacheMetadata) -> Path:
        """Replace the cached bundle for a package with the contents of archive.

        The previous tree is removed first; metadata is written only after a
        successful extraction.
        """
        dest = self.cache_dir(package_name)
        if dest.exists():
            shutil.rmtree(dest)
        dest.mkdir(parents=True, exist_ok=True)
        self.extract(archive, dest)
        self.write_metadata(dest, metadata)
        logger.info("Installed %s@%s into %s", package_name, metadata.version, dest)
        return dest

    def remove(self, package_name: str) -> bool:
        dest = self.cache_dir(package_name)
        if dest.exists() and dest.is_dir():
            shutil.rmtree(dest)
            return True
        return False
