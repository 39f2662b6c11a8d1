"""PackageRunner: cache check, pull, manifest, config, launch."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from .._platform import detect_platform
from .._ref import PackageRef, parse_package_spec
from ..loaders.manifest import load_manifest
from ..models.cache import CacheMetadata
from ._adapters import TerminalPrompter
from ._cache import needs_pull
from ._launcher import build_launch_plan, run_server
from ._user_config import resolve_user_config

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..models.cache import Platform
    from ._cache import CacheStore
    from ._launcher import LaunchPlan
    from ._protocols import PackageConfigStore, Prompter, RegistryGateway

logger = logging.getLogger(__name__)


@dataclass
class CachedBundle:
    """A bundle ready to run from the cache."""

    name: str
    path: Path
    metadata: CacheMetadata
    pulled: bool


class PackageRunner:
    def __init__(
        self,
        cache: CacheStore,
        registry: RegistryGateway,
        config: PackageConfigStore,
        *,
        prompter: Prompter | None = None,
        environ: Mapping[str, str] | None = None,
        interactive: bool | None = None,
        platform: Platform | None = None,
    ) -> None:
        self._cache = cache
        self._registry = registry
        self._config = config
        self._prompter = prompter or TerminalPrompter()
        self._environ = environ
        self._interactive = interactive
        self.platform = platform or detect_platform()

    def ensure_cached(self, ref: PackageRef, update: bool = False) -> CachedBundle:
        """Make sure a bundle for ref is extracted in the cache.

        The registry is only contacted when needs_pull() says so. If it then
        resolves to the version already cached, the download is skipped.
        """
        cache_dir = self._cache.cache_dir(ref.name)
        metadata = self._cache.read_metadata(cache_dir)
        if metadata is not None and metadata.name != ref.name:
            # Another package maps to the same directory, or the owner is unknown
            logger.info("Cache at %s does not belong to %s; pulling", cache_dir, ref.name)
            metadata = None

        if metadata is not None and not needs_pull(metadata, ref.version, update):
            logger.debug("Using cached %s@%s", ref.name, metadata.version)
            return CachedBundle(ref.name, cache_dir, metadata, pulled=False)

        info = self._registry.get_download_info(ref.name, ref.version, self.platform)
        bundle = info.bundle
        if metadata is not None and metadata.version == bundle.version:
            logger.info("%s@%s is already cached; skipping download", ref.name, bundle.version)
            return CachedBundle(ref.name, cache_dir, metadata, pulled=False)

        self._prompter.say(f"=> Pulling {ref.name}@{bundle.version}...")
        with tempfile.TemporaryDirectory(prefix="mpak-") as tmpdir:
            archive = Path(tmpdir) / "bundle.mcpb"
            self._registry.download_bundle(info.url, archive, sha256=bundle.sha256)
            new_metadata = CacheMetadata(
                name=ref.name,
                version=bundle.version,
                pulledAt=datetime.now(timezone.utc),
                platform=bundle.platform,
            )
            path = self._cache.install(ref.name, archive, new_metadata)
        self._prompter.say(f"=> Cached {ref.name}@{bundle.version}")
        return CachedBundle(ref.name, path, new_metadata, pulled=True)

    def prepare(self, spec: str | PackageRef, update: bool = False) -> LaunchPlan:
        """Resolve everything needed to launch spec without spawning it."""
        ref = parse_package_spec(spec) if isinstance(spec, str) else spec
        bundle = self.ensure_cached(ref, update=update)
        manifest = load_manifest(bundle.path)

        user_values: dict[str, str] = {}
        if manifest.user_config:
            user_values = resolve_user_config(
                ref.name,
                manifest.user_config,
                self._config,
                environ=self._environ,
                prompter=self._prompter,
                interactive=self._interactive,
            )

        environ = os.environ if self._environ is None else self._environ
        return build_launch_plan(manifest, bundle.path, user_values, environ=environ)

    def run(self, spec: str | PackageRef, update: bool = False) -> int:
        """Launch spec and block until the server exits. Returns its exit code."""
        plan = self.prepare(spec, update=update)
        return run_server(plan)
