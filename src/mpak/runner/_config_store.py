"""Persistent CLI configuration (~/.mpak/config.json)."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from ..errors import ConfigCorruptedError
from ..models.config import CONFIG_VERSION, MpakConfig
from ..registry import DEFAULT_REGISTRY_URL
from ._adapters import _atomic_write

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ConfigStore:
    """Reads/writes config.json: registry URL override plus per-package values.

    Loaded lazily and at most once. Construct one per invocation and pass it
    to whatever needs it.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._config: MpakConfig | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> MpakConfig:
        if self._config is not None:
            return self._config

        if not self._path.exists():
            self._config = MpakConfig(version=CONFIG_VERSION, lastUpdated=_now())
            self._save()
            return self._config

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigCorruptedError(f"Failed to read config file: {e}", self._path) from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigCorruptedError(
                f"Config file contains invalid JSON: {e}", self._path
            ) from e
        if not isinstance(data, dict):
            raise ConfigCorruptedError("Config file must be a JSON object", self._path)
        try:
            self._config = MpakConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigCorruptedError(_describe(e), self._path) from e
        return self._config

    def _save(self) -> None:
        if self._config is None:
            return
        self._config.last_updated = _now()
        if self._config.packages is not None:
            # Never persist a package entry with no values
            self._config.packages = {k: v for k, v in self._config.packages.items() if v}
        self._path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        _atomic_write(
            self._path,
            json.dumps(self._config.model_dump(by_alias=True, exclude_none=True), indent=2),
            mode=0o600,
        )
        logger.debug("Saved config to %s", self._path)

    # --- registry ---

    def get_registry_url(self) -> str:
        config = self.load()
        return config.registry_url or os.environ.get("MPAK_REGISTRY_URL") or DEFAULT_REGISTRY_URL

    def set_registry_url(self, url: str) -> None:
        config = self.load()
        config.registry_url = url
        self._save()

    # --- per-package values ---

    def get_package_config(self, package: str) -> dict[str, str] | None:
        packages = self.load().packages or {}
        values = packages.get(package)
        return dict(values) if values is not None else None

    def get_package_config_value(self, package: str, key: str) -> str | None:
        return (self.get_package_config(package) or {}).get(key)

    def set_package_config_value(self, package: str, key: str, value: str) -> None:
        config = self.load()
        if config.packages is None:
            config.packages = {}
        config.packages.setdefault(package, {})[key] = value
        self._save()

    def clear_package_config(self, package: str) -> bool:
        config = self.load()
        if not config.packages or package not in config.packages:
            return False
        del config.packages[package]
        self._save()
        return True

    def clear_package_config_value(self, package: str, key: str) -> bool:
        config = self.load()
        values = (config.packages or {}).get(package)
        if values is None or key not in values:
            return False
        del values[key]
        if not values:
            del config.packages[package]
        self._save()
        return True

    def list_packages_with_config(self) -> list[str]:
        return list((self.load().packages or {}).keys())


def _describe(error: ValidationError) -> str:
    messages = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        if err["type"] == "extra_forbidden":
            messages.append(f"Config contains unknown field: {loc}")
        elif err["type"] == "missing":
            messages.append(f"Config missing required field: {loc}")
        else:
            messages.append(f"Config field {loc}: {err['msg']}")
    return "; ".join(messages)
