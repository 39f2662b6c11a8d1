from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ..errors import LoadError, ManifestMissingError, UnsupportedServerTypeError
from ..models.manifest import SERVER_TYPES, Manifest

if TYPE_CHECKING:
    from pathlib import Path

MANIFEST_FILENAME = "manifest.json"

logger = logging.getLogger(__name__)


def load_manifest(cache_dir: Path) -> Manifest:
    """Load manifest.json from the root of an extracted bundle.

    Raises:
        ManifestMissingError: The bundle has no manifest.json.
        UnsupportedServerTypeError: server.type is not node, python or binary.
        LoadError: The file is not valid JSON or does not match the schema.
    """
    manifest_path = cache_dir / MANIFEST_FILENAME
    if not manifest_path.is_file():
        raise ManifestMissingError(manifest_path)

    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise LoadError(f"Invalid JSON in {manifest_path}: {e}", path=manifest_path) from e
    except OSError as e:
        raise LoadError(f"Failed to read {manifest_path}: {e}", path=manifest_path) from e

    _check_server_type(data)
    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as e:
        raise LoadError(f"Invalid manifest {manifest_path}: {e}", path=manifest_path) from e

    logger.debug(
        "Loaded manifest %s@%s (server type %s)",
        manifest.name,
        manifest.version,
        manifest.server.type,
    )
    return manifest


def _check_server_type(data: object) -> None:
    # Reject unknown kinds before validation so they surface as their own error
    if not isinstance(data, dict):
        return
    server = data.get("server")
    if not isinstance(server, dict) or "type" not in server:
        return
    if server["type"] not in SERVER_TYPES:
        raise UnsupportedServerTypeError(server["type"])
