import json
import zipfile
from pathlib import Path

import pytest


def write_bundle(
    path: Path,
    manifest: dict,
    files: dict[str, str] | None = None,
    modes: dict[str, int] | None = None,
) -> Path:
    """Write a .mcpb (zip) with manifest.json and extra files."""
    modes = modes or {}
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("manifest.json", json.dumps(manifest))
        for name, content in (files or {}).items():
            info = zipfile.ZipInfo(name)
            if name in modes:
                info.external_attr = modes[name] << 16
            zf.writestr(info, content)
    return path


def python_manifest(**overrides) -> dict:
    manifest = {
        "manifest_version": "0.3",
        "name": "@acme/tool",
        "version": "1.2.0",
        "description": "Test tool",
        "server": {
            "type": "python",
            "entry_point": "server/main.py",
            "mcp_config": {
                "command": "python",
                "args": ["-m", "acme_tool.server"],
                "env": {"API_KEY": "${user_config.api_key}"},
            },
        },
    }
    manifest.update(overrides)
    return manifest


@pytest.fixture
def bundle_factory(tmp_path):
    """Returns a function that writes a bundle zip into tmp_path."""
    counter = {"n": 0}

    def _make(manifest: dict | None = None, files=None, modes=None) -> Path:
        counter["n"] += 1
        path = tmp_path / f"bundle-{counter['n']}.mcpb"
        return write_bundle(path, manifest or python_manifest(), files, modes)

    return _make


@pytest.fixture
def make_manifest():
    """Returns python_manifest so tests can build variants of it."""
    return python_manifest
