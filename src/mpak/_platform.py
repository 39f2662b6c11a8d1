from __future__ import annotations

import platform

from .models.cache import Platform

_OS_NAMES = {
    "darwin": "darwin",
    "linux": "linux",
    "windows": "win32",
    "win32": "win32",
}

_ARCH_NAMES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "arm64": "arm64",
    "aarch64": "arm64",
    "armv8": "arm64",
}


def detect_platform() -> Platform:
    """Map the running host onto the registry's os/arch vocabulary.

    Unrecognized values degrade to "any" so a universal artifact can still match.
    """
    os_name = _OS_NAMES.get(platform.system().lower(), "any")
    arch = _ARCH_NAMES.get(platform.machine().lower(), "any")
    return Platform(os=os_name, arch=arch)
