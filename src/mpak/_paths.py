from __future__ import annotations

import os
from pathlib import Path


def mpak_home() -> Path:
    """Root of mpak's on-disk state: $MPAK_HOME or ~/.mpak."""
    override = os.environ.get("MPAK_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".mpak"
