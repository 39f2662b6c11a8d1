from .manifest import MANIFEST_FILENAME, load_manifest

__all__ = [
    "MANIFEST_FILENAME",
    "load_manifest",
]
