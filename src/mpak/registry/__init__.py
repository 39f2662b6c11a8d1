"""HTTP client for the mpak bundle registry."""

from ._http import DEFAULT_REGISTRY_URL, RegistryClient

__all__ = [
    "DEFAULT_REGISTRY_URL",
    "RegistryClient",
]
