from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PackageRef:
    """A package name plus an optional pinned version.

    Attributes:
        name: Scoped package name, e.g. "@scope/name". Unscoped input is kept
            verbatim so the registry can reject it with a useful message.
        version: Requested version, or None for "latest".
    """

    name: str
    version: str | None = None

    @property
    def scope(self) -> str | None:
        if not self.name.startswith("@") or "/" not in self.name:
            return None
        return self.name[1:].split("/", 1)[0]

    @property
    def short_name(self) -> str:
        if self.scope is None:
            return self.name
        return self.name.split("/", 1)[1]

    def __str__(self) -> str:
        if self.version:
            return f"{self.name}@{self.version}"
        return self.name


def parse_package_spec(spec: str) -> PackageRef:
    """Split "@scope/name@1.0.0" into name and version.

    Never fails: when no version suffix can be identified the whole input is
    returned as the name. The separator is an "@" that follows a name which
    itself starts with "@", so "unscoped@1.0.0" stays one name. In a scoped
    name the first "@" after the slash separates, letting the version itself
    contain "@".
    """
    slash = spec.find("/")
    if spec.startswith("@") and slash > 0:
        at = spec.find("@", slash)
    else:
        at = spec.rfind("@")
    if at <= 0:
        return PackageRef(name=spec)

    name = spec[:at]
    version = spec[at + 1 :]
    if not name.startswith("@") or not version:
        return PackageRef(name=spec)
    return PackageRef(name=name, version=version)
