"""Models for the per-bundle cache metadata file (.mpak-meta.json)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Platform(BaseModel):
    """An os/arch pair in the registry's vocabulary."""

    model_config = ConfigDict(frozen=True)
    os: str  # darwin, linux, win32, any
    arch: str  # x64, arm64, any

    def __str__(self) -> str:
        return f"{self.os}-{self.arch}"


class CacheMetadata(BaseModel):
    """Written next to an extracted bundle once extraction has succeeded."""

    model_config = ConfigDict(populate_by_name=True)
    name: str | None = None  # absent in metadata written before names were recorded
    version: str
    pulled_at: datetime = Field(alias="pulledAt")
    platform: Platform
