from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from .cache import Platform  # noqa: TC001


class BundleArtifact(BaseModel):
    """The artifact the registry picked for a name/version/platform request."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)
    name: str
    version: str
    platform: Platform
    sha256: str
    size: int


class DownloadInfo(BaseModel):
    """Response of GET /v1/bundles/@scope/name[/versions/x]/download."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)
    url: str
    bundle: BundleArtifact
    expires_at: str | None = None
