"""Schema of ~/.mpak/config.json."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictStr

CONFIG_VERSION = "1.0.0"

PackageConfig = dict[StrictStr, StrictStr]


class MpakConfig(BaseModel):
    """Root of config.json. Unknown fields or wrong types mean the file is corrupted.

    Only the camelCase keys are accepted when loading.
    """

    model_config = ConfigDict(extra="forbid")
    version: StrictStr
    last_updated: StrictStr = Field(alias="lastUpdated")
    registry_url: StrictStr | None = Field(None, alias="registryUrl")
    packages: dict[StrictStr, PackageConfig] | None = None
