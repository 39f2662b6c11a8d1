from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

SERVER_TYPES = ("node", "python", "binary")


class McpConfig(BaseModel):
    """How to launch the server: command, args and extra environment."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)
    command: str | None = None
    args: list[str] = []
    env: dict[str, str] | None = None


class UserConfigField(BaseModel):
    """A value the operator supplies at run time (API key, endpoint, ...)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)
    type: str = "string"  # string, number, boolean
    title: str | None = None
    description: str | None = None
    sensitive: bool = False
    required: bool = False
    default: str | bool | int | float | None = None

    def label(self, key: str) -> str:
        return self.title or key


class BinaryServer(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    type: Literal["binary"]
    entry_point: str
    mcp_config: McpConfig


class NodeServer(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    type: Literal["node"]
    entry_point: str
    mcp_config: McpConfig


class PythonServer(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    type: Literal["python"]
    entry_point: str
    mcp_config: McpConfig


ServerConfig = Annotated[
    BinaryServer | NodeServer | PythonServer,
    Field(discriminator="type"),
]


class Manifest(BaseModel):
    """Contents of manifest.json at the root of an extracted bundle."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)
    manifest_version: str | None = None
    name: str
    version: str
    description: str | None = None
    server: ServerConfig
    user_config: dict[str, UserConfigField] = {}
