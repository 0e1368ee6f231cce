"""On-disk registry file models."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_PORT = 8080


class ServerConfig(BaseModel):
    model_config = {"extra": "ignore"}

    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)


class DeviceRecord(BaseModel):
    model_config = {"extra": "ignore"}

    id: str | None = None
    host: str
    alias: str | None = None
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    thumbnail: str | None = None


class RegistryFile(BaseModel):
    model_config = {"extra": "ignore"}

    server: ServerConfig = Field(default_factory=ServerConfig)
    devices: list[DeviceRecord] = Field(default_factory=list)
