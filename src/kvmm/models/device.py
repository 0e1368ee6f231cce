"""Device models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Device(BaseModel):
    """A registered device.

    Instances are immutable; the registry replaces them wholesale on update.
    The password is kept for persistence but excluded from ``repr`` and from
    :meth:`to_public`.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    id: str
    host: str
    alias: str | None = None
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    thumbnail: str | None = None

    @property
    def display_name(self) -> str:
        return self.alias or self.host

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def seed(self) -> str:
        """Seed string for the fallback pattern thumbnail."""
        return f"{self.id}{self.host}{self.alias or ''}"

    def to_public(self) -> dict[str, Any]:
        """Representation safe to hand to any caller outside the registry file."""
        return self.model_dump(exclude={"password"}, exclude_none=True)


class DeviceInput(BaseModel):
    """Caller-supplied fields for creating or updating a device."""

    model_config = {"extra": "forbid"}

    host: str = ""
    alias: str | None = None
    username: str | None = None
    password: str | None = Field(default=None, repr=False)


class DeviceStatus(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    id: str
    reachable: bool
