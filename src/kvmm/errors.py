"""Exception hierarchy shared by the registry, the imaging pipeline and the CLI."""

from __future__ import annotations


class KvmmError(Exception):
    """Base class for all kvmm errors."""


class NotFoundError(KvmmError, LookupError):
    """Unknown device identifier."""

    def __init__(self, device_id: str) -> None:
        super().__init__(f"device not found: {device_id}")
        self.device_id = device_id


class ValidationError(KvmmError, ValueError):
    """Caller-supplied input was rejected before any state change."""


class ConfigParseError(KvmmError, ValueError):
    """The registry file exists but cannot be parsed."""


class PersistenceError(KvmmError):
    """Writing the registry or a thumbnail file failed."""


class ProcessingError(KvmmError, ValueError):
    """An image could not be turned into a thumbnail."""


class DecodeError(ProcessingError):
    """Bytes are not an image in a supported format."""


class FetchError(KvmmError):
    """A remote image could not be retrieved."""
