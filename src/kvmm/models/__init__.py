"""Data models for kvmm."""

from kvmm.models.device import Device, DeviceInput, DeviceStatus
from kvmm.models.registry import DEFAULT_PORT, DeviceRecord, RegistryFile, ServerConfig

__all__ = [
    "DEFAULT_PORT",
    "Device",
    "DeviceInput",
    "DeviceRecord",
    "DeviceStatus",
    "RegistryFile",
    "ServerConfig",
]
