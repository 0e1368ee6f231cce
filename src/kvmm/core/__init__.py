from __future__ import annotations

from .lookup import device_url, find_devices
from .probe import check_host_reachable, probe_devices, split_host_port

__all__ = [
    "check_host_reachable",
    "device_url",
    "find_devices",
    "probe_devices",
    "split_host_port",
]
