from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import quote

from kvmm.models import Device


def find_devices(devices: Iterable[Device], query: str) -> list[Device]:
    """Match *query* against aliases and hosts, case-insensitively.

    An exact match wins and is returned alone; otherwise every device whose
    alias or host contains the query is returned.
    """
    needle = query.strip().lower()
    candidates = list(devices)
    if not needle:
        return []

    for device in candidates:
        if (device.alias or "").lower() == needle or device.host.lower() == needle:
            return [device]

    return [
        device
        for device in candidates
        if needle in (device.alias or "").lower() or needle in device.host.lower()
    ]


def device_url(device: Device) -> str:
    """Browser URL for a device, with credentials embedded when both are set."""
    if device.username and device.password:
        user = quote(device.username, safe="")
        password = quote(device.password, safe="")
        return f"http://{user}:{password}@{device.host}/"
    return f"http://{device.host}/"
