from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from kvmm.config import ProbeConfig
from kvmm.models import Device, DeviceStatus

logger = logging.getLogger(__name__)


def split_host_port(host: str, default_port: int) -> tuple[str, int]:
    """Split ``host[:port]``; bracketed IPv6 literals are supported."""
    value = host.strip()
    if value.startswith("["):
        address, _, rest = value[1:].partition("]")
        if rest.startswith(":") and rest[1:].isdigit():
            return address, int(rest[1:])
        return address, default_port

    if value.count(":") == 1:
        address, _, port = value.partition(":")
        if port.isdigit():
            return address, int(port)
        return address, default_port

    return value, default_port


async def check_host_reachable(
    host: str, timeout: float = 2.0, default_port: int = 80
) -> bool:
    address, port = split_host_port(host, default_port)
    logger.debug("Probing %s:%d", address, port)
    try:
        _reader, writer = await asyncio.wait_for(
            asyncio.open_connection(address, port), timeout=timeout
        )
    except (asyncio.TimeoutError, TimeoutError):
        logger.debug("No response from %s:%d (timeout)", address, port)
        return False
    except (ConnectionError, OSError) as exc:
        logger.debug("Failed to connect to %s:%d: %s", address, port, exc)
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except (ConnectionError, OSError) as exc:
        logger.debug("Error closing probe connection to %s:%d: %s", address, port, exc)
    return True


async def probe_devices(
    devices: Iterable[Device], config: ProbeConfig | None = None
) -> list[DeviceStatus]:
    """Probe all devices concurrently; results follow the input order."""
    config = config or ProbeConfig()
    devices = list(devices)
    results = await asyncio.gather(
        *(
            check_host_reachable(device.host, config.timeout, config.default_port)
            for device in devices
        )
    )
    reachable = sum(results)
    logger.debug("Probe complete: %d/%d reachable", reachable, len(devices))
    return [
        DeviceStatus(id=device.id, reachable=ok)
        for device, ok in zip(devices, results, strict=True)
    ]
