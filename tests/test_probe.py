from __future__ import annotations

import asyncio
import socket
import time

import pytest

from kvmm.config import ProbeConfig
from kvmm.core import probe as probe_module
from kvmm.core import check_host_reachable, probe_devices, split_host_port
from kvmm.models import Device


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("10.0.0.5", ("10.0.0.5", 80)),
        ("kvm.local:8443", ("kvm.local", 8443)),
        ("kvm.local:abc", ("kvm.local", 80)),
        ("[fe80::1]:443", ("fe80::1", 443)),
        ("[fe80::1]", ("fe80::1", 80)),
        ("fe80::1", ("fe80::1", 80)),
    ],
)
def test_split_host_port(host, expected):
    assert split_host_port(host, 80) == expected


def test_probe_reports_reachable_and_unreachable():
    closed_port = _free_port()

    async def _run():
        server = await asyncio.start_server(
            lambda reader, writer: writer.close(), "127.0.0.1", 0
        )
        open_port = server.sockets[0].getsockname()[1]
        devices = [
            Device(id="up", host=f"127.0.0.1:{open_port}"),
            Device(id="down", host=f"127.0.0.1:{closed_port}"),
        ]
        async with server:
            return await probe_devices(devices, ProbeConfig(timeout=1.0))

    statuses = asyncio.run(_run())
    assert [(s.id, s.reachable) for s in statuses] == [("up", True), ("down", False)]


def test_probe_runs_concurrently_with_shared_timeout(monkeypatch):
    async def _hang(host, port):
        await asyncio.sleep(10)

    monkeypatch.setattr(probe_module.asyncio, "open_connection", _hang)
    devices = [Device(id=str(i), host=f"10.0.0.{i}") for i in range(5)]

    started = time.monotonic()
    statuses = asyncio.run(probe_devices(devices, ProbeConfig(timeout=0.2)))
    elapsed = time.monotonic() - started

    assert all(not s.reachable for s in statuses)
    assert elapsed < 2.0


def test_check_host_unresolvable(monkeypatch):
    async def _fail(host, port):
        raise socket.gaierror("name or service not known")

    monkeypatch.setattr(probe_module.asyncio, "open_connection", _fail)
    assert asyncio.run(check_host_reachable("no-such-host.invalid")) is False
