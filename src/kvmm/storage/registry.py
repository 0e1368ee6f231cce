"""Persistent device registry with per-device thumbnail files.

Every write builds a new snapshot of the device list, persists it with a
write-to-temp-then-rename, and only then publishes it in memory. The
exclusive lock is held across the whole sequence, so readers never observe
a mutation that is not yet durable and a failed write leaves both memory and
disk at their previous state.
"""

from __future__ import annotations

import logging
import os
import tempfile
import tomllib
import uuid
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from kvmm.config import toml_string
from kvmm.errors import (
    ConfigParseError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from kvmm.imaging import generate_pattern_thumbnail
from kvmm.models import DEFAULT_PORT, Device, DeviceInput, RegistryFile

from .locking import ReadWriteLock

logger = logging.getLogger(__name__)

DEVICES_FILE = "devices.toml"
THUMBNAIL_DIR = "thumbnails"
PATTERN_EXTENSION = ".jpg"
THUMBNAIL_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})

_OPTIONAL_FIELDS = ("alias", "username", "password", "thumbnail")


def render_registry_toml(port: int, devices: tuple[Device, ...]) -> str:
    lines = [
        "# kvmm device registry",
        "",
        "[server]",
        f"port = {port}",
    ]

    for device in devices:
        lines.extend(
            [
                "",
                "[[devices]]",
                f"id = {toml_string(device.id)}",
                f"host = {toml_string(device.host)}",
            ]
        )
        for key in _OPTIONAL_FIELDS:
            value = getattr(device, key)
            if value:
                lines.append(f"{key} = {toml_string(value)}")

    lines.append("")
    return "\n".join(lines)


def normalize_extension(ext: str) -> str:
    extension = ext.strip().lower()
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    if extension not in THUMBNAIL_EXTENSIONS:
        allowed = ", ".join(sorted(e.lstrip(".") for e in THUMBNAIL_EXTENSIONS))
        raise ValidationError(f"Invalid file type (allowed: {allowed})")
    return extension


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _require_host(data: DeviceInput) -> str:
    host = data.host.strip()
    if not host:
        raise ValidationError("Host is required")
    return host


class DeviceRegistry:
    """Ordered set of devices backed by a TOML file.

    Construct with :meth:`load`; instances are meant to be created once and
    handed to whatever needs them.
    """

    def __init__(
        self,
        path: Path,
        port: int = DEFAULT_PORT,
        devices: tuple[Device, ...] = (),
    ) -> None:
        self._path = Path(path)
        self._port = port
        self._devices = tuple(devices)
        self._lock = ReadWriteLock()

    @classmethod
    def load(cls, path: Path | str) -> DeviceRegistry:
        """Open the registry at *path*, creating it if missing.

        Devices without an id get one, and devices without a usable
        thumbnail get a generated pattern.
        """
        path = Path(path)
        if not path.exists():
            registry = cls(path)
            registry.save()
            logger.info("Created empty device registry at %s", path)
            return registry

        try:
            with path.open("rb") as handle:
                data = tomllib.load(handle)
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
            raise ConfigParseError(
                f"Invalid TOML in registry file: {path}\n{exc}"
            ) from exc
        except OSError as exc:
            raise PersistenceError(f"reading registry file {path}: {exc}") from exc

        try:
            parsed = RegistryFile.model_validate(data)
        except PydanticValidationError as exc:
            raise ConfigParseError(f"Invalid registry file: {path}\n{exc}") from exc

        devices: list[Device] = []
        seen: set[str] = set()
        assigned = 0
        for record in parsed.devices:
            device_id = (record.id or "").strip()
            if not device_id:
                device_id = str(uuid.uuid4())
                assigned += 1
            if device_id in seen:
                raise ConfigParseError(
                    f"Invalid registry file: {path}\nduplicate device id {device_id}"
                )
            seen.add(device_id)
            devices.append(
                Device(
                    id=device_id,
                    host=record.host,
                    alias=_clean(record.alias),
                    username=_clean(record.username),
                    password=record.password or None,
                    thumbnail=_clean(record.thumbnail),
                )
            )

        registry = cls(path, parsed.server.port, tuple(devices))
        if assigned:
            logger.info("Assigned ids to %d device(s) in %s", assigned, path)
            registry.save()

        registry.generate_missing_thumbnails()
        logger.debug("Loaded %d device(s) from %s", len(devices), path)
        return registry

    @property
    def path(self) -> Path:
        return self._path

    @property
    def port(self) -> int:
        return self._port

    @property
    def thumbnail_dir(self) -> Path:
        return self._path.parent / THUMBNAIL_DIR

    def save(self) -> None:
        """Persist the current snapshot."""
        with self._lock.write():
            self._commit(self._devices)

    # Reads

    def list_devices(self) -> list[Device]:
        with self._lock.read():
            return list(self._devices)

    def get_device(self, device_id: str) -> Device:
        with self._lock.read():
            return self._devices[self._index_of(device_id)]

    def get_thumbnail_path(self, device_id: str) -> Path | None:
        """Absolute path of the device's thumbnail, or ``None`` if it has none."""
        with self._lock.read():
            device = self._devices[self._index_of(device_id)]
            if not device.thumbnail:
                return None
            return self._thumbnail_file(device.thumbnail)

    # Writes

    def add_device(self, data: DeviceInput) -> Device:
        """Create a device with a fresh id and a generated pattern thumbnail.

        The thumbnail file and the registry record are committed together;
        if persisting the registry fails the file is removed again.
        """
        device = Device(
            id=str(uuid.uuid4()),
            host=_require_host(data),
            alias=_clean(data.alias),
            username=_clean(data.username),
            password=data.password or None,
        )
        pattern = generate_pattern_thumbnail(device.seed())
        filename = f"{device.id}{PATTERN_EXTENSION}"

        with self._lock.write():
            self._ensure_thumbnail_dir()
            target = self._thumbnail_file(filename)
            self._write_thumbnail(target, pattern)
            device = device.model_copy(update={"thumbnail": filename})
            try:
                self._commit(self._devices + (device,))
            except PersistenceError:
                self._discard(target)
                raise

        logger.info("Added device %s (%s)", device.id, device.host)
        return device

    def update_device(self, device_id: str, data: DeviceInput) -> Device:
        """Replace every field except the id and the thumbnail reference."""
        host = _require_host(data)
        with self._lock.write():
            index = self._index_of(device_id)
            current = self._devices[index]
            updated = Device(
                id=current.id,
                host=host,
                alias=_clean(data.alias),
                username=_clean(data.username),
                password=data.password or None,
                thumbnail=current.thumbnail,
            )
            devices = list(self._devices)
            devices[index] = updated
            self._commit(tuple(devices))

        logger.info("Updated device %s", device_id)
        return updated

    def delete_device(self, device_id: str) -> None:
        with self._lock.write():
            index = self._index_of(device_id)
            removed = self._devices[index]
            self._commit(self._devices[:index] + self._devices[index + 1 :])
            if removed.thumbnail:
                self._discard(self._thumbnail_file(removed.thumbnail))

        logger.info("Deleted device %s", device_id)

    def set_thumbnail(self, device_id: str, data: bytes, ext: str) -> Device:
        """Store *data* as the device's thumbnail file ``<id><ext>``.

        The previous file is read into memory first and then replaced. If the
        registry cannot be persisted afterwards, the new file is removed and
        the previous one restored.
        """
        extension = normalize_extension(ext)
        with self._lock.write():
            index = self._index_of(device_id)
            current = self._devices[index]
            self._ensure_thumbnail_dir()

            filename = f"{current.id}{extension}"
            target = self._thumbnail_file(filename)
            previous = (
                self._thumbnail_file(current.thumbnail) if current.thumbnail else None
            )
            backup = self._read_backup(previous)

            if previous is not None:
                self._discard(previous)
            try:
                self._write_thumbnail(target, data)
            except PersistenceError:
                self._restore(previous, backup)
                raise

            updated = current.model_copy(update={"thumbnail": filename})
            devices = list(self._devices)
            devices[index] = updated
            try:
                self._commit(tuple(devices))
            except PersistenceError:
                self._discard(target)
                self._restore(previous, backup)
                raise

        logger.info("Set thumbnail for device %s (%d bytes)", device_id, len(data))
        return updated

    def delete_thumbnail(self, device_id: str) -> Device:
        """Clear the thumbnail reference and remove the file."""
        with self._lock.write():
            index = self._index_of(device_id)
            current = self._devices[index]
            if not current.thumbnail:
                return current

            updated = current.model_copy(update={"thumbnail": None})
            devices = list(self._devices)
            devices[index] = updated
            self._commit(tuple(devices))
            self._discard(self._thumbnail_file(current.thumbnail))

        logger.info("Deleted thumbnail for device %s", device_id)
        return updated

    def generate_missing_thumbnails(self) -> int:
        """Give every device lacking a thumbnail file a pattern thumbnail."""
        generated = 0
        for device in self.list_devices():
            if device.thumbnail and self._thumbnail_file(device.thumbnail).is_file():
                continue
            pattern = generate_pattern_thumbnail(device.seed())
            self.set_thumbnail(device.id, pattern, PATTERN_EXTENSION)
            generated += 1

        if generated:
            logger.info("Generated %d pattern thumbnail(s)", generated)
        return generated

    # Internals; callers hold the lock

    def _index_of(self, device_id: str) -> int:
        for index, device in enumerate(self._devices):
            if device.id == device_id:
                return index
        raise NotFoundError(device_id)

    def _thumbnail_file(self, filename: str) -> Path:
        # only the final component counts, so a crafted reference cannot
        # point outside the thumbnail directory
        return self.thumbnail_dir / Path(filename).name

    def _commit(self, devices: tuple[Device, ...]) -> None:
        self._write_file(render_registry_toml(self._port, devices))
        self._devices = devices

    def _write_file(self, content: str) -> None:
        self._atomic_write(self._path, content.encode("utf-8"), "registry file")

    def _write_thumbnail(self, target: Path, data: bytes) -> None:
        self._atomic_write(target, data, "thumbnail")

    def _atomic_write(self, target: Path, data: bytes, what: str) -> None:
        directory = target.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=directory
            )
        except OSError as exc:
            raise PersistenceError(
                f"creating temp {what} in {directory}: {exc}"
            ) from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, target)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"writing {what} {target}: {exc}") from exc

    def _ensure_thumbnail_dir(self) -> None:
        try:
            self.thumbnail_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"creating thumbnail dir {self.thumbnail_dir}: {exc}"
            ) from exc

    @staticmethod
    def _read_backup(path: Path | None) -> bytes | None:
        if path is None:
            return None
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"backing up thumbnail {path}: {exc}") from exc

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove thumbnail %s: %s", path, exc)

    def _restore(self, path: Path | None, backup: bytes | None) -> None:
        if path is None or backup is None:
            return
        try:
            self._write_thumbnail(path, backup)
        except PersistenceError as exc:
            logger.error("Could not restore thumbnail %s: %s", path, exc)
