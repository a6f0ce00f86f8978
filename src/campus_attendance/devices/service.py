from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional

from ..classes.repository import ClassRepository
from ..common.datetime_utils import iso, now_local
from ..common.pagination import Page, PageRequest
from ..common.validators import FieldErrors, as_bool, as_int, choice, text
from ..core.constants import DEVICE_ONLINE_MINUTES
from ..core.enums import DeviceStatus
from ..core.exceptions import NotFoundError, ValidationError
from .model import Device
from .repository import DeviceRepository

logger = logging.getLogger(__name__)


class DeviceService:
    """Use cases: device registry, heartbeats and fleet statistics."""

    def __init__(
        self,
        devices: DeviceRepository,
        classes: ClassRepository,
        *,
        clock: Callable[[], datetime] = now_local,
        online_minutes: int = DEVICE_ONLINE_MINUTES,
    ):
        self._devices = devices
        self._classes = classes
        self._clock = clock
        self._window = timedelta(minutes=online_minutes)

    @property
    def online_window(self) -> timedelta:
        return self._window

    def online_since(self, now: Optional[datetime] = None) -> datetime:
        return (now or self._clock()) - self._window

    def serialize(self, device: Device) -> dict:
        return device.to_dict(now=self._clock(), window=self._window)

    def require(self, device_id: Any) -> Device:
        try:
            device = self._devices.get_by_id(int(device_id))
        except (TypeError, ValueError):
            device = None
        if not device:
            raise NotFoundError("Device not found")
        return device

    def list(
        self,
        page: PageRequest,
        *,
        status: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> tuple[list[dict], Page[Device]]:
        wanted = choice(status, [s.value for s in DeviceStatus]) if status else None
        result = self._devices.list(
            page,
            online_since=self.online_since(),
            status=DeviceStatus(wanted) if wanted else None,
            is_active=is_active,
        )
        return [self.serialize(d) for d in result.items], result

    def get(self, device_id: int) -> dict:
        return self.serialize(self.require(device_id))

    def _validate(self, data: Mapping[str, Any], *, partial: bool) -> dict:
        errors = FieldErrors()
        fields: dict[str, Any] = {}

        for key, field, label in (
            ("deviceId", "external_id", "Device ID"),
            ("nama", "nama", "Nama"),
            ("lokasi", "lokasi", "Lokasi"),
            ("ruang", "ruang", "Ruang"),
        ):
            if not partial or key in data:
                fields[field] = text(data.get(key))
                if not fields[field]:
                    errors.add(key, f"{label} is required")
        if data.get("kelasId") is not None:
            fields["kelas_id"] = as_int(data.get("kelasId"))
            if fields["kelas_id"] is None:
                errors.add("kelasId", "kelasId must be an integer")
        elif "kelasId" in data:
            fields["kelas_id"] = None
        if "isActive" in data:
            fields["is_active"] = as_bool(data.get("isActive"))
            if fields["is_active"] is None:
                errors.add("isActive", "isActive must be a boolean")
        if "status" in data:
            status = choice(data.get("status"), [s.value for s in DeviceStatus])
            if status is None:
                errors.add("status", "Status must be online, offline or maintenance")
            else:
                fields["status"] = DeviceStatus(status)

        errors.raise_if_any()
        return fields

    def _check_class(self, fields: Mapping[str, Any]) -> None:
        if fields.get("kelas_id") is not None and not self._classes.get_by_id(fields["kelas_id"]):
            raise NotFoundError("Kelas not found")

    def create(self, data: Mapping[str, Any]) -> dict:
        fields = self._validate(data, partial=False)
        if self._devices.exists_external_id(fields["external_id"]):
            raise ValidationError("Device ID already exists")
        self._check_class(fields)

        device_id = self._devices.create(fields)
        logger.info("Registered device %s (%s)", device_id, fields["external_id"])
        return self.get(device_id)

    def update(self, device_id: int, data: Mapping[str, Any]) -> dict:
        current = self.require(device_id)
        changes = self._validate(data, partial=True)
        if "external_id" in changes and self._devices.exists_external_id(
            changes["external_id"], exclude_id=current.device_id
        ):
            raise ValidationError("Device ID already exists")
        self._check_class(changes)
        self._devices.update(current.device_id, changes)
        return self.get(current.device_id)

    def delete(self, device_id: int) -> None:
        device = self.require(device_id)
        self._devices.delete(device.device_id)
        logger.info("Deleted device %s (%s)", device.device_id, device.external_id)

    def touch(self, device: Device, *, ip_address: Optional[str] = None) -> datetime:
        at = self._clock()
        self._devices.record_heartbeat(device.device_id, at=at, ip_address=ip_address)
        return at

    def heartbeat(self, external_id: str, *, ip_address: Optional[str] = None) -> dict:
        device = self._devices.get_by_external_id(external_id)
        if not device:
            raise NotFoundError("Device not found")
        at = self.touch(device, ip_address=ip_address)
        refreshed = self._devices.get_by_id(device.device_id) or device
        return {
            "deviceId": refreshed.external_id,
            "status": refreshed.effective_status(now=at, window=self._window).value,
            "lastHeartbeat": iso(at),
        }

    def stats(self) -> dict:
        now = self._clock()
        counts = {s: 0 for s in DeviceStatus}
        active = 0
        devices = self._devices.list_all()
        for device in devices:
            counts[device.effective_status(now=now, window=self._window)] += 1
            active += 1 if device.is_active else 0
        return {
            "total": len(devices),
            "online": counts[DeviceStatus.ONLINE],
            "offline": counts[DeviceStatus.OFFLINE],
            "maintenance": counts[DeviceStatus.MAINTENANCE],
            "active": active,
            "inactive": len(devices) - active,
        }
