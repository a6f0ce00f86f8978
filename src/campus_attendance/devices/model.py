from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import iso
from ..core.enums import DeviceStatus


@dataclass(frozen=True)
class Device:
    """Physical check-in camera.

    `device_id` is the row id; `external_id` is the string the hardware
    identifies itself with (e.g. "DEV-1").
    """

    device_id: int
    external_id: str
    nama: str
    lokasi: str
    ruang: str
    kelas_id: Optional[int] = None
    is_active: bool = True
    last_heartbeat: Optional[datetime] = None
    ip_address: Optional[str] = None
    status: DeviceStatus = DeviceStatus.OFFLINE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def effective_status(self, *, now: datetime, window: timedelta) -> DeviceStatus:
        """Online only while heartbeats are recent; nothing is written when a device goes stale."""
        if self.status == DeviceStatus.MAINTENANCE:
            return DeviceStatus.MAINTENANCE
        if self.last_heartbeat is not None and now - self.last_heartbeat <= window:
            return DeviceStatus.ONLINE
        return DeviceStatus.OFFLINE

    @property
    def location_label(self) -> str:
        return f"{self.lokasi} - {self.ruang}"

    def to_dict(self, *, now: datetime, window: timedelta) -> dict:
        status = self.effective_status(now=now, window=window)
        return {
            "id": self.device_id,
            "deviceId": self.external_id,
            "nama": self.nama,
            "lokasi": self.lokasi,
            "ruang": self.ruang,
            "kelasId": self.kelas_id,
            "isActive": self.is_active,
            "lastHeartbeat": iso(self.last_heartbeat),
            "ipAddress": self.ip_address,
            "status": status.value,
            "isOnline": status == DeviceStatus.ONLINE,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
