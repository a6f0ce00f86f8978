from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..common.pagination import Page, PageRequest
from ..core.enums import DeviceStatus
from .model import Device


class DeviceRepository(Protocol):
    def list(
        self,
        page: PageRequest,
        *,
        online_since: datetime,
        status: Optional[DeviceStatus] = None,
        is_active: Optional[bool] = None,
    ) -> Page[Device]:
        """`status` filters on the derived status, using `online_since` as the cutoff."""
        raise NotImplementedError

    def list_all(self) -> Sequence[Device]:
        raise NotImplementedError

    def get_by_id(self, device_id: int) -> Optional[Device]:
        raise NotImplementedError

    def find_by_ids(self, device_ids: Sequence[int]) -> Sequence[Device]:
        raise NotImplementedError

    def get_by_external_id(self, external_id: str) -> Optional[Device]:
        raise NotImplementedError

    def exists_external_id(self, external_id: str, *, exclude_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def create(self, fields: Mapping[str, Any]) -> int:
        raise NotImplementedError

    def update(self, device_id: int, changes: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, device_id: int) -> bool:
        raise NotImplementedError

    def record_heartbeat(self, device_id: int, *, at: datetime, ip_address: Optional[str] = None) -> None:
        """Stamp the heartbeat and mark online (maintenance devices keep their status)."""
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError

    def count_online(self, *, since: datetime) -> int:
        raise NotImplementedError
