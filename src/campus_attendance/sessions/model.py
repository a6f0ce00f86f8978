from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import iso
from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceSession:
    """A window during which check-ins for one kelas are accepted.

    `durasi_menit` only informs `end_time`; nothing closes a session except
    an explicit stop.
    """

    session_id: int
    kelas_id: int
    dosen_id: int
    device_id: int
    judul_sesi: str
    waktu_mulai: datetime
    durasi_menit: int
    kode_sesi: str
    is_active: bool = True
    waktu_selesai: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def end_time(self) -> datetime:
        return self.waktu_mulai + timedelta(minutes=self.durasi_menit)

    def to_dict(self) -> dict:
        return {
            "id": self.session_id,
            "kelasId": self.kelas_id,
            "dosenId": self.dosen_id,
            "deviceId": self.device_id,
            "judulSesi": self.judul_sesi,
            "waktuMulai": iso(self.waktu_mulai),
            "waktuSelesai": iso(self.waktu_selesai),
            "durasiMenit": self.durasi_menit,
            "isActive": self.is_active,
            "kodeSesi": self.kode_sesi,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


@dataclass(frozen=True)
class AttendanceRecord:
    """One mahasiswa's attendance in one session; unique per (session, mahasiswa)."""

    record_id: int
    sesi_absensi_id: int
    mahasiswa_id: int
    waktu_absen: datetime
    status: AttendanceStatus
    lokasi_absen: Optional[str] = None
    confidence: Optional[float] = None
    foto_wajah: Optional[str] = None
    device_id: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_validated: bool = False
    keterangan: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "sesiAbsensiId": self.sesi_absensi_id,
            "mahasiswaId": self.mahasiswa_id,
            "waktuAbsen": iso(self.waktu_absen),
            "status": self.status.value,
            "lokasiAbsen": self.lokasi_absen,
            "confidence": self.confidence,
            "fotoWajah": self.foto_wajah,
            "deviceId": self.device_id,
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "isValidated": self.is_validated,
            "keterangan": self.keterangan,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


@dataclass(frozen=True)
class NewRecord:
    """Fields of a record about to be written; the row id is assigned by storage."""

    sesi_absensi_id: int
    mahasiswa_id: int
    waktu_absen: datetime
    status: AttendanceStatus
    lokasi_absen: Optional[str] = None
    confidence: Optional[float] = None
    foto_wajah: Optional[str] = None
    device_id: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_validated: bool = True
    keterangan: Optional[str] = None
