from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account role used for authorization."""

    ADMIN = "admin"
    DOSEN = "dosen"
    MAHASISWA = "mahasiswa"


class ProfileType(str, Enum):
    """Which profile table an account points at."""

    MAHASISWA = "mahasiswa"
    DOSEN = "dosen"


class AttendanceStatus(str, Enum):
    HADIR = "hadir"
    IZIN = "izin"
    SAKIT = "sakit"
    ALFA = "alfa"


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    MAINTENANCE = "maintenance"


class Weekday(str, Enum):
    SENIN = "Senin"
    SELASA = "Selasa"
    RABU = "Rabu"
    KAMIS = "Kamis"
    JUMAT = "Jumat"
    SABTU = "Sabtu"
    MINGGU = "Minggu"


class Term(str, Enum):
    """Academic term of a class section (odd/even semester)."""

    GANJIL = "Ganjil"
    GENAP = "Genap"


# Statuses a lecturer may record by hand; "hadir" only comes from a scan.
MANUAL_STATUSES = (AttendanceStatus.IZIN, AttendanceStatus.SAKIT)
