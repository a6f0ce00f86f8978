from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import iso


@dataclass(frozen=True)
class Enrollment:
    """Membership of one mahasiswa in one kelas; deactivated rather than deleted."""

    enrollment_id: int
    kelas_id: int
    mahasiswa_id: int
    tanggal_enroll: datetime
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.enrollment_id,
            "kelasId": self.kelas_id,
            "mahasiswaId": self.mahasiswa_id,
            "tanggalEnroll": iso(self.tanggal_enroll),
            "isActive": self.is_active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


@dataclass(frozen=True)
class EnrollmentBatch:
    """Outcome of a batch enroll: rows written plus per-student errors."""

    enrollments: list[Enrollment] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.enrollments)

    @property
    def error_count(self) -> int:
        return len(self.errors)
