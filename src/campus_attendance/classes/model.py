from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from ..common.datetime_utils import format_hhmm, iso
from ..core.enums import Term, Weekday

WEEKDAY_ORDER = {day: i for i, day in enumerate(Weekday)}


@dataclass(frozen=True)
class ClassSection:
    """Domain entity: kelas (one scheduled section of a course)."""

    class_id: int
    nama: str
    matkul_id: int
    dosen_id: int
    hari: Weekday
    jam_mulai: time
    jam_selesai: time
    ruang: str
    kapasitas: int
    tahun_ajaran: str
    semester: Term
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def schedule_key(self) -> tuple[int, time]:
        return WEEKDAY_ORDER[self.hari], self.jam_mulai

    def to_dict(self) -> dict:
        return {
            "id": self.class_id,
            "nama": self.nama,
            "matkulId": self.matkul_id,
            "dosenId": self.dosen_id,
            "hari": self.hari.value,
            "jamMulai": format_hhmm(self.jam_mulai),
            "jamSelesai": format_hhmm(self.jam_selesai),
            "ruang": self.ruang,
            "kapasitas": self.kapasitas,
            "tahunAjaran": self.tahun_ajaran,
            "semester": self.semester.value,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

    def summary(self) -> dict:
        return {"id": self.class_id, "nama": self.nama, "ruang": self.ruang}
