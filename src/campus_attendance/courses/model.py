from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import iso


@dataclass(frozen=True)
class Course:
    """Domain entity: mata kuliah."""

    course_id: int
    kode: str
    nama: str
    sks: int
    semester: int
    jurusan: str
    deskripsi: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.course_id,
            "kode": self.kode,
            "nama": self.nama,
            "sks": self.sks,
            "semester": self.semester,
            "jurusan": self.jurusan,
            "deskripsi": self.deskripsi,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

    def summary(self) -> dict:
        return {"id": self.course_id, "kode": self.kode, "nama": self.nama, "sks": self.sks}
