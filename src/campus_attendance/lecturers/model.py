from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import iso


@dataclass(frozen=True)
class Lecturer:
    """Domain entity: dosen profile."""

    lecturer_id: int
    nidn: str
    nama: str
    email: str
    jurusan: str
    foto_profil: Optional[str] = None
    nomor_hp: Optional[str] = None
    alamat: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.lecturer_id,
            "nidn": self.nidn,
            "nama": self.nama,
            "email": self.email,
            "jurusan": self.jurusan,
            "fotoProfil": self.foto_profil,
            "nomorHp": self.nomor_hp,
            "alamat": self.alamat,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

    def summary(self) -> dict:
        return {"id": self.lecturer_id, "nidn": self.nidn, "nama": self.nama}
