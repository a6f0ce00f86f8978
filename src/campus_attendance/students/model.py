from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import iso


@dataclass(frozen=True)
class Student:
    """Domain entity: mahasiswa profile."""

    student_id: int
    nim: str
    nama: str
    email: str
    jurusan: str
    semester: int
    foto_profil: Optional[str] = None
    foto_wajah: Optional[str] = None
    nomor_hp: Optional[str] = None
    alamat: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.student_id,
            "nim": self.nim,
            "nama": self.nama,
            "email": self.email,
            "jurusan": self.jurusan,
            "semester": self.semester,
            "fotoProfil": self.foto_profil,
            "fotoWajah": self.foto_wajah,
            "nomorHp": self.nomor_hp,
            "alamat": self.alamat,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

    def summary(self) -> dict:
        return {"id": self.student_id, "nim": self.nim, "nama": self.nama}
