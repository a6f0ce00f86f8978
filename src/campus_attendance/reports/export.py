from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Optional

from ..core.exceptions import ValidationError
from .service import ReportService

REPORT_TYPES = ("class", "mahasiswa")
EXPORT_FORMATS = ("csv", "json")

CLASS_FIELDS = ["nim", "nama", "totalSesi", "hadir", "izin", "sakit", "alfa", "kehadiranPersentase"]
STUDENT_FIELDS = ["kode", "mataKuliah", "kelas", "hadir", "izin", "sakit", "alfa", "kehadiranPersentase"]


@dataclass(frozen=True)
class ReportExport:
    report: dict
    format: str
    filename: str
    fieldnames: list[str] = field(default_factory=list)
    rows: list[dict] = field(default_factory=list)

    def to_csv_bytes(self) -> bytes:
        """CSV with a BOM so spreadsheet tools pick up UTF-8."""
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=self.fieldnames)
        writer.writeheader()
        for row in self.rows:
            writer.writerow(row)
        return out.getvalue().encode("utf-8-sig")


def _class_rows(report: dict) -> list[dict]:
    return [
        {
            "nim": item["mahasiswa"]["nim"],
            "nama": item["mahasiswa"]["nama"],
            **{key: item["statistik"][key] for key in CLASS_FIELDS[2:]},
        }
        for item in report["rekapKehadiran"]
    ]


def _student_rows(report: dict) -> list[dict]:
    rows = []
    for group in report["rekapPerMatkul"]:
        course = group["mataKuliah"] or {}
        rows.append(
            {
                "kode": course.get("kode", ""),
                "mataKuliah": course.get("nama", ""),
                "kelas": group["kelas"]["nama"],
                **{key: group["statistik"][key] for key in STUDENT_FIELDS[3:]},
            }
        )
    return rows


def export_report(
    reports: ReportService,
    ctx,
    report_type: str,
    report_id: int,
    *,
    fmt: Optional[str] = "csv",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> ReportExport:
    if report_type not in REPORT_TYPES:
        raise ValidationError("Invalid report type")
    fmt = (fmt or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError("Unsupported export format")

    if report_type == "class":
        report = reports.class_report(ctx, report_id, start_date=start_date, end_date=end_date)
        fieldnames, rows = CLASS_FIELDS, _class_rows(report)
    else:
        report = reports.student_report(report_id, start_date=start_date, end_date=end_date)
        fieldnames, rows = STUDENT_FIELDS, _student_rows(report)

    filename = f"{report_type}_report_{report_id}.{fmt}"
    return ReportExport(report=report, format=fmt, filename=filename, fieldnames=list(fieldnames), rows=rows)
