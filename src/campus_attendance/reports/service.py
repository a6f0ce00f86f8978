from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Sequence

from ..classes.model import ClassSection
from ..classes.repository import ClassRepository
from ..common.datetime_utils import day_bounds, iso, month_start, now_local, parse_date_range
from ..core.constants import DEVICE_ONLINE_MINUTES, RECENT_ACTIVITY_LIMIT, STUDENT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError
from ..courses.repository import CourseRepository
from ..devices.repository import DeviceRepository
from ..enrollments.repository import EnrollmentRepository
from ..lecturers.repository import LecturerRepository
from ..sessions.model import AttendanceRecord
from ..sessions.repository import RecordRepository, SessionRepository
from ..students.repository import StudentRepository


def percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0


def status_counts(records: Sequence[AttendanceRecord]) -> dict:
    counts = Counter(r.status for r in records)
    return {s.value: counts.get(s, 0) for s in AttendanceStatus}


class ReportService:
    """Read-only aggregations: per-role dashboards and class/mahasiswa attendance reports.

    Dashboard "today" covers records of sessions started today. Report date
    ranges filter sessions by start time and records by check-in time.
    """

    def __init__(
        self,
        students: StudentRepository,
        lecturers: LecturerRepository,
        courses: CourseRepository,
        classes: ClassRepository,
        devices: DeviceRepository,
        enrollments: EnrollmentRepository,
        sessions: SessionRepository,
        records: RecordRepository,
        *,
        clock: Callable[[], datetime] = now_local,
        online_minutes: int = DEVICE_ONLINE_MINUTES,
    ):
        self._students = students
        self._lecturers = lecturers
        self._courses = courses
        self._classes = classes
        self._devices = devices
        self._enrollments = enrollments
        self._sessions = sessions
        self._records = records
        self._clock = clock
        self._window = timedelta(minutes=online_minutes)

    # Dashboard

    def dashboard(self, ctx) -> dict:
        now = self._clock()
        today_start, today_end = day_bounds(now)

        today_sessions = self._sessions.find(started_from=today_start, started_before=today_end)
        today_records = self._records.find(session_ids=[s.session_id for s in today_sessions])
        hadir = sum(1 for r in today_records if r.status == AttendanceStatus.HADIR)

        stats: dict[str, Any] = {
            "base": {
                "totalMahasiswa": self._students.count(),
                "totalDosen": self._lecturers.count(),
                "totalMataKuliah": self._courses.count(),
                "totalKelas": self._classes.count(),
                "totalDevices": self._devices.count(),
                "activeDevices": self._devices.count_online(since=now - self._window),
            },
            "today": {
                "totalSessions": len(today_sessions),
                "totalAbsensi": len(today_records),
                "hadir": hadir,
                "alfa": len(today_records) - hadir,
                "hadirPercentage": percent(hadir, len(today_records)),
            },
        }

        if ctx.role == Role.ADMIN:
            since = month_start(now)
            stats["monthly"] = {
                "totalSessions": len(self._sessions.find(started_from=since)),
                "totalAbsensi": len(self._records.find(recorded_from=since)),
            }
            stats["recentActivities"] = self._describe_records(self._records.find(limit=RECENT_ACTIVITY_LIMIT))
        elif ctx.role == Role.DOSEN and ctx.lecturer_id is not None:
            stats["dosen"] = self._lecturer_dashboard(ctx.lecturer_id, today_start, today_end)
        elif ctx.role == Role.MAHASISWA and ctx.student_id is not None:
            stats["mahasiswa"] = self._student_dashboard(ctx.student_id)
        return stats

    def _lecturer_dashboard(self, dosen_id: int, start: datetime, end: datetime) -> dict:
        sections = self._classes.list_by_lecturer(dosen_id)
        sessions = self._sessions.find(
            kelas_ids=[c.class_id for c in sections], started_from=start, started_before=end
        )
        records = self._records.find(session_ids=[s.session_id for s in sessions])
        hadir = sum(1 for r in records if r.status == AttendanceStatus.HADIR)

        by_class: dict[int, list[dict]] = {}
        for s in sessions:
            by_class.setdefault(s.kelas_id, []).append(s.to_dict())
        return {
            "totalClasses": len(sections),
            "todaySessions": len(sessions),
            "todayAbsensi": len(records),
            "todayHadir": hadir,
            "todayHadirPercentage": percent(hadir, len(records)),
            "classes": [c.to_dict() | {"sesiAbsensis": by_class.get(c.class_id, [])} for c in sections],
        }

    def _student_dashboard(self, mahasiswa_id: int) -> dict:
        records = self._records.find(mahasiswa_id=mahasiswa_id, limit=STUDENT_HISTORY_LIMIT)
        counts = status_counts(records)
        out: dict[str, Any] = {
            "totalAbsensi": len(records),
            **counts,
            "hadirPercentage": percent(counts["hadir"], len(records)),
            "recentAbsensis": self._describe_records(records[:RECENT_ACTIVITY_LIMIT]),
        }

        enrolled = self._classes.find_by_ids([e.kelas_id for e in self._enrollments.list_for_student(mahasiswa_id)])
        out["enrolledClasses"] = self._describe_classes(sorted(enrolled, key=lambda c: c.schedule_key))
        return out

    def _describe_classes(self, sections: Sequence[ClassSection]) -> list[dict]:
        courses = {c.course_id: c for c in self._courses.find_by_ids(sorted({s.matkul_id for s in sections}))}
        lecturers = {d.lecturer_id: d for d in self._lecturers.find_by_ids(sorted({s.dosen_id for s in sections}))}
        out = []
        for s in sections:
            course = courses.get(s.matkul_id)
            lecturer = lecturers.get(s.dosen_id)
            out.append(
                s.to_dict()
                | {
                    "mataKuliah": course.summary() if course else None,
                    "dosen": lecturer.summary() if lecturer else None,
                }
            )
        return out

    def _describe_records(self, records: Sequence[AttendanceRecord]) -> list[dict]:
        """Records with their mahasiswa and session (kelas, mata kuliah) attached."""

        sessions = {s.session_id: s for s in self._sessions.find_by_ids(sorted({r.sesi_absensi_id for r in records}))}
        classes = {c.class_id: c for c in self._classes.find_by_ids(sorted({s.kelas_id for s in sessions.values()}))}
        courses = {c.course_id: c for c in self._courses.find_by_ids(sorted({c.matkul_id for c in classes.values()}))}
        students = {s.student_id: s for s in self._students.find_by_ids(sorted({r.mahasiswa_id for r in records}))}

        out = []
        for r in records:
            student = students.get(r.mahasiswa_id)
            session = sessions.get(r.sesi_absensi_id)
            sesi = None
            if session:
                section = classes.get(session.kelas_id)
                course = courses.get(section.matkul_id) if section else None
                sesi = {
                    "id": session.session_id,
                    "judulSesi": session.judul_sesi,
                    "waktuMulai": iso(session.waktu_mulai),
                    "kelas": (section.summary() | {"mataKuliah": course.summary() if course else None})
                    if section
                    else None,
                }
            out.append(r.to_dict() | {"mahasiswa": student.summary() if student else None, "sesiAbsensi": sesi})
        return out

    # Reports

    def class_report(
        self,
        ctx,
        kelas_id: int,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict:
        section = self._classes.get_by_id(kelas_id)
        if not section:
            raise NotFoundError("Kelas not found")
        if not ctx.is_admin and section.dosen_id != ctx.lecturer_id:
            raise AuthorizationError("Unauthorized to view this class report")

        start, end = parse_date_range(start_date, end_date)
        sessions = self._sessions.find(kelas_ids=[section.class_id], started_from=start, started_before=end)
        records = sorted(
            self._records.find(
                session_ids=[s.session_id for s in sessions],
                recorded_from=start,
                recorded_before=end,
            ),
            key=lambda r: (r.waktu_absen, r.record_id),
        )
        roster = self._students.find_by_ids([e.mahasiswa_id for e in self._enrollments.list_for_class(section.class_id)])
        session_titles = {s.session_id: s for s in sessions}

        rekap = []
        for student in roster:
            own = [r for r in records if r.mahasiswa_id == student.student_id]
            counts = status_counts(own)
            rekap.append(
                {
                    "mahasiswa": student.summary() | {"email": student.email, "jurusan": student.jurusan},
                    "statistik": {
                        "totalSesi": len(sessions),
                        **counts,
                        "kehadiranPersentase": percent(counts["hadir"], len(sessions)),
                    },
                    "detailAbsensi": [
                        r.to_dict() | {"judulSesi": session_titles[r.sesi_absensi_id].judul_sesi} for r in own
                    ],
                }
            )

        average = round(sum(x["statistik"]["kehadiranPersentase"] for x in rekap) / len(rekap), 2) if rekap else 0
        return {
            "kelas": self._describe_classes([section])[0],
            "periode": {"startDate": start_date if start else None, "endDate": end_date if end else None},
            "sesi": [s.to_dict() for s in sessions],
            "rekapKehadiran": rekap,
            "statistikKeseluruhan": {
                "totalMahasiswa": len(roster),
                "totalSesi": len(sessions),
                "totalAbsensi": len(records),
                "rataRataKehadiran": average,
            },
        }

    def student_report(
        self,
        mahasiswa_id: int,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict:
        student = self._students.get_by_id(mahasiswa_id)
        if not student:
            raise NotFoundError("Mahasiswa not found")

        start, end = parse_date_range(start_date, end_date)
        records = self._records.find(mahasiswa_id=student.student_id, recorded_from=start, recorded_before=end)
        sessions = {s.session_id: s for s in self._sessions.find_by_ids(sorted({r.sesi_absensi_id for r in records}))}
        classes = {c.class_id: c for c in self._classes.find_by_ids(sorted({s.kelas_id for s in sessions.values()}))}
        courses = {c.course_id: c for c in self._courses.find_by_ids(sorted({c.matkul_id for c in classes.values()}))}

        groups: dict[int, dict] = {}
        for r in records:
            section = classes[sessions[r.sesi_absensi_id].kelas_id]
            group = groups.get(section.matkul_id)
            if group is None:
                course = courses.get(section.matkul_id)
                group = {
                    "mataKuliah": course.to_dict() if course else None,
                    "kelas": section.to_dict(),
                    "attendances": [],
                    "statistik": {s.value: 0 for s in AttendanceStatus},
                }
                groups[section.matkul_id] = group
            group["attendances"].append(r.to_dict() | {"judulSesi": sessions[r.sesi_absensi_id].judul_sesi})
            group["statistik"][r.status.value] += 1

        for group in groups.values():
            total = sum(group["statistik"][s.value] for s in AttendanceStatus)
            group["statistik"]["kehadiranPersentase"] = percent(group["statistik"]["hadir"], total)

        counts = status_counts(records)
        enrolled = self._classes.find_by_ids([e.kelas_id for e in self._enrollments.list_for_student(student.student_id)])
        return {
            "mahasiswa": student.to_dict() | {"kelas": self._describe_classes(enrolled)},
            "periode": {"startDate": start_date if start else None, "endDate": end_date if end else None},
            "rekapPerMatkul": list(groups.values()),
            "statistikKeseluruhan": {
                "totalKelas": len(groups),
                "totalAbsensi": len(records),
                **counts,
                "kehadiranPersentase": percent(counts["hadir"], len(records)),
            },
        }
