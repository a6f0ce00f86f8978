from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional, Sequence

from ..classes.repository import ClassRepository
from ..common.datetime_utils import iso, now_local
from ..common.validators import FieldErrors, as_int, int_in_range, optional_text, text
from ..core.constants import (
    DEVICE_ONLINE_MINUTES,
    MAX_SESSION_MINUTES,
    MIN_SESSION_MINUTES,
    SESSION_CODE_ALPHABET,
    SESSION_CODE_ATTEMPTS,
    SESSION_CODE_LENGTH,
)
from ..core.enums import MANUAL_STATUSES, AttendanceStatus
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateKeyError,
    NotFoundError,
    ValidationError,
)
from ..courses.repository import CourseRepository
from ..devices.model import Device
from ..devices.repository import DeviceRepository
from ..enrollments.repository import EnrollmentRepository
from ..recognition.model import Recognizer
from ..students.repository import StudentRepository
from .model import AttendanceRecord, AttendanceSession, NewRecord
from .repository import RecordRepository, SessionRepository

logger = logging.getLogger(__name__)

_ACTIVE_CLASS_KEY = "uq_sesi_active_kelas"
_ACTIVE_DEVICE_KEY = "uq_sesi_active_device"
_SESSION_CODE_KEY = "uq_sesi_kode"


def generate_session_code() -> str:
    return "".join(secrets.choice(SESSION_CODE_ALPHABET) for _ in range(SESSION_CODE_LENGTH))


@dataclass(frozen=True)
class ScanOutcome:
    """What a device scan produced; every outcome here is a 200 response."""

    message: str
    data: dict


class AttendanceSessionService:
    """Use cases: open/close sessions, face scans from devices and manual marking."""

    def __init__(
        self,
        sessions: SessionRepository,
        records: RecordRepository,
        classes: ClassRepository,
        courses: CourseRepository,
        devices: DeviceRepository,
        enrollments: EnrollmentRepository,
        students: StudentRepository,
        recognizer: Recognizer,
        *,
        clock: Callable[[], datetime] = now_local,
        code_factory: Callable[[], str] = generate_session_code,
        online_minutes: int = DEVICE_ONLINE_MINUTES,
    ):
        self._sessions = sessions
        self._records = records
        self._classes = classes
        self._courses = courses
        self._devices = devices
        self._enrollments = enrollments
        self._students = students
        self._recognizer = recognizer
        self._clock = clock
        self._code_factory = code_factory
        self._window = timedelta(minutes=online_minutes)

    def require(self, session_id: Any) -> AttendanceSession:
        try:
            session = self._sessions.get_by_id(int(session_id))
        except (TypeError, ValueError):
            session = None
        if not session:
            raise NotFoundError("Session not found")
        return session

    @staticmethod
    def _ensure_owner(ctx, session: AttendanceSession, message: str) -> None:
        if not ctx.is_admin and session.dosen_id != ctx.lecturer_id:
            raise AuthorizationError(message)

    def describe(self, sessions: Sequence[AttendanceSession]) -> list[dict]:
        """Serialize sessions with their kelas, mata kuliah and device attached."""

        classes = {c.class_id: c for c in self._classes.find_by_ids(sorted({s.kelas_id for s in sessions}))}
        courses = {c.course_id: c for c in self._courses.find_by_ids(sorted({c.matkul_id for c in classes.values()}))}
        devices = {d.device_id: d for d in self._devices.find_by_ids(sorted({s.device_id for s in sessions}))}
        now = self._clock()

        out = []
        for s in sessions:
            item = s.to_dict()
            section = classes.get(s.kelas_id)
            if section:
                course = courses.get(section.matkul_id)
                item["kelas"] = section.summary() | {"mataKuliah": course.summary() if course else None}
            else:
                item["kelas"] = None
            device = devices.get(s.device_id)
            item["device"] = self._device_summary(device, now) if device else None
            out.append(item)
        return out

    def _device_summary(self, device: Device, now: datetime) -> dict:
        return {
            "id": device.device_id,
            "deviceId": device.external_id,
            "nama": device.nama,
            "lokasi": device.lokasi,
            "ruang": device.ruang,
            "status": device.effective_status(now=now, window=self._window).value,
        }

    @staticmethod
    def _validate_start(data: Mapping[str, Any]) -> dict:
        errors = FieldErrors()
        kelas_id = as_int(data.get("kelasId"))
        if kelas_id is None:
            errors.add("kelasId", "Kelas ID is required")
        device_id = as_int(data.get("deviceId"))
        if device_id is None:
            errors.add("deviceId", "Device ID is required")
        judul = text(data.get("judulSesi"))
        if not judul:
            errors.add("judulSesi", "Judul sesi is required")
        durasi = int_in_range(data.get("durasiMenit"), MIN_SESSION_MINUTES, MAX_SESSION_MINUTES)
        if durasi is None:
            errors.add(
                "durasiMenit",
                f"Durasi must be between {MIN_SESSION_MINUTES} and {MAX_SESSION_MINUTES} minutes",
            )
        errors.raise_if_any()
        return {"kelas_id": kelas_id, "device_id": device_id, "judul_sesi": judul, "durasi_menit": durasi}

    def start_session(self, ctx, data: Mapping[str, Any]) -> AttendanceSession:
        fields = self._validate_start(data)

        section = self._classes.get_by_id(fields["kelas_id"])
        if not section:
            raise NotFoundError("Kelas not found")
        device = self._devices.get_by_id(fields["device_id"])
        if not device or not device.is_active:
            raise NotFoundError("Device not found or inactive")

        dosen_id = ctx.lecturer_id if ctx.lecturer_id is not None else section.dosen_id
        now = self._clock()

        # The unique indexes on active sessions decide the race; only code clashes are retried.
        for _ in range(SESSION_CODE_ATTEMPTS):
            try:
                session_id = self._sessions.create_active(
                    kelas_id=section.class_id,
                    dosen_id=dosen_id,
                    device_id=device.device_id,
                    judul_sesi=fields["judul_sesi"],
                    durasi_menit=fields["durasi_menit"],
                    kode_sesi=self._code_factory(),
                    waktu_mulai=now,
                )
                break
            except DuplicateKeyError as e:
                if e.key == _ACTIVE_CLASS_KEY:
                    raise ValidationError("There is already an active session for this class") from e
                if e.key == _ACTIVE_DEVICE_KEY:
                    raise ValidationError("Device is already running another active session") from e
                if e.key != _SESSION_CODE_KEY:
                    raise
                logger.warning("Session code collision for kelas %s, retrying", section.class_id)
        else:
            raise ConflictError("Could not allocate a unique session code")

        self._devices.record_heartbeat(device.device_id, at=now)
        logger.info(
            "Attendance session %s started for kelas %s on device %s by dosen %s",
            session_id,
            section.class_id,
            device.external_id,
            dosen_id,
        )
        return self.require(session_id)

    def stop_session(self, ctx, session_id: int) -> AttendanceSession:
        session = self.require(session_id)
        self._ensure_owner(ctx, session, "Unauthorized to stop this session")
        self._sessions.close(session.session_id, at=self._clock())
        logger.info("Attendance session %s stopped by account %s", session.session_id, ctx.account_id)
        return self.require(session.session_id)

    def check_in(
        self,
        *,
        device_external_id: Any,
        image_base64: Any,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ScanOutcome:
        external_id = text(device_external_id)
        image = text(image_base64)
        if not external_id or not image:
            raise ValidationError("Device ID and image are required")

        device = self._devices.get_by_external_id(external_id)
        if not device or not device.is_active:
            raise NotFoundError("Device not found or inactive")
        self._devices.record_heartbeat(device.device_id, at=self._clock(), ip_address=ip_address)

        session = self._sessions.get_active_for_device(device.device_id)
        if not session:
            raise ValidationError("No active attendance session")

        roster = [e.mahasiswa_id for e in self._enrollments.list_for_class(session.kelas_id)]
        result = self._recognizer.recognize(image_base64=image, device_id=external_id, candidates=roster)
        if not result.matched or result.subject_id is None:
            return ScanOutcome(
                "Face scan completed - no match found",
                {"success": False, "message": "Wajah tidak dikenali", "confidence": result.confidence},
            )

        student = self._students.get_by_id(result.subject_id)
        if not student:
            raise NotFoundError("Mahasiswa not found")
        if not self._enrollments.is_active_member(session.kelas_id, student.student_id):
            raise AuthorizationError("Mahasiswa not enrolled in this class")

        record, created = self._records.insert_if_absent(
            NewRecord(
                sesi_absensi_id=session.session_id,
                mahasiswa_id=student.student_id,
                waktu_absen=self._clock(),
                status=AttendanceStatus.HADIR,
                lokasi_absen=device.location_label,
                confidence=result.confidence,
                foto_wajah=result.photo_url,
                device_id=device.device_id,
                ip_address=ip_address,
                user_agent=user_agent,
                is_validated=True,
                keterangan=f"Face recognition scan via device {external_id}",
            )
        )
        if not created:
            return ScanOutcome(
                "Already marked as present",
                {"success": True, "message": "Sudah melakukan absensi", "absensi": record.to_dict()},
            )

        logger.info(
            "Mahasiswa %s checked in to sesi %s via %s (%.4f)",
            student.student_id,
            session.session_id,
            external_id,
            result.confidence,
        )
        return ScanOutcome(
            "Face recognition successful",
            {
                "success": True,
                "message": "Absensi berhasil",
                "mahasiswa": student.summary(),
                "absensi": record.to_dict(),
                "confidence": result.confidence,
            },
        )

    def mark_manual(self, ctx, session_id: int, data: Mapping[str, Any]) -> AttendanceRecord:
        status = text(data.get("status"))
        if status not in {s.value for s in MANUAL_STATUSES}:
            raise ValidationError('Status must be "izin" or "sakit"')

        session = self.require(session_id)
        self._ensure_owner(ctx, session, "Unauthorized to mark attendance for this session")

        mahasiswa_id = as_int(data.get("mahasiswaId"))
        if mahasiswa_id is None:
            raise ValidationError(
                "Validation failed",
                errors=[{"field": "mahasiswaId", "message": "mahasiswaId must be an integer"}],
            )
        if not self._students.get_by_id(mahasiswa_id):
            raise NotFoundError("Mahasiswa not found")

        record, created = self._records.insert_if_absent(
            NewRecord(
                sesi_absensi_id=session.session_id,
                mahasiswa_id=mahasiswa_id,
                waktu_absen=self._clock(),
                status=AttendanceStatus(status),
                device_id=session.device_id,
                is_validated=True,
                keterangan=optional_text(data.get("keterangan")),
            )
        )
        if not created:
            raise ValidationError("Attendance already marked for this student")
        logger.info("Manual %s for mahasiswa %s in sesi %s", status, mahasiswa_id, session.session_id)
        return record

    def list_active(self, ctx) -> list[dict]:
        dosen_id = None if ctx.is_admin else ctx.lecturer_id
        return self.describe(self._sessions.list_active(dosen_id=dosen_id))

    def session_attendance(self, session_id: int) -> dict:
        session = self.require(session_id)
        records = self._records.list_for_session(session.session_id)
        enrolled = self._enrollments.list_for_class(session.kelas_id)

        students = {s.student_id: s for s in self._students.find_by_ids(sorted({r.mahasiswa_id for r in records}))}
        absensis = []
        for r in records:
            student = students.get(r.mahasiswa_id)
            absensis.append(r.to_dict() | {"mahasiswa": student.summary() | {"email": student.email} if student else None})

        present = sum(1 for r in records if r.status == AttendanceStatus.HADIR)
        total = len(enrolled)
        return {
            "sesi": self.describe([session])[0],
            "absensis": absensis,
            "stats": {
                "totalEnrolled": total,
                "present": present,
                "absent": total - present,
                "percentage": round(present / total * 100, 2) if total else 0,
            },
        }

    def start_payload(self, session: AttendanceSession) -> dict:
        return {"sesiAbsensi": session.to_dict(), "endTime": iso(session.end_time)}
