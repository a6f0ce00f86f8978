"""In-memory repositories implementing the storage protocols for service and API tests."""

from __future__ import annotations

from dataclasses import asdict, replace
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Sequence

from campus_attendance.accounts.model import Account, ProfileLink
from campus_attendance.classes.model import ClassSection
from campus_attendance.common.pagination import Page, PageRequest
from campus_attendance.core.enums import DeviceStatus, Role
from campus_attendance.core.exceptions import CapacityExceededError, DuplicateKeyError, NotFoundError
from campus_attendance.courses.model import Course
from campus_attendance.devices.model import Device
from campus_attendance.enrollments.model import Enrollment, EnrollmentBatch
from campus_attendance.lecturers.model import Lecturer
from campus_attendance.recognition.model import RecognitionResult
from campus_attendance.sessions.model import AttendanceRecord, AttendanceSession, NewRecord
from campus_attendance.students.model import Student


def _paginate(items: list, page: PageRequest) -> Page:
    return Page(items=items[page.offset : page.offset + page.limit], total=len(items), page=page.page, limit=page.limit)


def _matches(search: Optional[str], *values: Any) -> bool:
    if not search:
        return True
    needle = search.lower()
    return any(needle in str(v or "").lower() for v in values)


class _Table:
    def __init__(self):
        self.rows: dict[int, Any] = {}
        self._next_id = 0

    def next_id(self) -> int:
        self._next_id += 1
        return self._next_id


class InMemoryAccounts(_Table):
    def get_by_id(self, account_id: int) -> Optional[Account]:
        return self.rows.get(account_id)

    def get_by_login(self, login: str) -> Optional[Account]:
        return next((a for a in self.rows.values() if login in (a.username, a.email)), None)

    def get_by_profile(self, profile: ProfileLink) -> Optional[Account]:
        if profile is None:
            return None
        return next((a for a in self.rows.values() if a.profile == profile), None)

    def exists_username_or_email(self, username: str, email: str) -> bool:
        return any(a.username == username or a.email == email for a in self.rows.values())

    def create(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        profile: ProfileLink = None,
        must_change_password: bool = False,
    ) -> int:
        account_id = self.next_id()
        self.rows[account_id] = Account(
            account_id=account_id,
            username=username,
            email=email,
            password_hash=password_hash,
            role=role,
            profile=profile,
            must_change_password=must_change_password,
        )
        return account_id

    def update_last_login(self, account_id: int, *, at: datetime) -> None:
        self.rows[account_id] = replace(self.rows[account_id], last_login=at)

    def update_password(self, account_id: int, *, password_hash: str, must_change_password: bool = False) -> bool:
        if account_id not in self.rows:
            return False
        self.rows[account_id] = replace(
            self.rows[account_id], password_hash=password_hash, must_change_password=must_change_password
        )
        return True

    def delete_by_profile(self, profile: ProfileLink) -> int:
        doomed = [k for k, a in self.rows.items() if profile is not None and a.profile == profile]
        for k in doomed:
            del self.rows[k]
        return len(doomed)

    def deactivate(self, account_id: int) -> None:
        self.rows[account_id] = replace(self.rows[account_id], is_active=False)


class InMemoryStudents(_Table):
    def list(self, page: PageRequest, *, jurusan: Optional[str] = None, semester: Optional[int] = None) -> Page[Student]:
        items = [
            s
            for s in sorted(self.rows.values(), key=lambda s: s.student_id, reverse=True)
            if _matches(page.search, s.nama, s.nim, s.email, s.jurusan)
            and (not jurusan or s.jurusan == jurusan)
            and (semester is None or s.semester == semester)
        ]
        return _paginate(items, page)

    def get_by_id(self, student_id: int) -> Optional[Student]:
        return self.rows.get(student_id)

    def find_by_ids(self, student_ids: Sequence[int]) -> Sequence[Student]:
        return sorted((self.rows[i] for i in set(student_ids) if i in self.rows), key=lambda s: s.nim)

    def exists_nim_or_email(self, nim: str, email: str, *, exclude_id: Optional[int] = None) -> bool:
        return any(
            (s.nim == nim or s.email == email) and s.student_id != exclude_id for s in self.rows.values()
        )

    def create(self, *, nim, nama, email, jurusan, semester, nomor_hp=None, alamat=None) -> int:
        student_id = self.next_id()
        self.rows[student_id] = Student(
            student_id=student_id,
            nim=nim,
            nama=nama,
            email=email,
            jurusan=jurusan,
            semester=semester,
            nomor_hp=nomor_hp,
            alamat=alamat,
        )
        return student_id

    def update(self, student_id: int, changes: Mapping[str, Any]) -> bool:
        if student_id not in self.rows:
            return False
        self.rows[student_id] = replace(self.rows[student_id], **changes)
        return True

    def delete(self, student_id: int) -> bool:
        return self.rows.pop(student_id, None) is not None

    def count(self) -> int:
        return len(self.rows)


class InMemoryLecturers(_Table):
    def list(self, page: PageRequest, *, jurusan: Optional[str] = None) -> Page[Lecturer]:
        items = [
            d
            for d in sorted(self.rows.values(), key=lambda d: d.lecturer_id, reverse=True)
            if _matches(page.search, d.nama, d.nidn, d.email, d.jurusan) and (not jurusan or d.jurusan == jurusan)
        ]
        return _paginate(items, page)

    def get_by_id(self, lecturer_id: int) -> Optional[Lecturer]:
        return self.rows.get(lecturer_id)

    def find_by_ids(self, lecturer_ids: Sequence[int]) -> Sequence[Lecturer]:
        return [self.rows[i] for i in sorted(set(lecturer_ids)) if i in self.rows]

    def exists_nidn_or_email(self, nidn: str, email: str, *, exclude_id: Optional[int] = None) -> bool:
        return any(
            (d.nidn == nidn or d.email == email) and d.lecturer_id != exclude_id for d in self.rows.values()
        )

    def create(self, *, nidn, nama, email, jurusan, nomor_hp=None, alamat=None) -> int:
        lecturer_id = self.next_id()
        self.rows[lecturer_id] = Lecturer(
            lecturer_id=lecturer_id,
            nidn=nidn,
            nama=nama,
            email=email,
            jurusan=jurusan,
            nomor_hp=nomor_hp,
            alamat=alamat,
        )
        return lecturer_id

    def update(self, lecturer_id: int, changes: Mapping[str, Any]) -> bool:
        if lecturer_id not in self.rows:
            return False
        self.rows[lecturer_id] = replace(self.rows[lecturer_id], **changes)
        return True

    def delete(self, lecturer_id: int) -> bool:
        return self.rows.pop(lecturer_id, None) is not None

    def count(self) -> int:
        return len(self.rows)


class InMemoryCourses(_Table):
    def list(self, page: PageRequest, *, jurusan: Optional[str] = None, semester: Optional[int] = None) -> Page[Course]:
        items = [
            c
            for c in sorted(self.rows.values(), key=lambda c: c.course_id, reverse=True)
            if _matches(page.search, c.nama, c.kode, c.jurusan)
            and (not jurusan or c.jurusan == jurusan)
            and (semester is None or c.semester == semester)
        ]
        return _paginate(items, page)

    def get_by_id(self, course_id: int) -> Optional[Course]:
        return self.rows.get(course_id)

    def find_by_ids(self, course_ids: Sequence[int]) -> Sequence[Course]:
        return [self.rows[i] for i in sorted(set(course_ids)) if i in self.rows]

    def exists_kode(self, kode: str, *, exclude_id: Optional[int] = None) -> bool:
        return any(c.kode == kode and c.course_id != exclude_id for c in self.rows.values())

    def create(self, *, kode, nama, sks, semester, jurusan, deskripsi=None) -> int:
        course_id = self.next_id()
        self.rows[course_id] = Course(
            course_id=course_id, kode=kode, nama=nama, sks=sks, semester=semester, jurusan=jurusan, deskripsi=deskripsi
        )
        return course_id

    def update(self, course_id: int, changes: Mapping[str, Any]) -> bool:
        if course_id not in self.rows:
            return False
        self.rows[course_id] = replace(self.rows[course_id], **changes)
        return True

    def delete(self, course_id: int) -> bool:
        return self.rows.pop(course_id, None) is not None

    def count(self) -> int:
        return len(self.rows)


class InMemoryClasses(_Table):
    def list(self, page: PageRequest, *, dosen_id=None, matkul_id=None, hari=None) -> Page[ClassSection]:
        items = [
            c
            for c in sorted(self.rows.values(), key=lambda c: c.schedule_key)
            if _matches(page.search, c.nama, c.ruang, c.tahun_ajaran)
            and (dosen_id is None or c.dosen_id == dosen_id)
            and (matkul_id is None or c.matkul_id == matkul_id)
            and (not hari or c.hari.value == hari)
        ]
        return _paginate(items, page)

    def get_by_id(self, class_id: int) -> Optional[ClassSection]:
        return self.rows.get(class_id)

    def find_by_ids(self, class_ids: Sequence[int]) -> Sequence[ClassSection]:
        return [self.rows[i] for i in sorted(set(class_ids)) if i in self.rows]

    def list_by_lecturer(self, dosen_id: int) -> Sequence[ClassSection]:
        return sorted((c for c in self.rows.values() if c.dosen_id == dosen_id), key=lambda c: c.schedule_key)

    def create(self, fields: Mapping[str, Any]) -> int:
        class_id = self.next_id()
        self.rows[class_id] = ClassSection(class_id=class_id, **fields)
        return class_id

    def update(self, class_id: int, changes: Mapping[str, Any]) -> bool:
        if class_id not in self.rows:
            return False
        self.rows[class_id] = replace(self.rows[class_id], **changes)
        return True

    def delete(self, class_id: int) -> bool:
        return self.rows.pop(class_id, None) is not None

    def count(self) -> int:
        return len(self.rows)


class InMemoryEnrollments(_Table):
    def __init__(self, classes: InMemoryClasses):
        super().__init__()
        self._classes = classes

    def _filter(self, *, kelas_id=None, mahasiswa_id=None, is_active=None) -> list[Enrollment]:
        return [
            e
            for e in sorted(self.rows.values(), key=lambda e: e.enrollment_id)
            if (kelas_id is None or e.kelas_id == kelas_id)
            and (mahasiswa_id is None or e.mahasiswa_id == mahasiswa_id)
            and (is_active is None or e.is_active == is_active)
        ]

    def list(self, page: PageRequest, *, kelas_id=None, mahasiswa_id=None, is_active=None) -> Page[Enrollment]:
        return _paginate(self._filter(kelas_id=kelas_id, mahasiswa_id=mahasiswa_id, is_active=is_active), page)

    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        return self.rows.get(enrollment_id)

    def list_for_class(self, kelas_id: int, *, active_only: bool = True) -> Sequence[Enrollment]:
        return self._filter(kelas_id=kelas_id, is_active=True if active_only else None)

    def list_for_student(self, mahasiswa_id: int, *, active_only: bool = True) -> Sequence[Enrollment]:
        return self._filter(mahasiswa_id=mahasiswa_id, is_active=True if active_only else None)

    def is_active_member(self, kelas_id: int, mahasiswa_id: int) -> bool:
        return bool(self._filter(kelas_id=kelas_id, mahasiswa_id=mahasiswa_id, is_active=True))

    def counts(self, *, kelas_id=None, mahasiswa_id=None) -> tuple[int, int]:
        rows = self._filter(kelas_id=kelas_id, mahasiswa_id=mahasiswa_id)
        return len(rows), sum(1 for e in rows if e.is_active)

    def set_active(self, enrollment_id: int, *, is_active: bool) -> bool:
        if enrollment_id not in self.rows:
            return False
        self.rows[enrollment_id] = replace(self.rows[enrollment_id], is_active=is_active)
        return True

    def enroll_batch(self, kelas_id: int, mahasiswa_ids: Sequence[int], *, now: datetime) -> EnrollmentBatch:
        section = self._classes.get_by_id(kelas_id)
        if not section:
            raise NotFoundError("Kelas not found")
        _, current = self.counts(kelas_id=kelas_id)
        if current + len(mahasiswa_ids) > section.kapasitas:
            raise CapacityExceededError(current=current, capacity=section.kapasitas)

        enrollments, errors = [], []
        for mahasiswa_id in mahasiswa_ids:
            found = next(iter(self._filter(kelas_id=kelas_id, mahasiswa_id=mahasiswa_id)), None)
            if found and found.is_active:
                errors.append(f"Mahasiswa {mahasiswa_id} is already enrolled in this class")
            elif found:
                self.rows[found.enrollment_id] = replace(found, is_active=True, tanggal_enroll=now)
                enrollments.append(self.rows[found.enrollment_id])
            else:
                enrollment_id = self.next_id()
                self.rows[enrollment_id] = Enrollment(
                    enrollment_id=enrollment_id, kelas_id=kelas_id, mahasiswa_id=mahasiswa_id, tanggal_enroll=now
                )
                enrollments.append(self.rows[enrollment_id])
        return EnrollmentBatch(enrollments=enrollments, errors=errors)


class InMemoryDevices(_Table):
    def list(self, page: PageRequest, *, online_since: datetime, status=None, is_active=None) -> Page[Device]:
        def derived(d: Device) -> DeviceStatus:
            if d.status == DeviceStatus.MAINTENANCE:
                return DeviceStatus.MAINTENANCE
            if d.last_heartbeat is not None and d.last_heartbeat >= online_since:
                return DeviceStatus.ONLINE
            return DeviceStatus.OFFLINE

        items = [
            d
            for d in sorted(self.rows.values(), key=lambda d: d.device_id, reverse=True)
            if _matches(page.search, d.nama, d.external_id, d.lokasi, d.ruang)
            and (status is None or derived(d) == status)
            and (is_active is None or d.is_active == is_active)
        ]
        return _paginate(items, page)

    def list_all(self) -> Sequence[Device]:
        return [self.rows[k] for k in sorted(self.rows)]

    def get_by_id(self, device_id: int) -> Optional[Device]:
        return self.rows.get(device_id)

    def find_by_ids(self, device_ids: Sequence[int]) -> Sequence[Device]:
        return [self.rows[i] for i in sorted(set(device_ids)) if i in self.rows]

    def get_by_external_id(self, external_id: str) -> Optional[Device]:
        return next((d for d in self.rows.values() if d.external_id == external_id), None)

    def exists_external_id(self, external_id: str, *, exclude_id: Optional[int] = None) -> bool:
        return any(d.external_id == external_id and d.device_id != exclude_id for d in self.rows.values())

    def create(self, fields: Mapping[str, Any]) -> int:
        device_id = self.next_id()
        self.rows[device_id] = Device(device_id=device_id, **fields)
        return device_id

    def update(self, device_id: int, changes: Mapping[str, Any]) -> bool:
        if device_id not in self.rows:
            return False
        self.rows[device_id] = replace(self.rows[device_id], **changes)
        return True

    def delete(self, device_id: int) -> bool:
        return self.rows.pop(device_id, None) is not None

    def record_heartbeat(self, device_id: int, *, at: datetime, ip_address: Optional[str] = None) -> None:
        device = self.rows[device_id]
        status = device.status if device.status == DeviceStatus.MAINTENANCE else DeviceStatus.ONLINE
        self.rows[device_id] = replace(
            device, last_heartbeat=at, ip_address=ip_address or device.ip_address, status=status
        )

    def count(self) -> int:
        return len(self.rows)

    def count_online(self, *, since: datetime) -> int:
        return sum(
            1
            for d in self.rows.values()
            if d.status != DeviceStatus.MAINTENANCE and d.last_heartbeat is not None and d.last_heartbeat >= since
        )


class InMemorySessions(_Table):
    """Enforces the same unique keys as the sesi_absensi table."""

    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        return self.rows.get(session_id)

    def find_by_ids(self, session_ids: Sequence[int]) -> Sequence[AttendanceSession]:
        return [self.rows[i] for i in sorted(set(session_ids)) if i in self.rows]

    def get_active_for_device(self, device_id: int) -> Optional[AttendanceSession]:
        active = [s for s in self.rows.values() if s.device_id == device_id and s.is_active]
        return max(active, key=lambda s: s.waktu_mulai, default=None)

    def create_active(self, *, kelas_id, dosen_id, device_id, judul_sesi, durasi_menit, kode_sesi, waktu_mulai) -> int:
        if any(s.is_active and s.kelas_id == kelas_id for s in self.rows.values()):
            raise DuplicateKeyError(key="uq_sesi_active_kelas")
        if any(s.is_active and s.device_id == device_id for s in self.rows.values()):
            raise DuplicateKeyError(key="uq_sesi_active_device")
        if any(s.kode_sesi == kode_sesi for s in self.rows.values()):
            raise DuplicateKeyError(key="uq_sesi_kode")
        session_id = self.next_id()
        self.rows[session_id] = AttendanceSession(
            session_id=session_id,
            kelas_id=kelas_id,
            dosen_id=dosen_id,
            device_id=device_id,
            judul_sesi=judul_sesi,
            waktu_mulai=waktu_mulai,
            durasi_menit=durasi_menit,
            kode_sesi=kode_sesi,
        )
        return session_id

    def close(self, session_id: int, *, at: datetime) -> bool:
        session = self.rows.get(session_id)
        if not session:
            return False
        self.rows[session_id] = replace(session, is_active=False, waktu_selesai=session.waktu_selesai or at)
        return True

    def list_active(self, *, dosen_id: Optional[int] = None) -> Sequence[AttendanceSession]:
        return sorted(
            (s for s in self.rows.values() if s.is_active and (dosen_id is None or s.dosen_id == dosen_id)),
            key=lambda s: s.waktu_mulai,
            reverse=True,
        )

    def find(self, *, kelas_ids=None, dosen_id=None, started_from=None, started_before=None) -> Sequence[AttendanceSession]:
        return sorted(
            (
                s
                for s in self.rows.values()
                if (kelas_ids is None or s.kelas_id in set(kelas_ids))
                and (dosen_id is None or s.dosen_id == dosen_id)
                and (started_from is None or s.waktu_mulai >= started_from)
                and (started_before is None or s.waktu_mulai < started_before)
            ),
            key=lambda s: (s.waktu_mulai, s.session_id),
            reverse=True,
        )


class InMemoryRecords(_Table):
    def get_for_session_student(self, session_id: int, mahasiswa_id: int) -> Optional[AttendanceRecord]:
        return next(
            (r for r in self.rows.values() if r.sesi_absensi_id == session_id and r.mahasiswa_id == mahasiswa_id),
            None,
        )

    def insert_if_absent(self, record: NewRecord) -> tuple[AttendanceRecord, bool]:
        existing = self.get_for_session_student(record.sesi_absensi_id, record.mahasiswa_id)
        if existing:
            return existing, False
        record_id = self.next_id()
        stored = AttendanceRecord(record_id=record_id, **asdict(record))
        self.rows[record_id] = stored
        return stored, True

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        return sorted(
            (r for r in self.rows.values() if r.sesi_absensi_id == session_id),
            key=lambda r: (r.waktu_absen, r.record_id),
        )

    def find(
        self, *, session_ids=None, mahasiswa_id=None, recorded_from=None, recorded_before=None, limit=None
    ) -> Sequence[AttendanceRecord]:
        items = sorted(
            (
                r
                for r in self.rows.values()
                if (session_ids is None or r.sesi_absensi_id in set(session_ids))
                and (mahasiswa_id is None or r.mahasiswa_id == mahasiswa_id)
                and (recorded_from is None or r.waktu_absen >= recorded_from)
                and (recorded_before is None or r.waktu_absen < recorded_before)
            ),
            key=lambda r: (r.waktu_absen, r.record_id),
            reverse=True,
        )
        return items[:limit] if limit is not None else items


class StubRecognizer:
    """Returns queued results in order; raises when the queued item is an exception."""

    def __init__(self, results: Iterable[Any] = ()):
        self.results = list(results)
        self.calls: list[dict] = []

    def queue(self, result: Any) -> None:
        self.results.append(result)

    def recognize(self, *, image_base64: str, device_id: str, candidates: Sequence[int]) -> RecognitionResult:
        self.calls.append({"image_base64": image_base64, "device_id": device_id, "candidates": list(candidates)})
        result = self.results.pop(0) if self.results else RecognitionResult(matched=False, confidence=0.5)
        if isinstance(result, Exception):
            raise result
        return result


class FixedClock:
    """Settable clock so tests can move time forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)
