from __future__ import annotations

import pytest

from campus_attendance.core.enums import AttendanceStatus, DeviceStatus
from campus_attendance.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from campus_attendance.recognition.model import RecognitionResult
from campus_attendance.sessions.service import AttendanceSessionService, generate_session_code

from conftest import FIXED_NOW


def _start(container, campus, ctx=None, **overrides):
    data = {
        "kelasId": campus.class_id,
        "deviceId": campus.device_id,
        "judulSesi": "Pertemuan 1",
        "durasiMenit": 90,
    }
    data.update(overrides)
    return container.session_service.start_session(ctx or campus.lecturer, data)


def _scan(container, campus, image="aGVsbG8="):
    return container.session_service.check_in(
        device_external_id=campus.device_external_id,
        image_base64=image,
        ip_address="10.0.0.7",
        user_agent="camera/1.0",
    )


def test_session_code_is_six_uppercase_alphanumerics():
    code = generate_session_code()
    assert len(code) == 6
    assert code.isalnum() and code.upper() == code


def test_start_session_opens_active_session_and_marks_device_online(container, campus, repos):
    session = _start(container, campus)

    assert session.is_active
    assert session.kelas_id == campus.class_id
    assert session.dosen_id == campus.lecturer.lecturer_id
    assert session.waktu_mulai == FIXED_NOW
    assert len(session.kode_sesi) == 6

    device = repos.devices.get_by_id(campus.device_id)
    assert device.last_heartbeat == FIXED_NOW
    assert device.effective_status(now=FIXED_NOW, window=container.device_service.online_window) == DeviceStatus.ONLINE

    payload = container.session_service.start_payload(session)
    assert payload["endTime"] == "2024-03-11T09:45:00"


def test_admin_start_attributes_session_to_class_lecturer(container, campus):
    session = _start(container, campus, ctx=campus.admin)
    assert session.dosen_id == campus.lecturer.lecturer_id


def test_second_active_session_for_class_rejected(container, campus):
    _start(container, campus)
    with pytest.raises(ValidationError, match="already an active session"):
        _start(container, campus, judulSesi="Pertemuan 1b")


def test_device_cannot_run_two_active_sessions(container, campus, repos):
    first = _start(container, campus)
    other = container.class_service.create(
        {
            "nama": "IF205-B",
            "matkulId": campus.course_id,
            "dosenId": campus.lecturer.lecturer_id,
            "hari": "Selasa",
            "jamMulai": "08:00",
            "jamSelesai": "10:30",
            "ruang": "A201",
            "kapasitas": 3,
            "tahunAjaran": "2023/2024",
            "semester": "Genap",
        }
    )

    with pytest.raises(ValidationError, match="Device is already running another active session"):
        _start(container, campus, kelasId=other["id"], judulSesi="Pertemuan 1 B")
    assert repos.sessions.get_active_for_device(campus.device_id).session_id == first.session_id

    container.session_service.stop_session(campus.lecturer, first.session_id)
    second = _start(container, campus, kelasId=other["id"], judulSesi="Pertemuan 1 B")
    assert repos.sessions.get_active_for_device(campus.device_id).session_id == second.session_id


def test_stop_then_restart(container, campus):
    first = _start(container, campus)
    stopped = container.session_service.stop_session(campus.lecturer, first.session_id)
    assert not stopped.is_active
    assert stopped.waktu_selesai == FIXED_NOW

    second = _start(container, campus, judulSesi="Pertemuan 2")
    assert second.session_id != first.session_id
    assert second.is_active


def test_stop_by_other_lecturer_forbidden(container, campus):
    session = _start(container, campus)
    with pytest.raises(AuthorizationError, match="Unauthorized to stop this session"):
        container.session_service.stop_session(campus.other_lecturer, session.session_id)


def test_start_validation(container, campus):
    with pytest.raises(ValidationError) as exc:
        container.session_service.start_session(campus.lecturer, {"durasiMenit": 0})
    fields = {e["field"] for e in exc.value.errors}
    assert fields == {"kelasId", "deviceId", "judulSesi", "durasiMenit"}

    with pytest.raises(ValidationError):
        _start(container, campus, durasiMenit=181)


def test_start_unknown_class_or_inactive_device(container, campus):
    with pytest.raises(NotFoundError, match="Kelas not found"):
        _start(container, campus, kelasId=999)

    container.device_service.update(campus.device_id, {"isActive": False})
    with pytest.raises(NotFoundError, match="Device not found or inactive"):
        _start(container, campus)


def test_session_code_collision_is_retried(repos, recognizer, clock, campus):
    repos.sessions.create_active(
        kelas_id=999,
        dosen_id=campus.lecturer.lecturer_id,
        device_id=campus.device_id,
        judul_sesi="Other class",
        durasi_menit=30,
        kode_sesi="AAAAAA",
        waktu_mulai=FIXED_NOW,
    )
    codes = iter(["AAAAAA", "BBBBBB"])
    service = AttendanceSessionService(
        repos.sessions,
        repos.records,
        repos.classes,
        repos.courses,
        repos.devices,
        repos.enrollments,
        repos.students,
        recognizer,
        clock=clock,
        code_factory=lambda: next(codes),
    )

    session = service.start_session(
        campus.lecturer,
        {"kelasId": campus.class_id, "deviceId": campus.device_id, "judulSesi": "Pertemuan 1", "durasiMenit": 60},
    )
    assert session.kode_sesi == "BBBBBB"


def test_session_code_exhaustion_is_a_conflict(repos, recognizer, clock, campus):
    repos.sessions.create_active(
        kelas_id=999,
        dosen_id=campus.lecturer.lecturer_id,
        device_id=campus.device_id,
        judul_sesi="Other class",
        durasi_menit=30,
        kode_sesi="AAAAAA",
        waktu_mulai=FIXED_NOW,
    )
    service = AttendanceSessionService(
        repos.sessions,
        repos.records,
        repos.classes,
        repos.courses,
        repos.devices,
        repos.enrollments,
        repos.students,
        recognizer,
        clock=clock,
        code_factory=lambda: "AAAAAA",
    )
    with pytest.raises(ConflictError):
        service.start_session(
            campus.lecturer,
            {"kelasId": campus.class_id, "deviceId": campus.device_id, "judulSesi": "Pertemuan 1", "durasiMenit": 60},
        )


def test_scan_records_presence_once(container, campus, recognizer, repos):
    session = _start(container, campus)
    student_id = campus.enrolled_ids[0]
    recognizer.queue(RecognitionResult(matched=True, subject_id=student_id, confidence=0.93))
    recognizer.queue(RecognitionResult(matched=True, subject_id=student_id, confidence=0.91))

    first = _scan(container, campus)
    assert first.message == "Face recognition successful"
    assert first.data["success"] is True
    assert first.data["mahasiswa"]["id"] == student_id
    assert first.data["absensi"]["status"] == "hadir"
    assert first.data["absensi"]["lokasiAbsen"] == "Gedung A Lantai 2 - A201"
    assert recognizer.calls[0]["candidates"] == campus.enrolled_ids

    second = _scan(container, campus)
    assert second.message == "Already marked as present"
    assert second.data["absensi"]["id"] == first.data["absensi"]["id"]
    assert len(repos.records.list_for_session(session.session_id)) == 1


def test_scan_no_match(container, campus, recognizer):
    _start(container, campus)
    recognizer.queue(RecognitionResult(matched=False, confidence=0.41))

    outcome = _scan(container, campus)
    assert outcome.message == "Face scan completed - no match found"
    assert outcome.data == {"success": False, "message": "Wajah tidak dikenali", "confidence": 0.41}


def test_scan_student_not_enrolled(container, campus, recognizer):
    _start(container, campus)
    recognizer.queue(RecognitionResult(matched=True, subject_id=campus.outsider_id, confidence=0.88))
    with pytest.raises(AuthorizationError, match="not enrolled"):
        _scan(container, campus)


def test_scan_requires_device_and_image(container, campus):
    with pytest.raises(ValidationError, match="Device ID and image are required"):
        _scan(container, campus, image="")


def test_scan_unknown_device(container, campus):
    with pytest.raises(NotFoundError, match="Device not found or inactive"):
        container.session_service.check_in(device_external_id="DEV-404", image_base64="aGVsbG8=")


def test_scan_without_active_session(container, campus, recognizer):
    session = _start(container, campus)
    container.session_service.stop_session(campus.lecturer, session.session_id)
    with pytest.raises(ValidationError, match="No active attendance session"):
        _scan(container, campus)
    assert recognizer.calls == []


def test_scan_propagates_recognizer_outage(container, campus, recognizer, repos):
    session = _start(container, campus)
    recognizer.queue(ServiceUnavailableError("Face recognition service unavailable"))
    with pytest.raises(ServiceUnavailableError):
        _scan(container, campus)
    assert repos.records.list_for_session(session.session_id) == []


def test_manual_marking(container, campus):
    session = _start(container, campus)
    student_id = campus.enrolled_ids[1]

    record = container.session_service.mark_manual(
        campus.lecturer, session.session_id, {"mahasiswaId": student_id, "status": "izin", "keterangan": "Surat dokter"}
    )
    assert record.status == AttendanceStatus.IZIN
    assert record.keterangan == "Surat dokter"

    with pytest.raises(ValidationError, match="already marked"):
        container.session_service.mark_manual(
            campus.lecturer, session.session_id, {"mahasiswaId": student_id, "status": "sakit"}
        )


def test_manual_marking_rules(container, campus):
    session = _start(container, campus)
    student_id = campus.enrolled_ids[0]

    with pytest.raises(ValidationError, match='"izin" or "sakit"'):
        container.session_service.mark_manual(
            campus.lecturer, session.session_id, {"mahasiswaId": student_id, "status": "hadir"}
        )
    with pytest.raises(AuthorizationError):
        container.session_service.mark_manual(
            campus.other_lecturer, session.session_id, {"mahasiswaId": student_id, "status": "izin"}
        )
    with pytest.raises(NotFoundError, match="Mahasiswa not found"):
        container.session_service.mark_manual(
            campus.lecturer, session.session_id, {"mahasiswaId": 999, "status": "izin"}
        )
    with pytest.raises(NotFoundError, match="Session not found"):
        container.session_service.mark_manual(campus.lecturer, 999, {"mahasiswaId": student_id, "status": "izin"})


def test_scan_after_manual_mark_keeps_manual_status(container, campus, recognizer):
    session = _start(container, campus)
    student_id = campus.enrolled_ids[0]
    container.session_service.mark_manual(
        campus.lecturer, session.session_id, {"mahasiswaId": student_id, "status": "sakit"}
    )
    recognizer.queue(RecognitionResult(matched=True, subject_id=student_id, confidence=0.95))

    outcome = _scan(container, campus)
    assert outcome.message == "Already marked as present"
    assert outcome.data["absensi"]["status"] == "sakit"


def test_session_attendance_stats(container, campus, recognizer):
    session = _start(container, campus)
    recognizer.queue(RecognitionResult(matched=True, subject_id=campus.enrolled_ids[0], confidence=0.9))
    _scan(container, campus)

    data = container.session_service.session_attendance(session.session_id)
    assert data["stats"] == {"totalEnrolled": 2, "present": 1, "absent": 1, "percentage": 50.0}
    assert data["absensis"][0]["mahasiswa"]["nim"] == "2023001"
    assert data["sesi"]["kelas"]["mataKuliah"]["kode"] == "IF205"


def test_active_sessions_are_scoped_to_lecturer(container, campus):
    _start(container, campus)
    assert len(container.session_service.list_active(campus.lecturer)) == 1
    assert container.session_service.list_active(campus.other_lecturer) == []
    assert len(container.session_service.list_active(campus.admin)) == 1


def test_active_sessions_load_devices_in_one_batch(container, campus, repos, monkeypatch):
    _start(container, campus)

    def single_lookup(device_id):
        raise AssertionError(f"per-session device lookup for {device_id}")

    monkeypatch.setattr(repos.devices, "get_by_id", single_lookup)
    [item] = container.session_service.list_active(campus.admin)
    assert item["device"]["deviceId"] == campus.device_external_id
    assert item["device"]["status"] == DeviceStatus.ONLINE.value
