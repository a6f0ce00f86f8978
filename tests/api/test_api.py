from __future__ import annotations

import io

from campus_attendance.core.exceptions import ServiceUnavailableError
from campus_attendance.recognition.model import RecognitionResult


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.get_json() == {"success": True, "message": "Server is running", "data": {"status": "ok"}}


def test_unknown_route_uses_envelope(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.get_json()["success"] is False
    assert res.get_json()["message"] == "Route not found"


def test_login_envelope(client, campus):
    res = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
    body = res.get_json()

    assert res.status_code == 200
    assert body["message"] == "Login successful"
    assert body["data"]["user"]["role"] == "admin"
    assert body["data"]["token"]
    assert body["data"]["refreshToken"]


def test_login_failure_is_401(client, campus):
    res = client.post("/api/auth/login", json={"username": "admin", "password": "bad"})
    assert res.status_code == 401
    assert res.get_json() == {"success": False, "message": "Invalid credentials", "error": None}


def test_protected_route_needs_token(client, campus):
    res = client.get("/api/mahasiswa")
    assert res.status_code == 401
    assert res.get_json()["message"] == "Access token required"


def test_pending_password_change_only_reaches_auth_routes(client, campus):
    login = client.post("/api/auth/login", json={"username": "2023001", "password": "2023001"}).get_json()
    headers = {"Authorization": f"Bearer {login['data']['token']}"}

    blocked = client.get("/api/kelas/mahasiswa/my-classes", headers=headers)
    assert blocked.status_code == 403
    assert blocked.get_json()["message"] == "Password change required"

    assert client.get("/api/auth/me", headers=headers).status_code == 200
    changed = client.put(
        "/api/auth/password", headers=headers, json={"currentPassword": "2023001", "newPassword": "rahasia123"}
    )
    assert changed.status_code == 200

    allowed = client.get("/api/kelas/mahasiswa/my-classes", headers=headers)
    assert allowed.status_code == 200
    assert [c["id"] for c in allowed.get_json()["data"]] == [campus.class_id]


def test_role_guard(client, campus, bearer):
    res = client.get("/api/mahasiswa", headers=bearer(campus.students[0]))
    assert res.status_code == 403
    assert res.get_json()["message"] == "Insufficient permissions"


def test_student_list_paginated(client, campus, bearer):
    res = client.get("/api/mahasiswa?page=1&limit=2", headers=bearer(campus.admin))
    body = res.get_json()
    assert len(body["data"]) == 2
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}


def test_validation_errors_listed(client, campus, bearer):
    res = client.post("/api/mata-kuliah", headers=bearer(campus.admin), json={"kode": "IF999"})
    body = res.get_json()
    assert res.status_code == 400
    assert body["message"] == "Validation failed"
    assert {e["field"] for e in body["errors"]} == {"nama", "jurusan", "sks", "semester"}


def test_enroll_over_capacity(client, campus, bearer, container):
    extra, _ = container.student_service.create(
        {"nim": "2023050", "nama": "Extra", "email": "extra@student.kampus.ac.id", "jurusan": "Informatika", "semester": 3},
        create_account=False,
    )
    res = client.post(
        "/api/enrollment/enroll",
        headers=bearer(campus.admin),
        json={"kelasId": campus.class_id, "mahasiswaIds": [campus.outsider_id, extra.student_id]},
    )
    assert res.status_code == 400
    assert res.get_json()["message"] == "Class capacity exceeded. Current: 2, Available: 1"


def test_session_flow_over_http(client, campus, bearer, recognizer):
    lecturer = bearer(campus.lecturer)
    started = client.post(
        "/api/face-recognition/session/start",
        headers=lecturer,
        json={"kelasId": campus.class_id, "deviceId": campus.device_id, "judulSesi": "Pertemuan 1", "durasiMenit": 90},
    )
    assert started.status_code == 201
    session_id = started.get_json()["data"]["sesiAbsensi"]["id"]

    again = client.post(
        "/api/face-recognition/session/start",
        headers=lecturer,
        json={"kelasId": campus.class_id, "deviceId": campus.device_id, "judulSesi": "Lagi", "durasiMenit": 90},
    )
    assert again.status_code == 400

    recognizer.queue(RecognitionResult(matched=True, subject_id=campus.enrolled_ids[0], confidence=0.9))
    scan = client.post(
        "/api/face-recognition/scan",
        json={"device_id": campus.device_external_id, "image_base64": "aGVsbG8="},
        headers={"User-Agent": "camera/1.0", "X-Forwarded-For": "10.1.2.3"},
    )
    body = scan.get_json()
    assert scan.status_code == 200
    assert body["message"] == "Face recognition successful"
    assert body["data"]["absensi"]["ipAddress"] == "10.1.2.3"
    assert body["data"]["absensi"]["userAgent"] == "camera/1.0"

    attendance = client.get(f"/api/face-recognition/session/{session_id}/attendance", headers=bearer(campus.students[0]))
    assert attendance.get_json()["data"]["stats"]["present"] == 1

    stopped = client.post(f"/api/face-recognition/session/{session_id}/stop", headers=lecturer)
    assert stopped.status_code == 200
    assert stopped.get_json()["data"]["isActive"] is False


def test_scan_recognizer_outage_is_503(client, campus, bearer, recognizer, container):
    container.session_service.start_session(
        campus.lecturer,
        {"kelasId": campus.class_id, "deviceId": campus.device_id, "judulSesi": "Pertemuan 1", "durasiMenit": 90},
    )
    recognizer.queue(ServiceUnavailableError("Face recognition service unavailable"))
    res = client.post("/api/face-recognition/scan", json={"device_id": "DEV-1", "image_base64": "aGVsbG8="})
    assert res.status_code == 503
    assert res.get_json()["message"] == "Face recognition service unavailable"


def test_device_heartbeat_needs_no_token(client, campus):
    res = client.post(f"/api/devices/{campus.device_external_id}/heartbeat")
    assert res.status_code == 200
    assert res.get_json()["data"]["status"] == "online"

    assert client.post("/api/devices/DEV-404/heartbeat").status_code == 404


def test_face_photo_upload(app, client, campus, bearer, tmp_path):
    app.config["UPLOAD_FOLDER"] = str(tmp_path)
    headers = bearer(campus.students[0])

    res = client.post(
        "/api/mahasiswa/profile/face-photo",
        headers=headers,
        data={"facePhoto": (io.BytesIO(b"\xff\xd8\xff fake jpeg"), "me.jpg", "image/jpeg")},
        content_type="multipart/form-data",
    )
    assert res.status_code == 200
    path = res.get_json()["data"]["fotoWajah"]
    assert path.startswith("/uploads/facePhoto/") and path.endswith(".jpg")
    assert (tmp_path / "facePhoto" / path.rsplit("/", 1)[1]).exists()

    rejected = client.post(
        "/api/mahasiswa/profile/face-photo",
        headers=headers,
        data={"facePhoto": (io.BytesIO(b"text"), "notes.txt", "text/plain")},
        content_type="multipart/form-data",
    )
    assert rejected.status_code == 400
    assert rejected.get_json()["message"] == "Only image files are allowed"


def test_csv_export(client, campus, bearer):
    res = client.get(f"/api/reports/export/class/{campus.class_id}?format=csv", headers=bearer(campus.admin))
    assert res.status_code == 200
    assert res.mimetype == "text/csv"
    assert res.headers["Content-Disposition"] == f"attachment; filename=class_report_{campus.class_id}.csv"
    assert res.data.decode("utf-8-sig").splitlines()[0].startswith("nim,nama,totalSesi")


def test_dashboard_for_student(client, campus, bearer):
    res = client.get("/api/reports/dashboard", headers=bearer(campus.students[0]))
    data = res.get_json()["data"]
    assert res.status_code == 200
    assert data["mahasiswa"]["totalAbsensi"] == 0
    assert data["mahasiswa"]["hadirPercentage"] == 0
