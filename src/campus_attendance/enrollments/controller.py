from __future__ import annotations

from flask import Flask, request

from ..accounts.guards import ADMIN_ONLY, LECTURER_OR_ADMIN, STUDENT_OR_ADMIN, auth_required
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import success
from ..common.validators import as_bool, as_int
from ..container import Container


def register(app: Flask, container: Container) -> None:
    prefix = f"{app.config['API_PREFIX']}/enrollment"
    auth = container.auth_service
    enrollments = container.enrollment_service

    @app.route(prefix, methods=["GET"], endpoint="enrollment_list")
    @auth_required(auth, ADMIN_ONLY)
    def list_enrollments(ctx):
        items, page = enrollments.list(
            PageRequest.from_args(request.args),
            kelas_id=as_int(request.args.get("kelasId")),
            mahasiswa_id=as_int(request.args.get("mahasiswaId")),
            is_active=as_bool(request.args.get("isActive")),
        )
        return success("Enrollments retrieved successfully", items, page=page)

    @app.route(f"{prefix}/stats", methods=["GET"], endpoint="enrollment_stats")
    @auth_required(auth, ADMIN_ONLY)
    def enrollment_stats(ctx):
        data = enrollments.stats(
            kelas_id=as_int(request.args.get("kelasId")),
            mahasiswa_id=as_int(request.args.get("mahasiswaId")),
        )
        return success("Enrollment statistics retrieved successfully", data)

    @app.route(f"{prefix}/class/<int:kelas_id>", methods=["GET"], endpoint="enrollment_by_class")
    @auth_required(auth, LECTURER_OR_ADMIN)
    def class_enrollments(ctx, kelas_id: int):
        return success("Class enrollments retrieved successfully", enrollments.for_class(ctx, kelas_id))

    @app.route(f"{prefix}/mahasiswa/<int:mahasiswa_id>", methods=["GET"], endpoint="enrollment_by_student")
    @auth_required(auth, STUDENT_OR_ADMIN)
    def student_enrollments(ctx, mahasiswa_id: int):
        return success("Mahasiswa enrollments retrieved successfully", enrollments.for_student(ctx, mahasiswa_id))

    @app.route(f"{prefix}/<int:enrollment_id>", methods=["GET"], endpoint="enrollment_get")
    @auth_required(auth, ADMIN_ONLY)
    def get_enrollment(ctx, enrollment_id: int):
        return success("Enrollment retrieved successfully", enrollments.get(enrollment_id))

    @app.route(f"{prefix}/enroll", methods=["POST"], endpoint="enrollment_enroll")
    @auth_required(auth, ADMIN_ONLY)
    def enroll(ctx):
        body = json_body()
        batch = enrollments.enroll(kelas_id=body.get("kelasId"), mahasiswa_ids=body.get("mahasiswaIds"))
        data = {
            "successCount": batch.success_count,
            "errorCount": batch.error_count,
            "enrollments": [e.to_dict() for e in batch.enrollments],
            "errors": batch.errors,
        }
        return success("Enrollments processed successfully", data)

    @app.route(f"{prefix}/<int:enrollment_id>", methods=["PUT"], endpoint="enrollment_update")
    @auth_required(auth, ADMIN_ONLY)
    def update_enrollment(ctx, enrollment_id: int):
        return success("Enrollment updated successfully", enrollments.update(enrollment_id, json_body()).to_dict())

    @app.route(f"{prefix}/<int:enrollment_id>/unenroll", methods=["PUT"], endpoint="enrollment_unenroll")
    @auth_required(auth, ADMIN_ONLY)
    def unenroll(ctx, enrollment_id: int):
        return success("Mahasiswa unenrolled successfully", enrollments.unenroll(enrollment_id).to_dict())
