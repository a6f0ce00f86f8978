from __future__ import annotations

from flask import Flask, request

from ..accounts.guards import ADMIN_ONLY, STUDENT_ONLY, auth_required
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import success
from ..common.uploads import save_image
from ..common.validators import as_int, optional_text
from ..container import Container


def register(app: Flask, container: Container) -> None:
    prefix = f"{app.config['API_PREFIX']}/mahasiswa"
    auth = container.auth_service
    students = container.student_service

    @app.route(prefix, methods=["GET"], endpoint="mahasiswa_list")
    @auth_required(auth, ADMIN_ONLY)
    def list_mahasiswa(ctx):
        page = students.list(
            PageRequest.from_args(request.args),
            jurusan=optional_text(request.args.get("jurusan")),
            semester=as_int(request.args.get("semester")),
        )
        return success("Mahasiswa retrieved successfully", [s.to_dict() for s in page.items], page=page)

    @app.route(f"{prefix}/<int:student_id>", methods=["GET"], endpoint="mahasiswa_get")
    @auth_required(auth, ADMIN_ONLY)
    def get_mahasiswa(ctx, student_id: int):
        return success("Mahasiswa retrieved successfully", students.get(student_id))

    @app.route(prefix, methods=["POST"], endpoint="mahasiswa_create")
    @auth_required(auth, ADMIN_ONLY)
    def create_mahasiswa(ctx):
        student, account = students.create(json_body())
        data = student.to_dict()
        data["user"] = account.to_dict() if account else None
        return success("Mahasiswa created successfully", data, 201)

    @app.route(f"{prefix}/<int:student_id>", methods=["PUT"], endpoint="mahasiswa_update")
    @auth_required(auth, ADMIN_ONLY)
    def update_mahasiswa(ctx, student_id: int):
        student = students.update(student_id, json_body())
        return success("Mahasiswa updated successfully", student.to_dict())

    @app.route(f"{prefix}/<int:student_id>", methods=["DELETE"], endpoint="mahasiswa_delete")
    @auth_required(auth, ADMIN_ONLY)
    def delete_mahasiswa(ctx, student_id: int):
        students.delete(student_id)
        return success("Mahasiswa deleted successfully")

    @app.route(f"{prefix}/profile/me", methods=["PUT"], endpoint="mahasiswa_update_me")
    @auth_required(auth, STUDENT_ONLY)
    def update_own_profile(ctx):
        student = students.update_own_profile(ctx, json_body())
        return success("Profile updated successfully", student.to_dict())

    @app.route(f"{prefix}/profile/face-photo", methods=["POST"], endpoint="mahasiswa_face_photo")
    @auth_required(auth, STUDENT_ONLY)
    def upload_face_photo(ctx):
        path = save_image(request.files.get("facePhoto"), upload_root=app.config["UPLOAD_FOLDER"], field="facePhoto")
        student = students.set_face_photo(ctx, path)
        return success("Face photo uploaded successfully", student.to_dict())

    @app.route(f"{prefix}/profile/photo", methods=["POST"], endpoint="mahasiswa_profile_photo")
    @auth_required(auth, STUDENT_ONLY)
    def upload_profile_photo(ctx):
        path = save_image(request.files.get("fotoProfil"), upload_root=app.config["UPLOAD_FOLDER"], field="fotoProfil")
        student = students.set_profile_photo(ctx, path)
        return success("Profile photo uploaded successfully", student.to_dict())
