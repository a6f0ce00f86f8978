from __future__ import annotations

from flask import Flask, request

from ..accounts.guards import ADMIN_ONLY, LECTURER_ONLY, STUDENT_ONLY, auth_required
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import success
from ..common.validators import as_int, optional_text
from ..container import Container


def register(app: Flask, container: Container) -> None:
    prefix = f"{app.config['API_PREFIX']}/kelas"
    auth = container.auth_service
    classes = container.class_service

    @app.route(prefix, methods=["GET"], endpoint="kelas_list")
    @auth_required(auth, ADMIN_ONLY)
    def list_kelas(ctx):
        items, page = classes.list(
            PageRequest.from_args(request.args),
            dosen_id=as_int(request.args.get("dosenId")),
            matkul_id=as_int(request.args.get("matkulId")),
            hari=optional_text(request.args.get("hari")),
        )
        return success("Kelas retrieved successfully", items, page=page)

    @app.route(f"{prefix}/dosen/my-classes", methods=["GET"], endpoint="kelas_dosen_mine")
    @auth_required(auth, LECTURER_ONLY)
    def lecturer_classes(ctx):
        return success("Dosen classes retrieved successfully", classes.classes_for_lecturer(ctx))

    @app.route(f"{prefix}/mahasiswa/my-classes", methods=["GET"], endpoint="kelas_mahasiswa_mine")
    @auth_required(auth, STUDENT_ONLY)
    def student_classes(ctx):
        return success("Mahasiswa classes retrieved successfully", classes.classes_for_student(ctx))

    @app.route(f"{prefix}/<int:class_id>", methods=["GET"], endpoint="kelas_get")
    @auth_required(auth)
    def get_kelas(ctx, class_id: int):
        return success("Kelas retrieved successfully", classes.get(class_id))

    @app.route(prefix, methods=["POST"], endpoint="kelas_create")
    @auth_required(auth, ADMIN_ONLY)
    def create_kelas(ctx):
        return success("Kelas created successfully", classes.create(json_body()), 201)

    @app.route(f"{prefix}/<int:class_id>", methods=["PUT"], endpoint="kelas_update")
    @auth_required(auth, ADMIN_ONLY)
    def update_kelas(ctx, class_id: int):
        return success("Kelas updated successfully", classes.update(class_id, json_body()))

    @app.route(f"{prefix}/<int:class_id>", methods=["DELETE"], endpoint="kelas_delete")
    @auth_required(auth, ADMIN_ONLY)
    def delete_kelas(ctx, class_id: int):
        classes.delete(class_id)
        return success("Kelas deleted successfully")
