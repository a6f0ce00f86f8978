from __future__ import annotations

from flask import Flask, request

from ..accounts.guards import ADMIN_ONLY, LECTURER_ONLY, auth_required
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import success
from ..common.uploads import save_image
from ..common.validators import optional_text
from ..container import Container


def register(app: Flask, container: Container) -> None:
    prefix = f"{app.config['API_PREFIX']}/dosen"
    auth = container.auth_service
    lecturers = container.lecturer_service

    @app.route(prefix, methods=["GET"], endpoint="dosen_list")
    @auth_required(auth, ADMIN_ONLY)
    def list_dosen(ctx):
        page = lecturers.list(PageRequest.from_args(request.args), jurusan=optional_text(request.args.get("jurusan")))
        return success("Dosen retrieved successfully", [d.to_dict() for d in page.items], page=page)

    @app.route(f"{prefix}/<int:lecturer_id>", methods=["GET"], endpoint="dosen_get")
    @auth_required(auth, ADMIN_ONLY)
    def get_dosen(ctx, lecturer_id: int):
        return success("Dosen retrieved successfully", lecturers.get(lecturer_id))

    @app.route(prefix, methods=["POST"], endpoint="dosen_create")
    @auth_required(auth, ADMIN_ONLY)
    def create_dosen(ctx):
        lecturer, account = lecturers.create(json_body())
        data = lecturer.to_dict()
        data["user"] = account.to_dict() if account else None
        return success("Dosen created successfully", data, 201)

    @app.route(f"{prefix}/<int:lecturer_id>", methods=["PUT"], endpoint="dosen_update")
    @auth_required(auth, ADMIN_ONLY)
    def update_dosen(ctx, lecturer_id: int):
        return success("Dosen updated successfully", lecturers.update(lecturer_id, json_body()).to_dict())

    @app.route(f"{prefix}/<int:lecturer_id>", methods=["DELETE"], endpoint="dosen_delete")
    @auth_required(auth, ADMIN_ONLY)
    def delete_dosen(ctx, lecturer_id: int):
        lecturers.delete(lecturer_id)
        return success("Dosen deleted successfully")

    @app.route(f"{prefix}/profile/me", methods=["PUT"], endpoint="dosen_update_me")
    @auth_required(auth, LECTURER_ONLY)
    def update_own_profile(ctx):
        return success("Profile updated successfully", lecturers.update_own_profile(ctx, json_body()).to_dict())

    @app.route(f"{prefix}/profile/photo", methods=["POST"], endpoint="dosen_profile_photo")
    @auth_required(auth, LECTURER_ONLY)
    def upload_profile_photo(ctx):
        path = save_image(request.files.get("fotoProfil"), upload_root=app.config["UPLOAD_FOLDER"], field="fotoProfil")
        return success("Profile photo uploaded successfully", lecturers.set_profile_photo(ctx, path).to_dict())
