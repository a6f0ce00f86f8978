from __future__ import annotations

from flask import Flask, request

from ..accounts.guards import ADMIN_ONLY, auth_required
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import success
from ..common.validators import as_int, optional_text
from ..container import Container


def register(app: Flask, container: Container) -> None:
    prefix = f"{app.config['API_PREFIX']}/mata-kuliah"
    auth = container.auth_service
    courses = container.course_service

    @app.route(prefix, methods=["GET"], endpoint="mata_kuliah_list")
    @auth_required(auth)
    def list_mata_kuliah(ctx):
        page = courses.list(
            PageRequest.from_args(request.args),
            jurusan=optional_text(request.args.get("jurusan")),
            semester=as_int(request.args.get("semester")),
        )
        return success("Mata kuliah retrieved successfully", [c.to_dict() for c in page.items], page=page)

    @app.route(f"{prefix}/<int:course_id>", methods=["GET"], endpoint="mata_kuliah_get")
    @auth_required(auth)
    def get_mata_kuliah(ctx, course_id: int):
        return success("Mata kuliah retrieved successfully", courses.require(course_id).to_dict())

    @app.route(prefix, methods=["POST"], endpoint="mata_kuliah_create")
    @auth_required(auth, ADMIN_ONLY)
    def create_mata_kuliah(ctx):
        return success("Mata kuliah created successfully", courses.create(json_body()).to_dict(), 201)

    @app.route(f"{prefix}/<int:course_id>", methods=["PUT"], endpoint="mata_kuliah_update")
    @auth_required(auth, ADMIN_ONLY)
    def update_mata_kuliah(ctx, course_id: int):
        return success("Mata kuliah updated successfully", courses.update(course_id, json_body()).to_dict())

    @app.route(f"{prefix}/<int:course_id>", methods=["DELETE"], endpoint="mata_kuliah_delete")
    @auth_required(auth, ADMIN_ONLY)
    def delete_mata_kuliah(ctx, course_id: int):
        courses.delete(course_id)
        return success("Mata kuliah deleted successfully")
