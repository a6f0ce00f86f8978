from __future__ import annotations

from flask import Flask, request

from ..accounts.guards import ADMIN_ONLY, auth_required
from ..common.http import client_ip, json_body
from ..common.pagination import PageRequest
from ..common.responses import success
from ..common.validators import as_bool, optional_text
from ..container import Container


def register(app: Flask, container: Container) -> None:
    prefix = f"{app.config['API_PREFIX']}/devices"
    auth = container.auth_service
    devices = container.device_service

    @app.route(prefix, methods=["GET"], endpoint="devices_list")
    @auth_required(auth, ADMIN_ONLY)
    def list_devices(ctx):
        items, page = devices.list(
            PageRequest.from_args(request.args),
            status=optional_text(request.args.get("status")),
            is_active=as_bool(request.args.get("isActive")),
        )
        return success("Devices retrieved successfully", items, page=page)

    @app.route(f"{prefix}/stats", methods=["GET"], endpoint="devices_stats")
    @auth_required(auth, ADMIN_ONLY)
    def device_stats(ctx):
        return success("Device statistics retrieved successfully", devices.stats())

    @app.route(f"{prefix}/<int:device_id>", methods=["GET"], endpoint="devices_get")
    @auth_required(auth, ADMIN_ONLY)
    def get_device(ctx, device_id: int):
        return success("Device retrieved successfully", devices.get(device_id))

    @app.route(prefix, methods=["POST"], endpoint="devices_create")
    @auth_required(auth, ADMIN_ONLY)
    def create_device(ctx):
        return success("Device created successfully", devices.create(json_body()), 201)

    @app.route(f"{prefix}/<int:device_id>", methods=["PUT"], endpoint="devices_update")
    @auth_required(auth, ADMIN_ONLY)
    def update_device(ctx, device_id: int):
        return success("Device updated successfully", devices.update(device_id, json_body()))

    @app.route(f"{prefix}/<int:device_id>", methods=["DELETE"], endpoint="devices_delete")
    @auth_required(auth, ADMIN_ONLY)
    def delete_device(ctx, device_id: int):
        devices.delete(device_id)
        return success("Device deleted successfully")

    # Called by the camera itself; the device id in the path is its credential.
    @app.route(f"{prefix}/<string:external_id>/heartbeat", methods=["POST"], endpoint="devices_heartbeat")
    def device_heartbeat(external_id: str):
        return success("Heartbeat received", devices.heartbeat(external_id, ip_address=client_ip()))
