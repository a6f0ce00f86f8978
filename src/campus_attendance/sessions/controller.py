from __future__ import annotations

from flask import Flask, request

from ..accounts.guards import LECTURER_OR_ADMIN, auth_required
from ..common.http import client_ip, json_body
from ..common.responses import success
from ..container import Container


def register(app: Flask, container: Container) -> None:
    prefix = f"{app.config['API_PREFIX']}/face-recognition"
    auth = container.auth_service
    sessions = container.session_service

    @app.route(f"{prefix}/session/start", methods=["POST"], endpoint="session_start")
    @auth_required(auth, LECTURER_OR_ADMIN)
    def start_session(ctx):
        session = sessions.start_session(ctx, json_body())
        return success("Attendance session started successfully", sessions.start_payload(session), 201)

    @app.route(f"{prefix}/session/<int:session_id>/stop", methods=["POST"], endpoint="session_stop")
    @auth_required(auth, LECTURER_OR_ADMIN)
    def stop_session(ctx, session_id: int):
        session = sessions.stop_session(ctx, session_id)
        return success("Attendance session stopped successfully", session.to_dict())

    # Device-originated; no user token.
    @app.route(f"{prefix}/scan", methods=["POST"], endpoint="session_scan")
    def scan_face():
        body = json_body()
        outcome = sessions.check_in(
            device_external_id=body.get("device_id"),
            image_base64=body.get("image_base64"),
            ip_address=client_ip(),
            user_agent=request.headers.get("User-Agent"),
        )
        return success(outcome.message, outcome.data)

    @app.route(f"{prefix}/session/<int:session_id>/manual", methods=["POST"], endpoint="session_manual")
    @auth_required(auth, LECTURER_OR_ADMIN)
    def mark_manual(ctx, session_id: int):
        record = sessions.mark_manual(ctx, session_id, json_body())
        return success("Manual attendance marked successfully", record.to_dict(), 201)

    @app.route(f"{prefix}/sessions/active", methods=["GET"], endpoint="session_active")
    @auth_required(auth, LECTURER_OR_ADMIN)
    def active_sessions(ctx):
        return success("Active sessions retrieved successfully", sessions.list_active(ctx))

    @app.route(f"{prefix}/session/<int:session_id>/attendance", methods=["GET"], endpoint="session_attendance")
    @auth_required(auth)
    def session_attendance(ctx, session_id: int):
        return success("Session attendance retrieved successfully", sessions.session_attendance(session_id))
