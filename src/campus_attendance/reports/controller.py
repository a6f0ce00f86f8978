from __future__ import annotations

from flask import Flask, request

from ..accounts.guards import ADMIN_ONLY, LECTURER_OR_ADMIN, auth_required
from ..common.responses import success
from ..container import Container
from .export import export_report


def register(app: Flask, container: Container) -> None:
    prefix = f"{app.config['API_PREFIX']}/reports"
    auth = container.auth_service
    reports = container.report_service

    @app.route(f"{prefix}/dashboard", methods=["GET"], endpoint="reports_dashboard")
    @auth_required(auth)
    def dashboard(ctx):
        return success("Dashboard statistics retrieved successfully", reports.dashboard(ctx))

    @app.route(f"{prefix}/class/<int:kelas_id>", methods=["GET"], endpoint="reports_class")
    @auth_required(auth, LECTURER_OR_ADMIN)
    def class_report(ctx, kelas_id: int):
        data = reports.class_report(
            ctx,
            kelas_id,
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
        )
        return success("Class attendance report retrieved successfully", data)

    @app.route(f"{prefix}/mahasiswa/<int:mahasiswa_id>", methods=["GET"], endpoint="reports_student")
    @auth_required(auth, ADMIN_ONLY)
    def student_report(ctx, mahasiswa_id: int):
        data = reports.student_report(
            mahasiswa_id,
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
        )
        return success("Mahasiswa attendance report retrieved successfully", data)

    @app.route(f"{prefix}/export/<string:report_type>/<int:report_id>", methods=["GET"], endpoint="reports_export")
    @auth_required(auth, ADMIN_ONLY)
    def export(ctx, report_type: str, report_id: int):
        result = export_report(
            reports,
            ctx,
            report_type,
            report_id,
            fmt=request.args.get("format"),
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
        )
        if result.format == "json":
            return success("Report exported successfully", result.report)
        return app.response_class(
            result.to_csv_bytes(),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={result.filename}"},
        )
