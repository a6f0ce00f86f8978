from __future__ import annotations

from flask import Flask

from ..common.http import json_body
from ..common.responses import success
from ..container import Container
from .guards import ADMIN_ONLY, auth_required


def register(app: Flask, container: Container) -> None:
    prefix = app.config["API_PREFIX"]
    auth = container.auth_service

    @app.route(f"{prefix}/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        body = json_body()
        result = auth.authenticate(body.get("username") or body.get("email") or "", body.get("password") or "")
        user = result.account.to_dict()
        user["profile"] = result.profile
        return success(
            "Login successful",
            {"user": user, "token": result.token, "refreshToken": result.refresh_token},
        )

    @app.route(f"{prefix}/auth/refresh", methods=["POST"], endpoint="auth_refresh")
    def refresh():
        token = auth.refresh(json_body().get("refreshToken") or "")
        return success("Token refreshed successfully", {"token": token})

    @app.route(f"{prefix}/auth/register", methods=["POST"], endpoint="auth_register")
    @auth_required(auth, ADMIN_ONLY)
    def register_account(ctx):
        body = json_body()
        account = auth.register(
            username=body.get("username"),
            email=body.get("email"),
            password=body.get("password") or "",
            role=body.get("role"),
            profile_id=body.get("profileId"),
            profile_data=body.get("profileData") or None,
        )
        return success("User registered successfully", account.to_dict(), 201)

    @app.route(f"{prefix}/auth/me", methods=["GET"], endpoint="auth_me")
    @auth_required(auth, allow_pending_password=True)
    def me(ctx):
        return success("Profile retrieved successfully", auth.current_account(ctx))

    @app.route(f"{prefix}/auth/password", methods=["PUT"], endpoint="auth_change_password")
    @auth_required(auth, allow_pending_password=True)
    def change_password(ctx):
        body = json_body()
        auth.change_password(
            ctx,
            current_password=body.get("currentPassword") or "",
            new_password=body.get("newPassword") or "",
        )
        return success("Password changed successfully")

    @app.route(f"{prefix}/auth/logout", methods=["POST"], endpoint="auth_logout")
    @auth_required(auth, allow_pending_password=True)
    def logout(ctx):
        # Tokens are stateless; the client drops its copy.
        return success("Logout successful")
