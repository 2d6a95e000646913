from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import bearer_required, client_context, json_body
from ..common.validators import optional_str
from ..container import Container


def register(app: Flask, container: Container) -> None:
    auth_service = container.auth_service
    two_factor = container.two_factor_service
    login_required = bearer_required(auth_service)

    @app.route("/api/auth/register", methods=["POST"], endpoint="auth_register")
    def register_user():
        data = json_body()
        user = auth_service.register(
            optional_str(data, "username") or "",
            optional_str(data, "password") or "",
        )
        return jsonify({"message": "User registered", "user": user.to_dict()}), 201

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        data = json_body()
        result = auth_service.login(
            optional_str(data, "username") or "",
            optional_str(data, "password") or "",
            data.get("otp"),
            client=client_context(),
        )

        if result.mfa_required:
            return jsonify({"message": "MFA required", "user": result.user.to_dict()}), 202

        response = jsonify(
            {
                "message": "Login successful",
                "user": result.user.to_dict(),
                "accessToken": result.access_token,
                "refreshToken": result.refresh_token,
            }
        )
        if result.access_token:
            response.headers["Authorization"] = f"Bearer {result.access_token}"
        if result.refresh_token:
            response.headers["Refresh-Token"] = result.refresh_token
        return response, 200

    @app.route("/api/auth/refresh-token", methods=["POST"], endpoint="auth_refresh_token")
    def refresh_token():
        data = json_body()
        pair = auth_service.rotate_tokens(optional_str(data, "refreshToken") or "")
        return jsonify(
            {
                "token": pair.access_token,
                "refreshToken": pair.refresh_token,
                "message": "Token refreshed successfully",
            }
        )

    @app.route("/api/user/logout", methods=["POST"], endpoint="user_logout")
    @login_required
    def logout(current_user_id: str):
        if auth_service.logout(current_user_id):
            return jsonify({"message": "Logged out successfully"})
        return jsonify({"error": "Logout unavailable"}), 503

    @app.route("/api/user/2fa/setup", methods=["POST"], endpoint="two_factor_setup")
    @login_required
    def two_factor_setup(current_user_id: str):
        return jsonify(two_factor.setup(current_user_id).to_dict())

    @app.route("/api/user/2fa/verify", methods=["POST"], endpoint="two_factor_verify")
    @login_required
    def two_factor_verify(current_user_id: str):
        if two_factor.verify_and_enable(current_user_id, json_body().get("code")):
            return jsonify({"message": "2FA enabled successfully"})
        return jsonify({"error": "Invalid verification code"}), 400

    @app.route("/api/user/2fa/disable", methods=["POST"], endpoint="two_factor_disable")
    @login_required
    def two_factor_disable(current_user_id: str):
        if two_factor.disable(current_user_id, json_body().get("code")):
            return jsonify({"message": "2FA disabled successfully"})
        return jsonify({"error": "Invalid verification code"}), 400
