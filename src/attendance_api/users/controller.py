from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import bearer_required, json_body
from ..common.validators import optional_str
from ..container import Container
from .service import AdminUserUpdate, ProfileUpdate


def register(app: Flask, container: Container) -> None:
    user_service = container.user_service
    login_required = bearer_required(container.auth_service)

    @app.route("/api/user/profile", methods=["GET"], endpoint="user_profile")
    @login_required
    def get_profile(current_user_id: str):
        return jsonify({"user": user_service.get_profile(current_user_id).to_dict()})

    @app.route("/api/user/profile", methods=["PUT"], endpoint="user_profile_update")
    @login_required
    def update_profile(current_user_id: str):
        user = user_service.update_profile(current_user_id, ProfileUpdate.from_dict(json_body()))
        return jsonify({"user": user.to_dict()})

    @app.route("/api/user/password", methods=["PUT"], endpoint="user_password_update")
    @login_required
    def update_password(current_user_id: str):
        data = json_body()
        user_service.change_password(
            current_user_id,
            optional_str(data, "currentPassword"),
            optional_str(data, "newPassword"),
            optional_str(data, "confirmPassword"),
        )
        return jsonify({"message": "Password updated successfully"})

    @app.route("/api/admin/users", methods=["GET"], endpoint="admin_users")
    @login_required
    def list_users(current_user_id: str):
        return jsonify([u.to_dict() for u in user_service.list_users(current_user_id)])

    @app.route("/api/admin/users/<user_id>", methods=["GET"], endpoint="admin_user_detail")
    @login_required
    def get_user(user_id: str, current_user_id: str):
        return jsonify(user_service.get_user(current_user_id, user_id).to_dict())

    @app.route("/api/admin/users/<user_id>", methods=["PUT"], endpoint="admin_user_update")
    @login_required
    def update_user(user_id: str, current_user_id: str):
        changes = AdminUserUpdate.from_dict(json_body())
        return jsonify(user_service.admin_update_user(current_user_id, user_id, changes).to_dict())

    @app.route("/api/admin/users/<user_id>", methods=["DELETE"], endpoint="admin_user_disable")
    @login_required
    def disable_user(user_id: str, current_user_id: str):
        user = user_service.disable_user(current_user_id, user_id)
        return jsonify({"message": "User disabled", "user": user.to_dict()})
