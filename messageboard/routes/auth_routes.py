from flask import Blueprint, request, jsonify
from flask_jwt_extended import (
    get_jwt,
    get_jwt_identity,
    jwt_required,
    set_access_cookies,
    set_refresh_cookies,
)

from messageboard.services.backend import get_backend


auth_bp = Blueprint("auth", __name__)


def _credentials():
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    if request.form:
        return request.form
    return None


@auth_bp.route("/login", methods=["GET"])
def login_page():
    return jsonify({"message": "Sign in to continue"}), 200


@auth_bp.route("/register", methods=["POST"])
def register():
    data = _credentials()
    if data is None:
        return jsonify({"error": "Invalid JSON body"}), 400

    try:
        user = get_backend().auth.register(
            data.get("email"),
            data.get("password"),
        )
        return jsonify({"message": "User registered", "id": user.id}), 201
    except ValueError as e:
        return jsonify({"error": str(e)}), 400


@auth_bp.route("/login", methods=["POST"])
def login():
    data = _credentials()
    if data is None:
        return jsonify({"error": "Invalid JSON body"}), 400

    try:
        tokens = get_backend().auth.login(
            data.get("email"),
            data.get("password"),
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 401

    response = jsonify(tokens)
    set_access_cookies(response, tokens["access_token"])
    set_refresh_cookies(response, tokens["refresh_token"])
    return response, 200


@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh_token():
    user_id = get_jwt_identity()
    tokens = get_backend().auth.refresh_access_token(user_id, get_jwt().get("email"))
    response = jsonify(tokens)
    set_access_cookies(response, tokens["access_token"])
    return response, 200
