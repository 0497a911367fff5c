"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh-token
- POST /auth/logout
- POST /auth/logout-all
- GET  /auth/me
- GET  /auth/sessions
- POST /auth/deactivate

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens (JWTs signed with HS256) and opaque refresh tokens
- Stores only the SHA-256 of each refresh token, one active row per (user, device)
- Rotates refresh tokens on every use so each one works exactly once
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort, current_app

from models.schemas.user import (
    RegisterSchema,
    LoginSchema,
    RefreshTokenSchema,
    LogoutSchema,
    UserOutSchema,
)
from services.session_manager import SessionManager
from utils.decorators import jwt_required
from .errors import outcome_error

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_token_schema = RefreshTokenSchema()
logout_schema = LogoutSchema()
user_out_schema = UserOutSchema()


def session_manager() -> SessionManager:
    return current_app.extensions["session_manager"]


def outcome_response(outcome):
    if not outcome.succeeded:
        return outcome_error(outcome)
    body = {"message": outcome.message}
    if outcome.data is not None:
        body["data"] = outcome.data
    return jsonify(body), 200


@bp.post("/register")
def register():
    """
    register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      200:
        description: Created
      400:
        description: Validation error or email already registered
    """
    payload = request.get_json(silent=True) or {}
    data = register_schema.load(payload)
    outcome = session_manager().register(data["name"], data["email"], data["password"])
    return outcome_response(outcome)


@bp.post("/login")
def login():
    """
    Login: return accessToken, refreshToken and deviceId
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
             deviceId: { type: string }
    responses:
      200:
        description: OK (returns tokens; keep deviceId for later calls)
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)
    outcome = session_manager().login(data["email"], data["password"], data.get("device_id"))
    return outcome_response(outcome)


@bp.post("/refresh-token")
def refresh_token():
    """
    Use refresh token to obtain new access and refresh tokens (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns a new token pair)
      400:
        description: Empty refresh token
      401:
        description: Invalid, expired or revoked refresh token
      409:
        description: Concurrent refresh, retry
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_token_schema.load(payload)
    return outcome_response(session_manager().refresh(data["refresh_token"]))


@bp.post("/logout")
@jwt_required()
def logout():
    """
    logout: revokes the refresh token of one device
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             deviceId: { type: string }
    responses:
      200:
        description: OK
      400:
        description: No active session for this device
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True) or {}
    data = logout_schema.load(payload)
    return outcome_response(session_manager().logout(g.current_user_id, data["device_id"].strip()))


@bp.post("/logout-all")
@jwt_required()
def logout_all():
    """
    logout everywhere: revokes the refresh tokens of every device
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      400:
        description: No active sessions
      401:
        description: Unauthorized
    """
    return outcome_response(session_manager().logout_all(g.current_user_id))


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User no longer exists
    """
    user = session_manager().get_user(g.current_user_id)
    if user is None:
        abort(404)
    return jsonify(
        {
            "data": user_out_schema.dump(user)
        }
    ), 200


@bp.get("/sessions")
@jwt_required()
def sessions():
    """
    List the caller's active devices.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return outcome_response(session_manager().list_sessions(g.current_user_id))


@bp.post("/deactivate")
@jwt_required()
def deactivate():
    """
    Deactivate the caller's account and revoke all of its sessions.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User not found
    """
    return outcome_response(session_manager().deactivate_user(g.current_user_id))
