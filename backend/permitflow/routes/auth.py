# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/permitflow/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Session management with token-based auth
- Failed logins recorded in the audit log
- Self-registration is disabled; accounts are created via CLI or by admins

The /me payload is the Principal snapshot clients evaluate capabilities on.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _principal_payload(user) -> dict:
    authz = permission_service.get_authorization(user)
    payload = authz.principal.to_dict()
    payload["capabilities"] = authz.capabilities()
    return payload


@auth_bp.post("/register")
def register_route():
    return jsonify({
        "error": "Self-registration is disabled. Contact an administrator to create an account."
    }), 403


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email") or data.get("username")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(email, password)

        if not user:
            permission_service.log_audit_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource="/api/auth/login",
                action="LOGIN",
                reason=f"Invalid credentials for {email}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )

        return jsonify({
            "user": _principal_payload(user),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.session_token, reason="User logout")
        permission_service.log_audit_event(
            user_id=g.current_user.id,
            event_type="LOGOUT",
            success=True,
            resource="/api/auth/logout",
            action="LOGOUT",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """
    Current principal: identity, canonical role, effective role, granted
    permission keys, active flag, role UI config and evaluated capabilities.
    """
    return jsonify({"user": _principal_payload(g.current_user)}), 200
