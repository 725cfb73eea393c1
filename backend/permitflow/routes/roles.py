# Overview: Flask API routes for roles operations; parses input and returns JSON responses.

# backend/permitflow/routes/roles.py
"""
Role management.

- GET    /api/roles               - Roles with user counts
- GET    /api/roles/permissions   - Permission catalogue (flat + grouped by module)
- GET    /api/roles/:id           - One role
- POST   /api/roles               - Create a custom role
- PUT    /api/roles/:id           - Edit display fields / permission bundle
- DELETE /api/roles/:id           - Delete a custom role with no users
- POST   /api/roles/assign        - Assign a role to a user

System roles (ADMIN, FIREMAN, REQUESTOR) can be inspected but not deleted,
renamed, or have their permission bundle edited here.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PermitflowError, ValidationFailed
from ..services import permission_service, role_service
from ..decorators import require_auth, require_capability


roles_bp = Blueprint("roles", __name__, url_prefix="/api/roles")


@roles_bp.get("")
@require_auth
@require_capability("can_view_roles")
def list_roles_route():
    include_inactive = request.args.get("include_inactive", "").lower() in ("1", "true", "yes")
    roles = role_service.list_roles(include_inactive=include_inactive)
    return jsonify({"roles": [r.to_dict(include_user_count=True) for r in roles]}), 200


@roles_bp.get("/permissions")
@require_auth
@require_capability("can_view_roles")
def permission_catalogue_route():
    return jsonify(permission_service.get_permission_catalogue()), 200


@roles_bp.get("/<int:role_id>")
@require_auth
@require_capability("can_view_roles")
def get_role_route(role_id: int):
    try:
        role = role_service.get_role(role_id)
        return jsonify({"role": role.to_dict(include_user_count=True)}), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code


@roles_bp.post("")
@require_auth
@require_capability("can_create_roles")
def create_role_route():
    """
    Request body:
    - name: str (required, upper-cased)
    - display_name: str (required)
    - description: str (optional)
    - permissions: list[str] (permission keys)
    - ui_config: dict (sidebarColor, accentColor, showAllMenus, ...)
    """
    try:
        data = request.get_json(silent=True) or {}
        role = role_service.create_role(data, actor_id=g.current_user.id)
        return jsonify({"role": role.to_dict(include_user_count=True), "message": "Role created successfully"}), 201
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.put("/<int:role_id>")
@require_auth
@require_capability("can_edit_roles")
def update_role_route(role_id: int):
    try:
        data = request.get_json(silent=True) or {}
        role = role_service.update_role(role_id, data, actor_id=g.current_user.id)
        return jsonify({"role": role.to_dict(include_user_count=True), "message": "Role updated successfully"}), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.delete("/<int:role_id>")
@require_auth
@require_capability("can_delete_roles")
def delete_role_route(role_id: int):
    try:
        role_service.delete_role(role_id, actor_id=g.current_user.id)
        return jsonify({"message": "Role deleted successfully"}), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.post("/assign")
@require_auth
@require_capability("can_assign_roles")
def assign_role_route():
    """
    Request body:
    - user_id: int (required)
    - role_id: int (required)
    """
    try:
        data = request.get_json(silent=True) or {}
        user_id = data.get("user_id")
        role_id = data.get("role_id")
        if not user_id or not role_id:
            raise ValidationFailed("user_id and role_id required")

        user = role_service.assign_role(int(user_id), int(role_id), actor_id=g.current_user.id)
        return jsonify({"user": user.to_dict(), "message": "Role assigned successfully"}), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except (TypeError, ValueError):
        return jsonify({"error": "user_id and role_id must be integers"}), 400
    except Exception:
        current_app.logger.exception("Failed to assign role")
        return jsonify({"error": "Internal server error"}), 500
