# Overview: Flask API routes for permits operations; parses input and returns JSON responses.

# backend/permitflow/routes/permits.py
"""
Permit API Routes

CRUD:
- GET    /api/permits                 - List permits (requestors see their own)
- GET    /api/permits/work-types      - Work type catalogue
- GET    /api/permits/:id             - Permit with approvals and action history
- POST   /api/permits                 - Submit a permit (PENDING)
- PUT    /api/permits/:id             - Edit a pending permit
- DELETE /api/permits/:id             - Delete a permit

WORKFLOW (each returns the full updated permit):
- POST /api/permits/:id/approve       PENDING -> APPROVED
- POST /api/permits/:id/reject        PENDING -> REJECTED (comment required)
- POST /api/permits/:id/extend        active  -> EXTENDED (extended_until required)
- POST /api/permits/:id/revoke        active  -> REVOKED  (reason required)
- POST /api/permits/:id/reapprove     REVOKED -> REAPPROVED
- POST /api/permits/:id/close         active  -> CLOSED
- POST /api/permits/:id/remarks       safety remarks, status unchanged
- GET  /api/permits/:id/action-history

SECURITY:
- All routes require authentication
- The actor is taken from the authenticated session (g.current_user), NOT
  from the request body
- Capability checks for transitions happen in lifecycle_service, against the
  same table clients use to decide which actions to offer
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PermitflowError
from ..lifecycle import PermitAction
from ..services import lifecycle_service, permit_service
from ..decorators import require_auth


permits_bp = Blueprint("permits", __name__, url_prefix="/api/permits")


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


@permits_bp.get("")
@require_auth
def list_permits_route():
    """
    Query params: status, work_type, search, page (default 1), limit (default 10)
    """
    try:
        result = permit_service.list_permits(
            g.authz,
            status=request.args.get("status"),
            work_type=request.args.get("work_type"),
            search=request.args.get("search"),
            page=_int_arg("page", 1),
            limit=_int_arg("limit", 10),
        )
        return jsonify(result), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list permits")
        return jsonify({"error": "Internal server error"}), 500


@permits_bp.get("/work-types")
@require_auth
def work_types_route():
    return jsonify({"work_types": permit_service.list_work_types()}), 200


@permits_bp.get("/<int:permit_id>")
@require_auth
def get_permit_route(permit_id: int):
    try:
        permit = permit_service.get_permit(permit_id, g.authz)
        return jsonify({"permit": permit.to_dict()}), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get permit")
        return jsonify({"error": "Internal server error"}), 500


@permits_bp.post("")
@require_auth
def create_permit_route():
    """
    Submit a new permit.

    Required: title, location, work_type, start_date, end_date, workers[],
    equipment[] (all mandatory PPE), declaration_accepted=true.

    Error responses:
        400: Validation failed
        403: Missing permits.create
    """
    try:
        data = request.get_json(silent=True) or {}
        permit = permit_service.create_permit(data, user=g.current_user, authz=g.authz)
        return jsonify({
            "permit": permit.to_dict(),
            "message": f"Permit {permit.permit_number} submitted for approval"
        }), 201
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create permit")
        return jsonify({"error": "Internal server error"}), 500


@permits_bp.put("/<int:permit_id>")
@require_auth
def update_permit_route(permit_id: int):
    try:
        data = request.get_json(silent=True) or {}
        permit = permit_service.update_permit(permit_id, data, user=g.current_user, authz=g.authz)
        return jsonify({"permit": permit.to_dict(), "message": "Permit updated"}), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update permit")
        return jsonify({"error": "Internal server error"}), 500


@permits_bp.delete("/<int:permit_id>")
@require_auth
def delete_permit_route(permit_id: int):
    try:
        permit_service.delete_permit(permit_id, user=g.current_user, authz=g.authz)
        return jsonify({"message": "Permit deleted"}), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete permit")
        return jsonify({"error": "Internal server error"}), 500


def _transition(permit_id: int, action: str, **kwargs):
    """
    Apply one workflow action and answer with the full updated permit.

    Error responses:
        400: Missing comment/reason/remarks or bad extension date
        403: Principal lacks the capability for the action
        404: Permit not found
        409: Action not allowed from the permit's current status
    """
    try:
        permit = lifecycle_service.apply_transition(
            permit_id,
            action,
            user=g.current_user,
            authz=g.authz,
            **kwargs,
        )
        return jsonify({
            "permit": permit.to_dict(),
            "message": f"Permit {permit.permit_number} is now {permit.status}"
        }), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to %s permit", action)
        return jsonify({"error": "Internal server error"}), 500


@permits_bp.post("/<int:permit_id>/approve")
@require_auth
def approve_permit_route(permit_id: int):
    data = request.get_json(silent=True) or {}
    return _transition(
        permit_id,
        PermitAction.APPROVE,
        comment=data.get("comment"),
        signature=data.get("signature"),
    )


@permits_bp.post("/<int:permit_id>/reject")
@require_auth
def reject_permit_route(permit_id: int):
    data = request.get_json(silent=True) or {}
    return _transition(permit_id, PermitAction.REJECT, comment=data.get("comment"))


@permits_bp.post("/<int:permit_id>/extend")
@require_auth
def extend_permit_route(permit_id: int):
    data = request.get_json(silent=True) or {}
    return _transition(
        permit_id,
        PermitAction.EXTEND,
        comment=data.get("reason") or data.get("comment"),
        extended_until=data.get("extended_until"),
    )


@permits_bp.post("/<int:permit_id>/revoke")
@require_auth
def revoke_permit_route(permit_id: int):
    data = request.get_json(silent=True) or {}
    return _transition(
        permit_id,
        PermitAction.REVOKE,
        comment=data.get("reason") or data.get("comment"),
    )


@permits_bp.post("/<int:permit_id>/reapprove")
@require_auth
def reapprove_permit_route(permit_id: int):
    data = request.get_json(silent=True) or {}
    return _transition(
        permit_id,
        PermitAction.REAPPROVE,
        comment=data.get("comment"),
        signature=data.get("signature"),
    )


@permits_bp.post("/<int:permit_id>/close")
@require_auth
def close_permit_route(permit_id: int):
    data = request.get_json(silent=True) or {}
    return _transition(
        permit_id,
        PermitAction.CLOSE,
        comment=data.get("comment"),
        closure_checklist=data.get("closure_checklist"),
    )


@permits_bp.post("/<int:permit_id>/remarks")
@require_auth
def add_remarks_route(permit_id: int):
    data = request.get_json(silent=True) or {}
    return _transition(
        permit_id,
        PermitAction.ADD_REMARKS,
        comment=data.get("remarks") or data.get("comment"),
    )


@permits_bp.get("/<int:permit_id>/action-history")
@require_auth
def action_history_route(permit_id: int):
    try:
        permit_service.get_permit(permit_id, g.authz)
        history = lifecycle_service.get_action_history(permit_id)
        return jsonify({"history": [h.to_dict() for h in history]}), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get permit action history")
        return jsonify({"error": "Internal server error"}), 500
