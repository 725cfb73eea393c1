# Overview: Flask API routes for approvals operations; parses input and returns JSON responses.

# backend/permitflow/routes/approvals.py
"""
Approval queue and statistics.

- GET  /api/approvals                  - Approval records (filter: decision)
- GET  /api/approvals/pending-count    - Number of PENDING permits
- GET  /api/approvals/stats            - Decision counts and approval rate
- GET  /api/approvals/pending-remarks  - Ended permits still missing safety remarks
- POST /api/approvals/auto-close       - Close every permit past its end time
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import PermitflowError
from ..services import lifecycle_service
from ..decorators import require_auth, require_capability


approvals_bp = Blueprint("approvals", __name__, url_prefix="/api/approvals")


@approvals_bp.get("")
@require_auth
@require_capability("can_view_approvals")
def list_approvals_route():
    try:
        approvals = lifecycle_service.list_approvals(decision=request.args.get("decision"))
        return jsonify({"approvals": [a.to_dict(include_permit=True) for a in approvals]}), 200
    except PermitflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list approvals")
        return jsonify({"error": "Internal server error"}), 500


@approvals_bp.get("/pending-count")
@require_auth
@require_capability("can_view_approvals")
def pending_count_route():
    return jsonify({"count": lifecycle_service.pending_count()}), 200


@approvals_bp.get("/stats")
@require_auth
@require_capability("can_view_statistics")
def stats_route():
    try:
        return jsonify(lifecycle_service.approval_stats()), 200
    except Exception:
        current_app.logger.exception("Failed to compute approval stats")
        return jsonify({"error": "Internal server error"}), 500


@approvals_bp.get("/pending-remarks")
@require_auth
@require_capability("can_approve")
def pending_remarks_route():
    permits = lifecycle_service.pending_remarks()
    return jsonify({"permits": [p.to_dict(include_history=False) for p in permits]}), 200


@approvals_bp.post("/auto-close")
@require_auth
@require_capability("can_close_permits")
def auto_close_route():
    """
    Run the auto-close sweep now.

    The background scheduler runs the same sweep; calling this is idempotent.
    """
    try:
        closed = lifecycle_service.auto_close_expired()
        return jsonify({
            "closed": [p.permit_number for p in closed],
            "count": len(closed),
            "message": f"{len(closed)} permit(s) auto-closed"
        }), 200
    except Exception:
        current_app.logger.exception("Failed to auto-close permits")
        return jsonify({"error": "Internal server error"}), 500
