# Overview: Flask API routes for live employee credit.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import credit_service
from ..validation import SaleError, ValidationError, parse_int
from ..decorators import require_principal, require_admin


credit_bp = Blueprint("credit", __name__, url_prefix="/api/credit")


@credit_bp.get("/<int:employee_id>")
@require_principal
def get_credit_route(employee_id: int):
    """Employees may read their own credit; admins anyone's."""
    if not g.principal.is_admin and g.principal.user_id != employee_id:
        return jsonify({"error": "Forbidden - You can only access your own credit data"}), 403

    try:
        summary = credit_service.credit_summary(employee_id)
        return jsonify({"employee_id": employee_id, **summary.to_dict()}), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load credit summary")
        return jsonify({"error": "Internal server error"}), 500


@credit_bp.get("/")
@require_principal
@require_admin
def list_credit_route():
    """
    Credit for many employees at once (?ids=1,2,3); all active employees
    when ids is omitted.
    """
    try:
        raw_ids = request.args.get("ids")
        if raw_ids:
            ids = [parse_int(part, "ids", minimum=1) for part in raw_ids.split(",") if part.strip()]
            if not ids:
                raise ValidationError("ids must list at least one employee id")
        else:
            ids = credit_service.active_employee_ids()

        summaries = credit_service.credit_summary_batch(ids)
        return jsonify({
            "credits": [
                {"employee_id": employee_id, **summary.to_dict()}
                for employee_id, summary in sorted(summaries.items())
            ]
        }), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load credit summaries")
        return jsonify({"error": "Internal server error"}), 500
