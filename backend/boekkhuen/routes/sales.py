# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/boekkhuen/routes/sales.py
"""Sales API routes. The service layer does all validation and authorization."""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service, credit_service
from ..validation import SaleError, ValidationError, parse_int, parse_sale_query
from ..decorators import require_principal


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _optional_version(data: dict):
    raw = data.get("version_id")
    return None if raw is None else parse_int(raw, "version_id", minimum=1)


def _credit_block(employee_id: int) -> dict:
    summary = credit_service.credit_summary(employee_id)
    block = summary.to_dict()
    block["warning"] = summary.credit_used > summary.credit_limit
    return block


@sales_bp.post("/")
@require_principal
def create_sale_route():
    """
    Record a withdrawal or return bill.

    Body: employee_id (defaults to the caller), type, items[], notes.
    The response carries the employee's live credit; "warning" is set when
    the bill pushed usage past the limit.
    """
    try:
        data = request.get_json(silent=True) or {}
        employee_id = data.get("employee_id")
        employee_id = g.principal.user_id if employee_id is None else parse_int(
            employee_id, "employee_id", minimum=1)

        sale = sales_service.create_sale(
            g.principal,
            employee_id,
            data.get("type"),
            data.get("items"),
            notes=data.get("notes"),
        )

        return jsonify({
            "message": "Sale recorded successfully",
            "sale": sale.to_dict(),
            "credit": _credit_block(sale.employee_id),
        }), 201

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
@require_principal
def list_sales_route():
    """List bills with employee_id, type, settled, date_from, date_to, page, per_page."""
    try:
        query = parse_sale_query(
            request.args.to_dict(),
            default_per_page=current_app.config.get("SALES_PAGE_SIZE", 20),
            max_per_page=current_app.config.get("SALES_PAGE_SIZE_MAX", 100),
        )
        sales, total = sales_service.list_sales(g.principal, query)

        return jsonify({
            "sales": [sale.to_dict() for sale in sales],
            "pagination": {
                "page": query.page,
                "per_page": query.per_page,
                "total": total,
                "pages": (total + query.per_page - 1) // query.per_page,
            },
        }), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_principal
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.principal, sale_id)
        return jsonify({"sale": sale.to_dict()}), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:sale_id>")
@require_principal
def update_sale_route(sale_id: int):
    """
    Replace items and/or payment fields.

    Payment fields (admin only) go under "payment"; "version_id" makes the
    write conditional on the bill not having changed since it was read.
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")

        sale = sales_service.update_sale(
            g.principal,
            sale_id,
            items=data.get("items"),
            payment=data.get("payment"),
            notes=data.get("notes"),
            expected_version=_optional_version(data),
        )

        return jsonify({
            "message": "Sale updated successfully",
            "sale": sale.to_dict(),
            "credit": _credit_block(sale.employee_id),
        }), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/settle")
@require_principal
def settle_sale_route(sale_id: int):
    """Admin settlement: cash/transfer/customer-pending/expense/awaiting-transfer breakdown."""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")

        sale = sales_service.settle_sale(
            g.principal,
            sale_id,
            {k: v for k, v in data.items() if k != "version_id"},
            expected_version=_optional_version(data),
        )
        return jsonify({"message": "Sale settled", "sale": sale.to_dict()}), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to settle sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
@require_principal
def delete_sale_route(sale_id: int):
    try:
        sales_service.delete_sale(g.principal, sale_id)
        return jsonify({"message": "Sale deleted successfully"}), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
