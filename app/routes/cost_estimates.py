"""Cost estimate routes (JSON API, print view, PDF).

Blueprint: cost_estimates_bp
Prefix: /api/cost-estimates
"""
import io

from flask import Blueprint, Response, g, jsonify, request, send_file
from flask_login import current_user

from app import db
from app.errors import ValidationError
from app.models import CostEstimate, CostEstimateStatus
from app.routes.auth import STAFF_ROLES, api_login_required, roles_required, shop_required
from app.services import cost_estimate_service
from app.services.logging_service import log_event
from app.services.pdf_service import build_cost_estimate_pdf
from app.services.print_service import render_cost_estimate
from app.services.tenant_service import get_for_shop, scoped
from app.utils import get_json_data

cost_estimates_bp = Blueprint('cost_estimates', __name__, url_prefix='/api/cost-estimates')


def _detail(estimate: CostEstimate) -> dict:
    data = estimate.to_dict(include_items=True)
    data['customer'] = estimate.customer.to_dict() if estimate.customer else None
    return data


@cost_estimates_bp.route('', methods=['GET'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def list_estimates():
    """List cost estimates of the shop.

    Query params:
        status: Filter by status (offen, gesendet, angenommen, abgelehnt, abgelaufen)
        customer_id: Filter by customer
    """
    query = scoped(CostEstimate.query, CostEstimate, g.shop_id)
    status = request.args.get('status')
    if status:
        if status not in CostEstimateStatus.values():
            raise ValidationError(f'Ungültiger Status: {status}')
        query = query.filter(CostEstimate.status == status)
    customer_id = request.args.get('customer_id', type=int)
    if customer_id:
        query = query.filter(CostEstimate.customer_id == customer_id)
    estimates = query.order_by(CostEstimate.created_at.desc()).all()
    return jsonify([e.to_dict() for e in estimates])


@cost_estimates_bp.route('', methods=['POST'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def create_estimate():
    """Create a cost estimate (optionally with items). Returns 201."""
    estimate = cost_estimate_service.create_estimate(g.shop_id, get_json_data(), current_user)
    db.session.commit()
    return jsonify(_detail(estimate)), 201


@cost_estimates_bp.route('/<int:id>', methods=['GET'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def get_estimate(id):
    estimate = get_for_shop(CostEstimate, id, g.shop_id, current_user)
    db.session.commit()
    return jsonify(_detail(estimate))


@cost_estimates_bp.route('/<int:id>', methods=['PATCH', 'PUT'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def update_estimate(id):
    """Change fields or status of a cost estimate."""
    estimate = get_for_shop(CostEstimate, id, g.shop_id, current_user)
    cost_estimate_service.update_estimate(estimate, get_json_data())
    log_event('kostenvoranschlaege', 'kostenvoranschlag_geaendert',
              details=estimate.reference_number, entity_type='CostEstimate',
              entity_id=estimate.id, shop_id=g.shop_id)
    db.session.commit()
    return jsonify(_detail(estimate))


@cost_estimates_bp.route('/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def delete_estimate(id):
    estimate = get_for_shop(CostEstimate, id, g.shop_id, current_user)
    log_event('kostenvoranschlaege', 'kostenvoranschlag_geloescht',
              details=estimate.reference_number, wichtigkeit='mittel',
              entity_type='CostEstimate', entity_id=estimate.id, shop_id=g.shop_id)
    db.session.delete(estimate)
    db.session.commit()
    return jsonify({'success': True})


# ============================================================================
# Items
# ============================================================================

@cost_estimates_bp.route('/<int:id>/items', methods=['GET'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def list_items(id):
    estimate = get_for_shop(CostEstimate, id, g.shop_id, current_user)
    return jsonify([item.to_dict() for item in estimate.items])


@cost_estimates_bp.route('/<int:id>/items', methods=['POST'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def add_item(id):
    """Add a line item and recompute the totals.

    JSON body: {"description": "Display", "quantity": 1, "unit_price": "149.00"}
    """
    estimate = get_for_shop(CostEstimate, id, g.shop_id, current_user)
    item = cost_estimate_service.add_item(estimate, get_json_data())
    cost_estimate_service.recalculate(estimate)
    db.session.commit()
    return jsonify({'success': True, 'item': item.to_dict(), 'estimate': estimate.to_dict()}), 201


@cost_estimates_bp.route('/<int:id>/items/<int:item_id>', methods=['DELETE'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def delete_item(id, item_id):
    estimate = get_for_shop(CostEstimate, id, g.shop_id, current_user)
    cost_estimate_service.remove_item(estimate, item_id)
    cost_estimate_service.recalculate(estimate)
    db.session.commit()
    return jsonify({'success': True, 'estimate': estimate.to_dict(include_items=True)})


# ============================================================================
# Conversion & Documents
# ============================================================================

@cost_estimates_bp.route('/<int:id>/convert-to-repair', methods=['POST'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def convert_to_repair(id):
    """Create a repair from the estimate (only once). Returns 201."""
    estimate = get_for_shop(CostEstimate, id, g.shop_id, current_user)
    repair = cost_estimate_service.convert_to_repair(estimate, current_user)
    db.session.commit()
    return jsonify({
        'success': True,
        'repair': repair.to_dict(include_customer=True),
        'estimate': estimate.to_dict(),
    }), 201


@cost_estimates_bp.route('/<int:id>/print', methods=['GET'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def print_estimate(id):
    """Cost estimate as printable HTML."""
    estimate = get_for_shop(CostEstimate, id, g.shop_id, current_user)
    return Response(render_cost_estimate(estimate), mimetype='text/html')


@cost_estimates_bp.route('/<int:id>/pdf', methods=['GET'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def estimate_pdf(id):
    """Cost estimate as vector PDF."""
    estimate = get_for_shop(CostEstimate, id, g.shop_id, current_user)
    return send_file(
        io.BytesIO(build_cost_estimate_pdf(estimate)),
        mimetype='application/pdf',
        as_attachment=request.args.get('download') == '1',
        download_name=f'{estimate.reference_number}.pdf'
    )
