"""Multi-shop admin routes: access requests, grants and cross-shop statistics.

Blueprint: multi_shop_bp
Prefix: /api/multi-shop
"""
from flask import Blueprint, jsonify
from flask_login import current_user

from app import db
from app.errors import ValidationError
from app.models import Shop
from app.routes.auth import api_login_required, roles_required
from app.services import multi_shop_service
from app.services.tenant_service import get_accessible_shop_ids
from app.utils import get_json_data, parse_int

multi_shop_bp = Blueprint('multi_shop', __name__, url_prefix='/api/multi-shop')


# ============================================================================
# Multi-shop admin
# ============================================================================

@multi_shop_bp.route('/shops', methods=['GET'])
@api_login_required
@roles_required('multi_shop_admin')
def accessible_shops():
    """Shops the multi-shop admin can currently switch to (X-Shop-Id)."""
    shop_ids = get_accessible_shop_ids(current_user)
    shops = Shop.query.filter(Shop.id.in_(shop_ids)).order_by(Shop.name).all() if shop_ids else []
    return jsonify([s.to_dict() for s in shops])


@multi_shop_bp.route('/request-access', methods=['POST'])
@api_login_required
@roles_required('multi_shop_admin')
def request_access():
    """Ask a shop owner for access.

    JSON body: {"shopId": 3}
    """
    data = get_json_data()
    shop_id = parse_int(data.get('shopId') or data.get('shop_id'), 'shopId')
    if shop_id is None:
        raise ValidationError('shopId ist erforderlich')
    permission = multi_shop_service.request_access(current_user, shop_id)
    db.session.commit()
    return jsonify({'success': True, 'permission': permission.to_dict()}), 201


@multi_shop_bp.route('/stats', methods=['GET'])
@api_login_required
@roles_required('multi_shop_admin')
def stats():
    """Key figures per accessible shop.

    Usage:
        curl -b cookies.txt http://localhost:5000/api/multi-shop/stats
    """
    shops = multi_shop_service.get_shop_statistics(current_user)
    totals = {
        key: sum(s[key] for s in shops)
        for key in ('open_repairs', 'completed_repairs', 'total_repairs', 'customers', 'employees')
    }
    return jsonify({'shops': shops, 'totals': totals})


# ============================================================================
# Shop owner
# ============================================================================

@multi_shop_bp.route('/permissions', methods=['GET'])
@api_login_required
@roles_required('owner')
def list_permissions():
    """Pending requests and granted accesses for the owner's shop."""
    return jsonify(multi_shop_service.list_for_owner(current_user))


@multi_shop_bp.route('/permissions/<int:id>/approve', methods=['POST'])
@api_login_required
@roles_required('owner')
def approve(id):
    permission = multi_shop_service.approve(id, current_user)
    db.session.commit()
    return jsonify({'success': True, 'permission': permission.to_dict()})


@multi_shop_bp.route('/permissions/<int:id>/deny', methods=['POST'])
@api_login_required
@roles_required('owner')
def deny(id):
    permission = multi_shop_service.deny(id, current_user)
    db.session.commit()
    return jsonify({'success': True, 'permission': permission.to_dict()})


@multi_shop_bp.route('/grant', methods=['POST'])
@api_login_required
@roles_required('owner')
def grant():
    """Grant access to a multi-shop admin by email.

    JSON body: {"email": "admin@kette.at"}
    """
    permission = multi_shop_service.grant_by_email(current_user, get_json_data().get('email'))
    db.session.commit()
    return jsonify({'success': True, 'permission': permission.to_dict()}), 201


@multi_shop_bp.route('/revoke/<int:msa_id>', methods=['POST', 'DELETE'])
@api_login_required
@roles_required('owner')
def revoke(msa_id):
    """Revoke the access of a multi-shop admin. Takes effect on the next request."""
    access = multi_shop_service.revoke(current_user, msa_id)
    db.session.commit()
    return jsonify({'success': True, 'access': access.to_dict()})
