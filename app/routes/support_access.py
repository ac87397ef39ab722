"""Support access routes (DSGVO approval workflow).

Blueprint: support_access_bp
Prefix: /api/support-access

A superadmin asks for access to a shop, the shop owner approves or
denies. Approved access ends after SUPPORT_ACCESS_MINUTES or on revoke.
"""
from flask import Blueprint, jsonify, request
from flask_login import current_user

from app import db
from app.errors import ValidationError
from app.routes.auth import api_login_required, roles_required
from app.services import support_access_service
from app.utils import get_json_data, parse_bool, parse_int

support_access_bp = Blueprint('support_access', __name__, url_prefix='/api/support-access')


@support_access_bp.route('/request', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def request_access():
    """Request access to a shop.

    JSON body: {"shopId": 3, "reason": "Fehleranalyse Ticket 42", "accessType": "all"}

    Usage:
        curl -X POST -b cookies.txt -H 'Content-Type: application/json' \\
             -d '{"shopId": 3, "reason": "Fehleranalyse"}' http://localhost:5000/api/support-access/request
    """
    data = get_json_data()
    shop_id = parse_int(data.get('shopId') or data.get('shop_id'), 'shopId')
    if shop_id is None:
        raise ValidationError('shopId ist erforderlich')
    entry = support_access_service.request_access(
        current_user, shop_id, data.get('reason'), data.get('accessType') or 'all'
    )
    db.session.commit()
    return jsonify({'success': True, 'request': entry.to_dict()}), 201


@support_access_bp.route('/requests', methods=['GET'])
@api_login_required
@roles_required('owner', 'superadmin')
def list_requests():
    """Requests of the owner's shop, or the superadmin's own requests.

    Query params:
        pending: 1 to list only open requests (owner)
    """
    if current_user.is_superadmin:
        entries = support_access_service.list_for_superadmin(current_user.id)
    else:
        pending_only = parse_bool(request.args.get('pending', '0'))
        entries = support_access_service.list_for_shop(current_user.shop_id, pending_only)
    return jsonify([e.to_dict() for e in entries])


@support_access_bp.route('/requests/<int:id>/approve', methods=['POST'])
@api_login_required
@roles_required('owner')
def approve(id):
    entry = support_access_service.approve(id, current_user)
    db.session.commit()
    return jsonify({'success': True, 'request': entry.to_dict()})


@support_access_bp.route('/requests/<int:id>/deny', methods=['POST'])
@api_login_required
@roles_required('owner')
def deny(id):
    entry = support_access_service.deny(id, current_user)
    db.session.commit()
    return jsonify({'success': True, 'request': entry.to_dict()})


@support_access_bp.route('/requests/<int:id>/revoke', methods=['POST'])
@api_login_required
@roles_required('owner', 'superadmin')
def revoke(id):
    """End a pending or running access (owner of the shop or requesting superadmin)."""
    entry = support_access_service.end_access(id, current_user)
    db.session.commit()
    return jsonify({'success': True, 'request': entry.to_dict()})
