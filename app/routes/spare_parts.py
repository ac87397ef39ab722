"""Spare part routes (JSON API).

Blueprint: spare_parts_bp
Prefix: /api

Every change recomputes the status of the affected repair and notifies
the shop's connected clients.
"""
from flask import Blueprint, g, jsonify, request
from flask_login import current_user

from app import db
from app.errors import ValidationError
from app.models import Repair, SparePart
from app.routes.auth import api_login_required, shop_required
from app.services import repair_service
from app.services.broadcast_service import (
    broadcast_spare_part_update, get_broadcaster, spare_part_message
)
from app.services.spare_part_service import (
    bulk_update_status, create_spare_part, recompute_repair_status, update_spare_part,
)
from app.services.tenant_service import get_for_shop, scoped
from app.utils import get_json_data, parse_bool

spare_parts_bp = Blueprint('spare_parts', __name__, url_prefix='/api')


def _recompute(repairs) -> list:
    """Recompute the status of the given repairs. Returns status change results."""
    results = []
    for repair in repairs:
        old_status = recompute_repair_status(repair, updated_by=current_user.username)
        if old_status is not None:
            results.append(repair_service.StatusChangeResult(repair=repair, old_status=old_status))
    return results


def _notify(parts, results) -> None:
    """Broadcast part and repair changes after commit."""
    for part in parts:
        broadcast_spare_part_update(part, current_user.username)
    for result in results:
        repair_service.notify_status_change(result, current_user.username)


@spare_parts_bp.route('/spare-parts', methods=['GET'])
@api_login_required
@shop_required
def list_spare_parts():
    """List spare parts of the shop.

    Query params:
        archived: 0 (default) for active parts, 1 for archived parts
        status: Filter by part status

    Usage:
        curl -b cookies.txt 'http://localhost:5000/api/spare-parts?archived=0'
    """
    archived = parse_bool(request.args.get('archived', '0'))
    query = scoped(SparePart.query, SparePart, g.shop_id).filter(SparePart.archived == archived)
    status = request.args.get('status')
    if status:
        query = query.filter(SparePart.status == status)
    parts = query.order_by(SparePart.created_at.desc()).all()

    result = []
    for part in parts:
        data = part.to_dict()
        data['order_code'] = part.repair.order_code
        data['device'] = part.repair.device_label
        result.append(data)
    return jsonify(result)


@spare_parts_bp.route('/repairs/<int:repair_id>/spare-parts', methods=['GET'])
@api_login_required
@shop_required
def repair_spare_parts(repair_id):
    """Spare parts of one repair (including archived)."""
    repair = get_for_shop(Repair, repair_id, g.shop_id, current_user)
    parts = repair.spare_parts.order_by(SparePart.id).all()
    return jsonify([p.to_dict() for p in parts])


@spare_parts_bp.route('/repairs/<int:repair_id>/spare-parts', methods=['POST'])
@api_login_required
@shop_required
def create_part(repair_id):
    """Add a spare part to a repair. Returns 201."""
    repair = get_for_shop(Repair, repair_id, g.shop_id, current_user)
    part = create_spare_part(repair, get_json_data())
    results = _recompute([repair])
    db.session.commit()
    _notify([part], results)
    return jsonify({'success': True, 'spare_part': part.to_dict(), 'repair_status': repair.status}), 201


@spare_parts_bp.route('/spare-parts/<int:id>', methods=['PATCH', 'PUT'])
@api_login_required
@shop_required
def update_part(id):
    """Change a spare part (status, archive flag, fields)."""
    part = get_for_shop(SparePart, id, g.shop_id, current_user)
    update_spare_part(part, get_json_data())
    results = _recompute([part.repair])
    db.session.commit()
    _notify([part], results)
    return jsonify({'success': True, 'spare_part': part.to_dict(), 'repair_status': part.repair.status})


@spare_parts_bp.route('/spare-parts/<int:id>', methods=['DELETE'])
@api_login_required
@shop_required
def delete_part(id):
    """Delete a spare part."""
    part = get_for_shop(SparePart, id, g.shop_id, current_user)
    repair = part.repair
    message = spare_part_message(part, current_user.username, deleted=True)
    db.session.delete(part)
    db.session.flush()
    results = _recompute([repair])
    db.session.commit()
    get_broadcaster().broadcast_to_shop(g.shop_id, message)
    _notify([], results)
    return jsonify({'success': True, 'repair_status': repair.status})


@spare_parts_bp.route('/spare-parts/bulk-status', methods=['POST'])
@api_login_required
@shop_required
def bulk_status():
    """Set one status on several parts.

    JSON body: {"ids": [1, 2, 3], "status": "bestellt"}
    """
    data = get_json_data()
    ids = data.get('ids') or []
    if not isinstance(ids, list) or not ids:
        raise ValidationError('ids muss eine nicht-leere Liste sein')
    status = data.get('status')
    if not status:
        raise ValidationError('status ist erforderlich')

    parts = scoped(SparePart.query, SparePart, g.shop_id).filter(SparePart.id.in_(ids)).all()
    if len(parts) != len(set(ids)):
        raise ValidationError('Ersatzteil nicht gefunden')

    repairs = bulk_update_status(parts, status)
    results = _recompute(sorted(repairs, key=lambda r: r.id))
    db.session.commit()
    _notify(parts, results)
    return jsonify({'success': True, 'updated': len(parts)})
