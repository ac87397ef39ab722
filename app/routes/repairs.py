"""Repair routes (JSON API, print views, exports).

Blueprint: repairs_bp
Prefix: /api
"""
import io

from flask import Blueprint, Response, g, jsonify, request, send_file
from flask_login import current_user

from app import db
from app.errors import ValidationError
from app.models import Customer, EmailHistory, Feedback, Repair, RepairStatus, Shop, SparePart
from app.routes.auth import STAFF_ROLES, api_login_required, roles_required, shop_required
from app.services import repair_service
from app.services.pdf_service import build_repair_label_pdf
from app.services.print_service import render_receipt, render_repair_order
from app.services.tenant_service import get_for_shop, scoped
from app.services.xlsx_exporter import XlsxExporter
from app.utils import get_json_data, parse_bool

repairs_bp = Blueprint('repairs', __name__, url_prefix='/api')


# ============================================================================
# Repair CRUD
# ============================================================================

@repairs_bp.route('/repairs', methods=['GET'])
@api_login_required
@shop_required
def list_repairs():
    """List repairs of the active shop, newest first.

    Query params:
        status: Filter by status value
        search: Order code, device or customer name

    Usage:
        curl -b cookies.txt 'http://localhost:5000/api/repairs?status=fertig'
    """
    query = scoped(Repair.query, Repair, g.shop_id)

    status = request.args.get('status')
    if status:
        if status not in RepairStatus.values():
            raise ValidationError(f'Ungültiger Status: {status}')
        query = query.filter(Repair.status == status)

    search = (request.args.get('search') or '').strip()
    if search:
        pattern = f'%{search}%'
        query = query.join(Customer, Repair.customer_id == Customer.id).filter(db.or_(
            Repair.order_code.ilike(pattern),
            Repair.brand.ilike(pattern),
            Repair.model.ilike(pattern),
            Customer.first_name.ilike(pattern),
            Customer.last_name.ilike(pattern),
            Customer.phone.ilike(pattern),
        ))

    repairs = query.order_by(Repair.created_at.desc()).all()
    return jsonify([r.to_dict(include_customer=True) for r in repairs])


@repairs_bp.route('/repairs', methods=['POST'])
@api_login_required
@shop_required
def create_repair():
    """Create a repair order. Returns 201, or 429 when the monthly quota is used up.

    Usage:
        curl -X POST -b cookies.txt -H 'Content-Type: application/json' \\
             -d '{"customer_id": 1, "device_type": "Smartphone", "brand": "Apple",
                  "model": "iPhone 13", "issue": "Display"}' \\
             http://localhost:5000/api/repairs
    """
    repair = repair_service.create_repair(g.shop_id, get_json_data(), current_user)
    db.session.commit()
    return jsonify(repair.to_dict(include_customer=True)), 201


@repairs_bp.route('/repairs/<int:id>', methods=['GET'])
@api_login_required
@shop_required
def get_repair(id):
    """Get one repair with customer and spare parts."""
    repair = get_for_shop(Repair, id, g.shop_id, current_user)
    data = repair.to_dict(include_customer=True)
    data['spare_parts'] = [p.to_dict() for p in repair.spare_parts.order_by(SparePart.id).all()]
    data['cost_estimate_id'] = repair.cost_estimate.id if repair.cost_estimate else None
    db.session.commit()
    return jsonify(data)


@repairs_bp.route('/repairs/<int:id>', methods=['PATCH', 'PUT'])
@api_login_required
@shop_required
def update_repair(id):
    """Change device data, costs or notes of a repair.

    A 'status' in the body is applied without notifications; use
    PATCH /api/repairs/<id>/status for customer emails.
    """
    repair = get_for_shop(Repair, id, g.shop_id, current_user)
    data = get_json_data()
    repair_service.update_repair(repair, data)
    result = None
    if 'status' in data:
        old_status = repair_service.set_status(repair, data['status'], current_user.username)
        result = repair_service.StatusChangeResult(repair=repair, old_status=old_status)
    db.session.commit()
    if result:
        repair_service.notify_status_change(result, current_user.username)
    return jsonify(repair.to_dict(include_customer=True))


@repairs_bp.route('/repairs/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def delete_repair(id):
    """Delete a repair with its spare parts."""
    repair = get_for_shop(Repair, id, g.shop_id, current_user)
    repair_service.delete_repair(repair)
    db.session.commit()
    return jsonify({'success': True})


@repairs_bp.route('/repairs/<int:id>/status', methods=['PATCH', 'POST'])
@api_login_required
@shop_required
def update_repair_status(id):
    """Change the status, optionally emailing the customer.

    JSON body: {"status": "fertig", "sendEmail": true, "technicianNote": "..."}

    The status change is kept when the email fails; the response reports
    the email result.
    """
    repair = get_for_shop(Repair, id, g.shop_id, current_user)
    data = get_json_data()
    status = data.get('status')
    if not status:
        raise ValidationError('status ist erforderlich')

    result = repair_service.update_status(
        repair, status, current_user,
        send_email=parse_bool(data.get('sendEmail', False)),
        technician_note=data.get('technicianNote'),
    )
    db.session.commit()
    repair_service.notify_status_change(result, current_user.username)

    response = {'success': True, 'repair': repair.to_dict(include_customer=True)}
    if result.email is not None:
        response['email'] = {'sent': result.email.success, 'error': result.email.error}
    return jsonify(response)


@repairs_bp.route('/repair-quota', methods=['GET'])
@api_login_required
@shop_required
def repair_quota():
    """Repairs created this month and the limit of the pricing plan."""
    shop = db.session.get(Shop, g.shop_id)
    return jsonify(repair_service.get_quota(shop))


# ============================================================================
# Feedback & Email history
# ============================================================================

@repairs_bp.route('/repairs/<int:id>/feedback-token', methods=['POST'])
@api_login_required
@shop_required
def create_feedback_token(id):
    """Create a one-time feedback link for a repair."""
    repair = get_for_shop(Repair, id, g.shop_id, current_user)
    feedback = Feedback.create_for_repair(repair)
    db.session.add(feedback)
    db.session.commit()
    base_url = request.host_url.rstrip('/')
    return jsonify({
        'success': True,
        'token': feedback.feedback_token,
        'url': f'{base_url}/feedback/{feedback.feedback_token}',
    }), 201


@repairs_bp.route('/repairs/<int:id>/email-history', methods=['GET'])
@api_login_required
@shop_required
def email_history(id):
    """Emails sent for a repair, newest first."""
    repair = get_for_shop(Repair, id, g.shop_id, current_user)
    entries = repair.email_history.order_by(EmailHistory.sent_at.desc()).all()
    return jsonify([e.to_dict() for e in entries])


# ============================================================================
# Print views & Exports
# ============================================================================

@repairs_bp.route('/repairs/<int:id>/print', methods=['GET'])
@api_login_required
@shop_required
def print_repair_order(id):
    """A4 repair order as printable HTML."""
    repair = get_for_shop(Repair, id, g.shop_id, current_user)
    return Response(render_repair_order(repair), mimetype='text/html')


@repairs_bp.route('/repairs/<int:id>/receipt', methods=['GET'])
@api_login_required
@shop_required
def print_receipt(id):
    """Receipt for thermal printers (?width=58mm|80mm, default from settings)."""
    repair = get_for_shop(Repair, id, g.shop_id, current_user)
    return Response(render_receipt(repair, request.args.get('width')), mimetype='text/html')


@repairs_bp.route('/repairs/<int:id>/label.pdf', methods=['GET'])
@api_login_required
@shop_required
def repair_label(id):
    """Device label with QR code as PDF."""
    repair = get_for_shop(Repair, id, g.shop_id, current_user)
    pdf = build_repair_label_pdf(repair, request.host_url.rstrip('/'))
    return send_file(
        io.BytesIO(pdf),
        mimetype='application/pdf',
        as_attachment=False,
        download_name=f'etikett_{repair.order_code}.pdf'
    )


@repairs_bp.route('/repairs/export.xlsx', methods=['GET'])
@api_login_required
@roles_required(*STAFF_ROLES)
@shop_required
def export_repairs():
    """Export the shop's repairs as Excel file (?status= optional)."""
    status = request.args.get('status')
    if status and status not in RepairStatus.values():
        raise ValidationError(f'Ungültiger Status: {status}')
    result = XlsxExporter().export_repairs(g.shop_id, status)
    return send_file(
        io.BytesIO(result.data),
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=result.filename
    )
