"""Public customer feedback (one-time link, no login).

Blueprint: feedback_bp
Prefix: /api/feedback
"""
from datetime import datetime

from flask import Blueprint, jsonify

from app import db
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import BusinessSettings, Feedback
from app.services.logging_service import log_event
from app.utils import get_json_data, parse_int

feedback_bp = Blueprint('feedback', __name__, url_prefix='/api/feedback')


def _get_by_token(token: str) -> Feedback:
    feedback = Feedback.query.filter_by(feedback_token=token).first()
    if feedback is None:
        raise NotFoundError('Feedback-Link ist ungültig')
    return feedback


@feedback_bp.route('/<token>', methods=['GET'])
def get_feedback(token):
    """Shop and device shown on the feedback page."""
    feedback = _get_by_token(token)
    settings = BusinessSettings.query.filter_by(shop_id=feedback.shop_id).first()
    repair = feedback.repair
    return jsonify({
        'business_name': settings.business_name if settings else None,
        'review_link': settings.review_link if settings else None,
        'device': repair.device_label if repair else None,
        'order_code': repair.order_code if repair else None,
        'submitted': feedback.is_submitted,
        'rating': feedback.rating,
    })


@feedback_bp.route('/<token>', methods=['POST'])
def submit_feedback(token):
    """Submit a rating (1-5) with optional comment. Only once per link.

    JSON body: {"rating": 5, "comment": "Schnell und freundlich"}
    """
    feedback = _get_by_token(token)
    if feedback.is_submitted:
        raise ConflictError('Feedback wurde bereits abgegeben')
    data = get_json_data()
    rating = parse_int(data.get('rating'), 'rating')
    if rating is None or not 1 <= rating <= 5:
        raise ValidationError('Bewertung muss zwischen 1 und 5 liegen')

    feedback.rating = rating
    feedback.comment = (data.get('comment') or '').strip() or None
    feedback.submitted_at = datetime.utcnow()
    log_event('reparaturen', 'feedback_erhalten', details=f'{rating} Sterne',
              entity_type='Feedback', entity_id=feedback.id, shop_id=feedback.shop_id)
    db.session.commit()

    settings = BusinessSettings.query.filter_by(shop_id=feedback.shop_id).first()
    return jsonify({
        'success': True,
        'message': 'Vielen Dank für Ihr Feedback!',
        # Happy customers are pointed to the public review page
        'review_link': settings.review_link if settings and rating >= 4 else None,
    })
