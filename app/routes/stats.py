"""Dashboard statistics and health check.

Blueprint: stats_bp
Prefix: /api
"""
from flask import Blueprint, g, jsonify
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.routes.auth import api_login_required, shop_required
from app.services.stats_service import get_shop_stats

stats_bp = Blueprint('stats', __name__, url_prefix='/api')


@stats_bp.route('/stats', methods=['GET'])
@api_login_required
@shop_required
def stats():
    """Repair counts per status, today, this month and open spare parts.

    Usage:
        curl -b cookies.txt http://localhost:5000/api/stats
    """
    return jsonify(get_shop_stats(g.shop_id))


@stats_bp.route('/health', methods=['GET'])
def health():
    """Simple health check for load balancers/monitoring."""
    try:
        db.session.execute(db.text('SELECT 1'))
        return jsonify({'status': 'ok'}), 200
    except SQLAlchemyError:
        db.session.rollback()
        return jsonify({'status': 'error'}), 503
