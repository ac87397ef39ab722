"""WebSocket endpoint for realtime UI refresh notifications.

Blueprint: realtime_bp
Route: /ws

Clients connect with their session cookie and receive messages of all
shops they may access (see broadcast_service).
"""
import json

from flask import Blueprint, current_app
from flask_login import current_user
from simple_websocket import ConnectionClosed

from app import sock
from app.services.broadcast_service import get_broadcaster
from app.services.tenant_service import get_accessible_shop_ids

realtime_bp = Blueprint('realtime', __name__)


@sock.route('/ws', bp=realtime_bp)
def websocket(ws):
    """Subscribe the connection and keep it open until the client leaves."""
    if not current_user.is_authenticated:
        ws.send(json.dumps({'type': 'error', 'data': {'message': 'Nicht angemeldet'}}))
        ws.close(reason=1008)
        return

    shop_ids = get_accessible_shop_ids(current_user)
    broadcaster = get_broadcaster()
    broadcaster.register(ws, shop_ids, user_id=current_user.id)
    current_app.logger.info(f'WebSocket verbunden: {current_user.username} (Shops {shop_ids})')
    ws.send(json.dumps({'type': 'connected', 'data': {'shopIds': shop_ids}}))

    try:
        while True:
            message = ws.receive()
            if message == 'ping':
                ws.send('pong')
    except ConnectionClosed:
        pass
    finally:
        broadcaster.unregister(ws)
        current_app.logger.info(f'WebSocket getrennt: {current_user.username}')
