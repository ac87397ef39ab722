"""Realtime broadcast of UI refresh notifications over websockets.

Clients subscribe to the shops they may access. Messages are plain JSON
objects ``{"type": ..., "data": {...}}``. Delivery is best effort: sockets
that fail on send are dropped.

Access is checked again on every broadcast, so a connection stops receiving
a shop's messages as soon as the user's grant or support session ends.
"""
import json
import threading
from typing import Optional

from flask import current_app, has_app_context
from simple_websocket import ConnectionClosed


class ShopBroadcaster:
    """Keeps websocket connections per shop and fans out messages."""

    def __init__(self):
        self._lock = threading.Lock()
        self._clients: dict[int, set] = {}
        self._users: dict = {}

    def register(self, ws, shop_ids, user_id: Optional[int] = None) -> None:
        """Subscribe a connection of a user to the given shops."""
        with self._lock:
            for shop_id in shop_ids:
                self._clients.setdefault(shop_id, set()).add(ws)
            if user_id is not None:
                self._users[ws] = user_id

    def unregister(self, ws) -> None:
        """Remove a connection from all shops."""
        with self._lock:
            self._users.pop(ws, None)
            for shop_id in list(self._clients):
                self._clients[shop_id].discard(ws)
                if not self._clients[shop_id]:
                    del self._clients[shop_id]

    def unsubscribe(self, ws, shop_id: int) -> None:
        """Remove a connection from a single shop."""
        with self._lock:
            clients = self._clients.get(shop_id)
            if clients is None:
                return
            clients.discard(ws)
            if not clients:
                del self._clients[shop_id]
            if not any(ws in c for c in self._clients.values()):
                self._users.pop(ws, None)

    def client_count(self, shop_id: Optional[int] = None) -> int:
        with self._lock:
            if shop_id is not None:
                return len(self._clients.get(shop_id, ()))
            return len({ws for clients in self._clients.values() for ws in clients})

    def _may_receive(self, ws, shop_id: int) -> bool:
        user_id = self._users.get(ws)
        if user_id is None or not has_app_context():
            return True

        from app import db
        from app.models import User
        from app.services.tenant_service import get_accessible_shop_ids

        user = db.session.get(User, user_id)
        return shop_id in get_accessible_shop_ids(user)

    def broadcast_to_shop(self, shop_id: int, message: dict) -> int:
        """Send a message to all connections of a shop.

        Connections whose user lost access to the shop are unsubscribed
        instead of receiving the message.

        Returns:
            Number of connections the message was delivered to
        """
        with self._lock:
            targets = list(self._clients.get(shop_id, ()))

        payload = json.dumps(message, default=str)
        delivered = 0
        dead = []
        for ws in targets:
            if not self._may_receive(ws, shop_id):
                self.unsubscribe(ws, shop_id)
                if has_app_context():
                    current_app.logger.info(f'WebSocket ohne Zugriff von Shop {shop_id} abgemeldet')
                continue
            try:
                ws.send(payload)
                delivered += 1
            except (ConnectionClosed, OSError) as e:
                dead.append(ws)
                if has_app_context():
                    current_app.logger.info(f'WebSocket für Shop {shop_id} entfernt: {e}')

        for ws in dead:
            self.unregister(ws)
        return delivered


# Shared broadcaster instance
_broadcaster = None


def get_broadcaster() -> ShopBroadcaster:
    """Get or create the broadcaster instance."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = ShopBroadcaster()
    return _broadcaster


def spare_part_message(part, updated_by: str, deleted: bool = False) -> dict:
    """Build the spare-part-update message (before a delete is flushed)."""
    return {
        'type': 'spare-part-update',
        'data': {
            'id': part.id,
            'status': part.status,
            'archived': part.archived,
            'deleted': deleted,
            'shopId': part.shop_id,
            'repairId': part.repair_id,
            'updatedBy': updated_by,
        }
    }


def broadcast_spare_part_update(part, updated_by: str) -> int:
    """Notify a shop that a spare part changed."""
    return get_broadcaster().broadcast_to_shop(part.shop_id, spare_part_message(part, updated_by))


def broadcast_repair_status_update(repair, old_status: str, updated_by: str) -> int:
    """Notify a shop that the status of a repair changed."""
    return get_broadcaster().broadcast_to_shop(repair.shop_id, {
        'type': 'repair-status-update',
        'data': {
            'id': repair.id,
            'status': repair.status,
            'oldStatus': old_status,
            'shopId': repair.shop_id,
            'orderCode': repair.order_code,
            'updatedBy': updated_by,
            'estimatedCost': str(repair.estimated_cost) if repair.estimated_cost is not None else None,
        }
    })
