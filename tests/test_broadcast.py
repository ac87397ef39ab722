"""Realtime broadcasts to the websocket connections of a shop."""
import json

from simple_websocket import ConnectionClosed

from app.services import broadcast_service
from app.services.broadcast_service import ShopBroadcaster

from conftest import make_user


class FakeSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send(self, payload):
        if self.fail:
            raise ConnectionClosed()
        self.sent.append(json.loads(payload))


def test_broadcast_reaches_only_the_shop():
    broadcaster = ShopBroadcaster()
    wien, linz = FakeSocket(), FakeSocket()
    broadcaster.register(wien, [1])
    broadcaster.register(linz, [2])

    assert broadcaster.broadcast_to_shop(1, {'type': 'ping', 'data': {}}) == 1
    assert wien.sent == [{'type': 'ping', 'data': {}}]
    assert linz.sent == []


def test_dead_socket_is_dropped():
    broadcaster = ShopBroadcaster()
    alive, dead = FakeSocket(), FakeSocket(fail=True)
    broadcaster.register(alive, [1])
    broadcaster.register(dead, [1, 2])

    assert broadcaster.broadcast_to_shop(1, {'type': 'ping'}) == 1
    assert broadcaster.client_count(1) == 1
    assert broadcaster.client_count(2) == 0
    assert broadcaster.client_count() == 1


def test_unregister():
    broadcaster = ShopBroadcaster()
    ws = FakeSocket()
    broadcaster.register(ws, [1, 2])
    broadcaster.unregister(ws)
    assert broadcaster.client_count() == 0
    assert broadcaster.broadcast_to_shop(1, {'type': 'ping'}) == 0


def test_status_change_is_broadcast(client, shop, repair_id, monkeypatch):
    broadcaster = ShopBroadcaster()
    monkeypatch.setattr(broadcast_service, '_broadcaster', broadcaster)
    ws = FakeSocket()
    broadcaster.register(ws, [shop.id])

    client.patch(f'/api/repairs/{repair_id}/status', json={'status': 'in_reparatur'})
    message = ws.sent[-1]
    assert message['type'] == 'repair-status-update'
    assert message['data']['id'] == repair_id
    assert message['data']['oldStatus'] == 'eingegangen'
    assert message['data']['status'] == 'in_reparatur'


def test_spare_part_change_is_broadcast(client, shop, repair_id, monkeypatch):
    broadcaster = ShopBroadcaster()
    monkeypatch.setattr(broadcast_service, '_broadcaster', broadcaster)
    ws = FakeSocket()
    broadcaster.register(ws, [shop.id])

    client.post(f'/api/repairs/{repair_id}/spare-parts', json={'part_name': 'Akku'})
    assert 'spare-part-update' in [m['type'] for m in ws.sent]


def test_revoked_multi_shop_admin_stops_receiving(app, client, shop, repair_id, monkeypatch):
    broadcaster = ShopBroadcaster()
    monkeypatch.setattr(broadcast_service, '_broadcaster', broadcaster)
    msa = make_user('kette', 'multi_shop_admin', email='admin@kette.at')
    assert client.post('/api/multi-shop/grant', json={'email': 'admin@kette.at'}).status_code == 201

    owner_ws, msa_ws = FakeSocket(), FakeSocket()
    broadcaster.register(owner_ws, [shop.id])
    broadcaster.register(msa_ws, [shop.id], user_id=msa.id)

    client.patch(f'/api/repairs/{repair_id}/status', json={'status': 'in_reparatur'})
    assert [m['type'] for m in msa_ws.sent] == ['repair-status-update']

    assert client.post(f'/api/multi-shop/revoke/{msa.id}').status_code == 200
    client.patch(f'/api/repairs/{repair_id}/status', json={'status': 'fertig'})

    assert len(msa_ws.sent) == 1
    assert owner_ws.sent[-1]['data']['status'] == 'fertig'
    assert broadcaster.client_count(shop.id) == 1


def test_unsubscribe_keeps_other_shops():
    broadcaster = ShopBroadcaster()
    ws = FakeSocket()
    broadcaster.register(ws, [1, 2], user_id=7)
    broadcaster.unsubscribe(ws, 1)
    assert broadcaster.client_count(1) == 0
    assert broadcaster.client_count(2) == 1


def test_spare_part_delete_is_broadcast(client, shop, repair_id, monkeypatch):
    part_id = client.post(f'/api/repairs/{repair_id}/spare-parts',
                          json={'part_name': 'Akku'}).get_json()['spare_part']['id']
    broadcaster = ShopBroadcaster()
    monkeypatch.setattr(broadcast_service, '_broadcaster', broadcaster)
    ws = FakeSocket()
    broadcaster.register(ws, [shop.id])

    assert client.delete(f'/api/spare-parts/{part_id}').status_code == 200
    message = ws.sent[0]
    assert message['type'] == 'spare-part-update'
    assert message['data']['id'] == part_id
    assert message['data']['deleted'] is True
    assert message['data']['repairId'] == repair_id
