"""Spare parts and the repair status derived from them."""
import pytest

from app.services.spare_part_service import derive_repair_status


@pytest.mark.parametrize('statuses, expected', [
    ([], None),
    (['bestellen', 'eingetroffen'], 'ersatzteile_bestellen'),
    (['bestellt', 'eingetroffen'], 'warten_auf_ersatzteile'),
    (['eingetroffen', 'erledigt'], 'ersatzteil_eingetroffen'),
])
def test_derive_repair_status(statuses, expected):
    assert derive_repair_status(statuses) == expected


def _add_part(client, repair_id, name='Display OLED', **extra):
    response = client.post(f'/api/repairs/{repair_id}/spare-parts', json=dict(part_name=name, **extra))
    assert response.status_code == 201
    return response.get_json()


def test_new_part_moves_repair_to_ordering(client, repair_id):
    data = _add_part(client, repair_id, supplier='Parts4Phone', cost='79,50')
    assert data['spare_part']['status'] == 'bestellen'
    assert data['repair_status'] == 'ersatzteile_bestellen'


def test_part_lifecycle_drives_repair_status(client, repair_id):
    part_id = _add_part(client, repair_id)['spare_part']['id']

    response = client.patch(f'/api/spare-parts/{part_id}', json={'status': 'bestellt'})
    assert response.get_json()['repair_status'] == 'warten_auf_ersatzteile'
    assert response.get_json()['spare_part']['order_date'] is not None

    response = client.patch(f'/api/spare-parts/{part_id}', json={'status': 'eingetroffen'})
    assert response.get_json()['repair_status'] == 'ersatzteil_eingetroffen'
    assert response.get_json()['spare_part']['delivery_date'] is not None


def test_finished_repair_keeps_status(client, repair_id):
    part_id = _add_part(client, repair_id)['spare_part']['id']
    client.patch(f'/api/repairs/{repair_id}/status', json={'status': 'fertig'})

    response = client.patch(f'/api/spare-parts/{part_id}', json={'status': 'bestellt'})
    assert response.get_json()['repair_status'] == 'fertig'


def test_archive_only_arrived_parts(client, repair_id):
    part_id = _add_part(client, repair_id)['spare_part']['id']
    assert client.patch(f'/api/spare-parts/{part_id}', json={'archived': True}).status_code == 400

    client.patch(f'/api/spare-parts/{part_id}', json={'status': 'eingetroffen'})
    assert client.patch(f'/api/spare-parts/{part_id}', json={'archived': True}).status_code == 200

    assert client.get('/api/spare-parts').get_json() == []
    archived = client.get('/api/spare-parts?archived=1').get_json()
    assert [p['id'] for p in archived] == [part_id]


def test_bulk_status(client, repair_id):
    first = _add_part(client, repair_id, 'Akku')['spare_part']['id']
    second = _add_part(client, repair_id, 'Kleber')['spare_part']['id']

    response = client.post('/api/spare-parts/bulk-status', json={'ids': [first, second], 'status': 'bestellt'})
    assert response.status_code == 200
    parts = client.get(f'/api/repairs/{repair_id}/spare-parts').get_json()
    assert {p['status'] for p in parts} == {'bestellt'}
    assert client.get(f'/api/repairs/{repair_id}').get_json()['status'] == 'warten_auf_ersatzteile'


def test_list_includes_repair_info(client, repair_id):
    _add_part(client, repair_id)
    parts = client.get('/api/spare-parts').get_json()
    assert parts[0]['device'] == 'Apple iPhone 13'
    assert parts[0]['order_code']


def test_delete_last_part_keeps_status(client, repair_id):
    part_id = _add_part(client, repair_id)['spare_part']['id']
    assert client.delete(f'/api/spare-parts/{part_id}').status_code == 200
    # Without active parts nothing is derived
    assert client.get(f'/api/repairs/{repair_id}').get_json()['status'] == 'ersatzteile_bestellen'
    assert client.get(f'/api/repairs/{repair_id}/spare-parts').get_json() == []


def test_reopened_part_leaves_archive(client, repair_id):
    part_id = _add_part(client, repair_id)['spare_part']['id']
    client.patch(f'/api/spare-parts/{part_id}', json={'status': 'eingetroffen'})
    client.patch(f'/api/spare-parts/{part_id}', json={'archived': True})

    response = client.patch(f'/api/spare-parts/{part_id}', json={'status': 'bestellen'})
    assert response.status_code == 200
    data = response.get_json()
    assert data['spare_part']['archived'] is False
    assert data['repair_status'] == 'ersatzteile_bestellen'
    assert [p['id'] for p in client.get('/api/spare-parts').get_json()] == [part_id]
