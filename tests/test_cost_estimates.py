"""Cost estimates: reference numbers, gross totals, items and conversion to a repair."""
import io
from datetime import datetime
from decimal import Decimal

import pytest
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm

from app import db
from app.models import BusinessSettings, CostEstimate
from app.services.cost_estimate_service import calculate_totals, next_reference_number
from app.services.pdf_service import CostEstimateHeader

from conftest import login, make_user


def test_calculate_totals_from_gross_prices():
    totals = calculate_totals([Decimal('100.00'), Decimal('20.00')], Decimal('20'))
    assert totals == {
        'subtotal': Decimal('100.00'),
        'tax_amount': Decimal('20.00'),
        'total': Decimal('120.00'),
    }


def test_calculate_totals_without_items():
    assert calculate_totals([], Decimal('20'))['total'] == Decimal('0.00')


def _create(client, customer_id, **extra):
    payload = {
        'customer_id': customer_id,
        'device_type': 'Laptop',
        'brand': 'Lenovo',
        'model': 'ThinkPad T14',
        'issue': 'Tastatur defekt',
        'items': [
            {'description': 'Tastatur', 'quantity': 1, 'unit_price': '89,00'},
            {'description': 'Arbeitszeit', 'quantity': 2, 'unit_price': '15,50'},
        ],
    }
    payload.update(extra)
    response = client.post('/api/cost-estimates', json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def test_create_estimate_with_items(client, customer_id):
    data = _create(client, customer_id)
    assert data['reference_number'].startswith('KV-')
    assert data['reference_number'].endswith('-001')
    assert [i['position'] for i in data['items']] == [1, 2]
    assert Decimal(data['total']) == Decimal('120.00')
    assert Decimal(data['subtotal']) == Decimal('100.00')
    assert Decimal(data['tax_amount']) == Decimal('20.00')
    assert data['customer']['last_name'] == 'Huber'


def test_reference_number_continues_across_months(client, shop, customer_id):
    first = _create(client, customer_id)
    estimate = db.session.get(CostEstimate, first['id'])
    estimate.reference_number = 'KV-0125-007'
    db.session.commit()
    assert next_reference_number(shop.id, datetime(2025, 3, 4)) == 'KV-0325-008'


def test_add_and_remove_items(client, customer_id):
    estimate_id = _create(client, customer_id, items=[])['id']

    response = client.post(f'/api/cost-estimates/{estimate_id}/items', json={
        'description': 'Akku', 'quantity': 1, 'unit_price': '60',
    })
    assert response.status_code == 201
    item_id = response.get_json()['item']['id']
    assert Decimal(response.get_json()['estimate']['total']) == Decimal('60.00')

    response = client.delete(f'/api/cost-estimates/{estimate_id}/items/{item_id}')
    assert response.status_code == 200
    assert Decimal(response.get_json()['estimate']['total']) == Decimal('0.00')


def test_item_quantity_must_be_positive(client, customer_id):
    estimate_id = _create(client, customer_id, items=[])['id']
    response = client.post(f'/api/cost-estimates/{estimate_id}/items', json={
        'description': 'Akku', 'quantity': 0, 'unit_price': '60',
    })
    assert response.status_code == 400


def test_convert_to_repair_only_once(client, customer_id):
    estimate = _create(client, customer_id)

    response = client.post(f'/api/cost-estimates/{estimate["id"]}/convert-to-repair')
    assert response.status_code == 201
    data = response.get_json()
    assert data['estimate']['converted_to_repair'] is True
    assert data['estimate']['status'] == 'angenommen'
    assert data['repair']['model'] == 'ThinkPad T14'
    assert Decimal(data['repair']['estimated_cost']) == Decimal('120.00')

    again = client.post(f'/api/cost-estimates/{estimate["id"]}/convert-to-repair')
    assert again.status_code == 400


def test_estimate_pdf_and_print(client, customer_id):
    estimate_id = _create(client, customer_id)['id']
    pdf = client.get(f'/api/cost-estimates/{estimate_id}/pdf')
    assert pdf.status_code == 200
    assert pdf.data.startswith(b'%PDF')

    html = client.get(f'/api/cost-estimates/{estimate_id}/print')
    assert html.status_code == 200
    assert 'Tastatur' in html.get_data(as_text=True)


def test_kiosk_cannot_open_estimates(app, shop, owner):
    make_user('kiosk1', 'kiosk', shop=shop, parent=owner)
    kiosk = app.test_client()
    login(kiosk, 'kiosk1')
    assert kiosk.get('/api/cost-estimates').status_code == 403


class RecordingCanvas:
    """Canvas stand-in that records every drawing call."""

    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args))
        return record

    def strings(self, method):
        return {args[2]: (args[0], args[1]) for name, args in self.calls if name == method}


def test_pdf_header_positions(client, shop, customer_id):
    estimate = db.session.get(CostEstimate, _create(client, customer_id)['id'])
    settings = BusinessSettings.query.filter_by(shop_id=shop.id).first()
    pdf = RecordingCanvas()
    CostEstimateHeader(estimate, settings, 'Handyshop Wien', 'blue', 'grey')(pdf, None)

    top = A4[1] - 15 * mm
    centred = pdf.strings('drawCentredString')
    assert centred[f'Referenznummer: {estimate.reference_number}'] == (A4[0] / 2, top - 67 * mm)
    assert pdf.strings('drawString')['Maria Huber'] == pytest.approx((15 * mm, top - 43 * mm))
    assert pdf.strings('drawRightString')['Handyshop Wien'] == (A4[0] - 15 * mm, top - 4 * mm)


def test_pdf_with_logo_and_without_items(client, customer_id):
    buffer = io.BytesIO()
    Image.new('RGB', (400, 200), (37, 99, 235)).save(buffer, format='PNG')
    response = client.post('/api/business-settings/logo', data={
        'logo': (io.BytesIO(buffer.getvalue()), 'logo.png'),
    }, content_type='multipart/form-data')
    assert response.status_code == 200

    estimate_id = _create(client, customer_id, items=[])['id']
    pdf = client.get(f'/api/cost-estimates/{estimate_id}/pdf')
    assert pdf.status_code == 200
    assert pdf.data.startswith(b'%PDF')
