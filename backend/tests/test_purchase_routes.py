"""API tests for suppliers and purchase orders."""

import pytest


@pytest.fixture
def order(client, manager_headers, main_branch, supplier, variant):
    resp = client.post('/api/purchases', json={
        'supplier_id': supplier.id,
        'lines': [{'variant_id': variant.id, 'quantity': 8, 'unit_cost': '35.5'}],
    }, headers=manager_headers)
    assert resp.status_code == 201
    return resp.get_json()['data']


def _stock(client, headers, branch_id, variant_id):
    rows = client.get(f'/api/inventory?branch_id={branch_id}', headers=headers).get_json()['data']
    return next((r['quantity'] for r in rows if r['variant_id'] == variant_id), 0)


def test_create_supplier(client, manager_headers):
    resp = client.post('/api/suppliers', json={'name': '  Nile Fabrics ', 'email': 'hi@nile.example'},
                       headers=manager_headers)

    assert resp.status_code == 201
    data = resp.get_json()['data']
    assert data['name'] == 'Nile Fabrics'
    assert data['is_active'] is True


def test_cashier_cannot_see_suppliers(client, cashier_headers, supplier):
    resp = client.get('/api/suppliers', headers=cashier_headers)

    assert resp.status_code == 403
    assert resp.get_json()['required_permission'] == 'VIEW_PURCHASES'


def test_deactivate_supplier(client, manager_headers, supplier):
    resp = client.patch(f'/api/suppliers/{supplier.id}', json={'is_active': False}, headers=manager_headers)
    assert resp.status_code == 200

    listed = client.get('/api/suppliers?is_active=true', headers=manager_headers).get_json()
    assert listed['data'] == []
    assert listed['pagination']['total'] == 0


def test_create_order_defaults_to_home_branch(order, main_branch):
    assert order['branch_id'] == main_branch.id
    assert order['status'] == 'PENDING'
    assert order['document_number'] == 'PO-000001'
    assert order['total'] == '284.00'
    assert order['supplier_name'] == 'Cairo Textiles'
    assert order['lines'][0]['unit_cost'] == '35.50'
    assert order['lines'][0]['outstanding'] == 8


def test_create_order_requires_lines(client, manager_headers, supplier):
    resp = client.post('/api/purchases', json={'supplier_id': supplier.id, 'lines': []}, headers=manager_headers)

    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'lines must be a non-empty list'


def test_receive_in_two_deliveries(client, order, manager_headers, main_branch, variant):
    line_id = order['lines'][0]['id']
    url = f"/api/purchases/{order['id']}/receive"

    resp = client.post(url, json={'items': [{'line_id': line_id, 'quantity': 5}]}, headers=manager_headers)
    assert resp.status_code == 200
    assert resp.get_json()['data']['status'] == 'PARTIAL'
    assert _stock(client, manager_headers, main_branch.id, variant.id) == 5

    resp = client.post(url, headers=manager_headers)
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['status'] == 'RECEIVED'
    assert data['lines'][0]['received_quantity'] == 8
    assert _stock(client, manager_headers, main_branch.id, variant.id) == 8

    again = client.post(url, headers=manager_headers)
    assert again.status_code == 400


def test_over_receipt_is_rejected(client, order, manager_headers, main_branch, variant):
    line_id = order['lines'][0]['id']
    resp = client.post(
        f"/api/purchases/{order['id']}/receive",
        json={'items': [{'line_id': line_id, 'quantity': 9}]},
        headers=manager_headers,
    )

    assert resp.status_code == 400
    assert 'outstanding' in resp.get_json()['message']
    assert _stock(client, manager_headers, main_branch.id, variant.id) == 0


def test_cancel_and_ledger(client, order, manager_headers):
    resp = client.post(f"/api/purchases/{order['id']}/cancel", json={'reason': 'Wrong sizes'},
                       headers=manager_headers)
    assert resp.status_code == 200
    assert resp.get_json()['data']['status'] == 'CANCELLED'

    events = client.get('/api/ledger?category=purchases', headers=manager_headers).get_json()['data']
    assert {e['event_type'] for e in events} == {'purchase.created', 'purchase.cancelled'}


def test_cashier_cannot_receive(client, order, cashier_headers):
    resp = client.post(f"/api/purchases/{order['id']}/receive", headers=cashier_headers)
    assert resp.status_code == 403


def test_unknown_order(client, manager_headers):
    assert client.get('/api/purchases/999999', headers=manager_headers).status_code == 404
