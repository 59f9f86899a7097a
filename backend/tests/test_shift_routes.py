"""API tests for the shift ledger endpoints."""

import pytest


@pytest.fixture
def open_shift(client, cashier_headers):
    resp = client.post('/api/shifts/open', json={'opening_balance': 100}, headers=cashier_headers)
    assert resp.status_code == 201
    return resp.get_json()['data']


def test_open_shift_defaults_to_home_branch(client, open_shift, main_branch, cashier_user):
    assert open_shift['branch_id'] == main_branch.id
    assert open_shift['user_id'] == cashier_user.id
    assert open_shift['status'] == 'OPEN'
    assert open_shift['opening_balance'] == '100.00'


def test_second_open_is_rejected(client, open_shift, cashier_headers):
    resp = client.post('/api/shifts/open', json={'opening_balance': 0}, headers=cashier_headers)

    assert resp.status_code == 400
    assert resp.get_json()['success'] is False


def test_open_requires_opening_balance(client, cashier_headers):
    resp = client.post('/api/shifts/open', json={}, headers=cashier_headers)
    assert resp.status_code == 400


def test_close_reports_difference(client, open_shift, cashier_headers, stocked, variant):
    sale = client.post('/api/sales', json={
        'items': [{'variant_id': variant.id, 'quantity': 2}],
        'payment_method': 'CASH',
    }, headers=cashier_headers)
    assert sale.status_code == 201
    assert sale.get_json()['data']['shift_id'] == open_shift['id']

    tx = client.post(f"/api/shifts/{open_shift['id']}/transactions", json={
        'type': 'withdrawal', 'amount': '40', 'reason': 'Change float',
    }, headers=cashier_headers)
    assert tx.status_code == 201

    current = client.get('/api/shifts/current', headers=cashier_headers).get_json()['data']
    assert current['preview']['expected_cash'] == '260.00'

    resp = client.post(f"/api/shifts/{open_shift['id']}/close", json={'actual_cash': 265}, headers=cashier_headers)

    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['status'] == 'CLOSED'
    assert data['cash_sales_total'] == '200.00'
    assert data['cash_out_total'] == '40.00'
    assert data['expected_cash'] == '260.00'
    assert data['actual_cash'] == '265.00'
    assert data['difference'] == '5.00'
    assert len(data['transactions']) == 1


def test_close_twice_is_rejected(client, open_shift, cashier_headers):
    url = f"/api/shifts/{open_shift['id']}/close"
    assert client.post(url, json={'actual_cash': 100}, headers=cashier_headers).status_code == 200

    resp = client.post(url, json={'actual_cash': 100}, headers=cashier_headers)
    assert resp.status_code == 400


def test_other_cashier_cannot_close(client, open_shift, other_cashier):
    login = client.post('/api/auth/login', json={'username': 'cashier2', 'password': 'Password123!'})
    headers = {'Authorization': f"Bearer {login.get_json()['data']['token']}"}

    resp = client.post(f"/api/shifts/{open_shift['id']}/close", json={'actual_cash': 100}, headers=headers)

    assert resp.status_code == 403


def test_manager_can_close_cashier_shift(client, open_shift, manager_headers, manager_user):
    resp = client.post(
        f"/api/shifts/{open_shift['id']}/close", json={'actual_cash': 90}, headers=manager_headers,
    )

    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['difference'] == '-10.00'
    assert data['closed_by_user_id'] == manager_user.id


def test_close_unknown_shift(client, cashier_headers):
    resp = client.post('/api/shifts/999999/close', json={'actual_cash': 0}, headers=cashier_headers)
    assert resp.status_code == 404


def test_list_requires_view_shifts(client, cashier_headers, manager_headers, open_shift):
    denied = client.get('/api/shifts', headers=cashier_headers)
    assert denied.status_code == 403
    assert denied.get_json()['required_permission'] == 'VIEW_SHIFTS'

    resp = client.get('/api/shifts?is_open=true', headers=manager_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert [s['id'] for s in body['data']] == [open_shift['id']]
    assert body['pagination']['total'] == 1


def test_list_is_open_flag(client, manager_headers, open_shift):
    closed = client.get('/api/shifts?is_open=false', headers=manager_headers)
    assert closed.status_code == 200
    assert closed.get_json()['data'] == []

    resp = client.get('/api/shifts?is_open=yes', headers=manager_headers)
    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'is_open must be true or false'
