"""API tests for the transfer workflow and its per-status permissions."""

import pytest


@pytest.fixture
def transfer(client, manager_headers, stocked, second_branch, variant):
    resp = client.post('/api/transfers', json={
        'from_branch_id': stocked.id,
        'to_branch_id': second_branch.id,
        'lines': [{'variant_id': variant.id, 'quantity': 4}],
    }, headers=manager_headers)
    assert resp.status_code == 201
    return resp.get_json()['data']


def _set_status(client, transfer, status, headers, **extra):
    return client.put(
        f"/api/transfers/{transfer['id']}/status", json={'status': status, **extra}, headers=headers,
    )


def _stock(client, headers, branch_id, variant_id):
    rows = client.get(f'/api/inventory?branch_id={branch_id}', headers=headers).get_json()['data']
    return next((r['quantity'] for r in rows if r['variant_id'] == variant_id), 0)


def test_create_transfer(transfer):
    assert transfer['status'] == 'PENDING'
    assert transfer['document_number'].startswith('TRF-')
    assert transfer['lines'][0]['quantity'] == 4


def test_cashier_cannot_create(client, cashier_headers, stocked, second_branch, variant):
    resp = client.post('/api/transfers', json={
        'from_branch_id': stocked.id,
        'to_branch_id': second_branch.id,
        'lines': [{'variant_id': variant.id, 'quantity': 1}],
    }, headers=cashier_headers)

    assert resp.status_code == 403
    assert resp.get_json()['required_permission'] == 'CREATE_TRANSFERS'


def test_cashier_cannot_approve(client, transfer, cashier_headers):
    resp = _set_status(client, transfer, 'APPROVED', cashier_headers)
    assert resp.status_code == 403


def test_full_workflow_moves_stock(client, transfer, manager_headers, stocked, second_branch, variant):
    assert _set_status(client, transfer, 'APPROVED', manager_headers).status_code == 200

    resp = _set_status(client, transfer, 'IN_TRANSIT', manager_headers)
    assert resp.status_code == 200
    assert _stock(client, manager_headers, stocked.id, variant.id) == 16
    assert _stock(client, manager_headers, second_branch.id, variant.id) == 0

    resp = _set_status(client, transfer, 'COMPLETED', manager_headers)
    assert resp.status_code == 200
    assert resp.get_json()['data']['status'] == 'COMPLETED'
    assert _stock(client, manager_headers, second_branch.id, variant.id) == 4

    events = client.get(
        f"/api/ledger?entity_type=transfer&entity_id={transfer['id']}", headers=manager_headers,
    ).get_json()['data']
    assert {e['event_type'] for e in events} == {
        'transfer.created', 'transfer.approved', 'transfer.in_transit', 'transfer.completed',
    }


def test_skipping_a_step_is_rejected(client, transfer, manager_headers):
    resp = _set_status(client, transfer, 'COMPLETED', manager_headers)

    assert resp.status_code == 400
    assert 'Invalid status transition' in resp.get_json()['message']


def test_cannot_move_back_to_pending(client, transfer, manager_headers):
    _set_status(client, transfer, 'APPROVED', manager_headers)

    resp = _set_status(client, transfer, 'PENDING', manager_headers)
    assert resp.status_code == 400


def test_cancel_records_reason(client, transfer, manager_headers):
    resp = _set_status(client, transfer, 'CANCELLED', manager_headers, reason='Duplicate request')

    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['status'] == 'CANCELLED'
    assert data['cancellation_reason'] == 'Duplicate request'


def test_insufficient_stock_is_rejected(client, manager_headers, stocked, second_branch, variant):
    resp = client.post('/api/transfers', json={
        'from_branch_id': stocked.id,
        'to_branch_id': second_branch.id,
        'lines': [{'variant_id': variant.id, 'quantity': 500}],
    }, headers=manager_headers)

    assert resp.status_code == 400


def test_unknown_transfer(client, manager_headers):
    resp = client.put('/api/transfers/999999/status', json={'status': 'APPROVED'}, headers=manager_headers)
    assert resp.status_code == 404


def test_list_by_status(client, transfer, cashier_headers):
    resp = client.get('/api/transfers?status=PENDING', headers=cashier_headers)

    assert resp.status_code == 200
    assert [t['id'] for t in resp.get_json()['data']] == [transfer['id']]
