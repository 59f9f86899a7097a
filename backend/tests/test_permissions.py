"""Tests for the role -> capability mapping and its enforcement."""

import pytest

from branchpos.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    get_all_permission_codes,
    get_role_permissions,
    validate_permission_code,
)
from branchpos.services import permission_service
from branchpos.services.permission_service import PermissionDeniedError
from branchpos.services.transfer_service import TRANSITION_PERMISSIONS


def test_codes_are_unique():
    codes = get_all_permission_codes()
    assert len(codes) == len(set(codes))


def test_admin_has_everything():
    assert get_role_permissions("ADMIN") == frozenset(get_all_permission_codes())


def test_roles_are_nested():
    assert DEFAULT_ROLE_PERMISSIONS["CASHIER"] < DEFAULT_ROLE_PERMISSIONS["MANAGER"]
    assert DEFAULT_ROLE_PERMISSIONS["MANAGER"] < DEFAULT_ROLE_PERMISSIONS["ADMIN"]


def test_every_role_capability_is_defined():
    for role, codes in DEFAULT_ROLE_PERMISSIONS.items():
        assert all(validate_permission_code(code) for code in codes), role


def test_unknown_role_has_nothing():
    assert get_role_permissions("GUEST") == frozenset()


@pytest.mark.parametrize("code", sorted(set(TRANSITION_PERMISSIONS.values())))
def test_transfer_transitions_are_manager_only(code):
    assert code in get_role_permissions("MANAGER")
    assert code not in get_role_permissions("CASHIER")


class TestPermissionService:
    def test_cashier(self, cashier_user):
        assert permission_service.user_has_permission(cashier_user.id, "OPERATE_SHIFT")
        assert not permission_service.user_has_permission(cashier_user.id, "CLOSE_ANY_SHIFT")

    def test_require_permission_raises(self, cashier_user):
        with pytest.raises(PermissionDeniedError):
            permission_service.require_permission(cashier_user.id, "APPROVE_TRANSFERS")

    def test_unknown_code_fails_closed(self, admin_user):
        with pytest.raises(PermissionDeniedError):
            permission_service.require_permission(admin_user.id, "LAUNCH_ROCKETS")

    def test_inactive_user_has_nothing(self, db_session, manager_user):
        manager_user.is_active = False
        db_session.commit()

        assert permission_service.get_user_permissions(manager_user.id) == set()


class TestRouteEnforcement:
    @pytest.mark.parametrize("method, path", [
        ("GET", "/api/shifts"),
        ("POST", "/api/shifts/open"),
        ("GET", "/api/installments"),
        ("POST", "/api/transfers"),
        ("PUT", "/api/transfers/1/status"),
        ("GET", "/api/ledger"),
        ("POST", "/api/inventory/adjust"),
    ])
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path, json={})
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    @pytest.mark.parametrize("method, path", [
        ("GET", "/api/users"),
        ("POST", "/api/branches"),
        ("POST", "/api/inventory/adjust"),
        ("GET", "/api/ledger"),
        ("POST", "/api/products"),
    ])
    def test_cashier_denied(self, client, cashier_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=cashier_headers)

        assert resp.status_code == 403
        body = resp.get_json()
        assert body['success'] is False
        assert body['required_permission']

    def test_admin_can_create_branch(self, client, admin_headers):
        resp = client.post('/api/branches', json={'name': 'Airport', 'code': 'apt'}, headers=admin_headers)

        assert resp.status_code == 201
        assert resp.get_json()['data']['code'] == 'APT'
