"""
Pytest fixtures for BranchPOS backend tests.

Provides test database setup, branch/user/product fixtures, and test client.
"""

from decimal import Decimal

import pytest
from branchpos import create_app
from branchpos.config import TestConfig
from branchpos.extensions import db
from branchpos.services import branch_service, products_service, supplier_service
from branchpos.services.auth_service import create_user
from branchpos.services.inventory_service import increment_stock


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def main_branch(db_session):
    branch = branch_service.create_branch(name="Main Street", code="MAIN")
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def second_branch(db_session):
    branch = branch_service.create_branch(name="Mall Kiosk", code="MALL")
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def warehouse(db_session):
    branch = branch_service.create_branch(name="Central Warehouse", code="WH", is_warehouse=True)
    db_session.commit()
    return branch


def _make_user(db_session, username, role, branch_id):
    user = create_user(
        username=username,
        name=username.title(),
        password=PASSWORD,
        role=role,
        branch_id=branch_id,
    )
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin", "ADMIN", None)


@pytest.fixture(scope='function')
def manager_user(db_session, main_branch):
    return _make_user(db_session, "manager", "MANAGER", main_branch.id)


@pytest.fixture(scope='function')
def cashier_user(db_session, main_branch):
    return _make_user(db_session, "cashier", "CASHIER", main_branch.id)


@pytest.fixture(scope='function')
def other_cashier(db_session, main_branch):
    return _make_user(db_session, "cashier2", "CASHIER", main_branch.id)


@pytest.fixture(scope='function')
def product(db_session):
    """T-shirt with two variants priced at 100.00."""
    product = products_service.create_product(
        sku="TSHIRT",
        name="T-Shirt",
        category="Tops",
        variants=[
            {"sku": "TSHIRT-M-RED", "barcode": "6221000000011", "size": "M", "color": "Red",
             "price": Decimal("100.00"), "cost": Decimal("40.00")},
            {"sku": "TSHIRT-L-RED", "barcode": "6221000000028", "size": "L", "color": "Red",
             "price": Decimal("100.00"), "cost": Decimal("40.00")},
        ],
    )
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def variant(product):
    return product.variants[0]


@pytest.fixture(scope='function')
def other_variant(product):
    return product.variants[1]


@pytest.fixture(scope='function')
def stocked(db_session, main_branch, variant, other_variant):
    """20 units of each variant at the main branch."""
    increment_stock(main_branch.id, variant.id, 20)
    increment_stock(main_branch.id, other_variant.id, 20)
    db_session.commit()
    return main_branch


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = supplier_service.create_supplier(name="Cairo Textiles", phone="0223456789")
    db_session.commit()
    return supplier


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.get_json()['data']['token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, manager_user.username))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, cashier_user.username))
