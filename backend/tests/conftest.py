"""
Pytest fixtures for the inventory backend tests.

Provides an in-memory database, reference locations, users of every role,
a product whose lots are spread over all four locations, and a test client.
"""

import pytest

from app import create_app
from app.extensions import db
from app.models import Location, ProductLot, User, UserLocationAccess, UserModuleGrant
from app.services import lot_service, session_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'UNKNOWN_LOCATION_POLICY': 'error',
    })

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
def locations(db_session):
    """Two warehouses and two showrooms."""
    rows = {
        "main": Location(name="Main Warehouse", type="warehouse"),
        "secondary": Location(name="Secondary Warehouse", type="warehouse"),
        "downtown": Location(name="Downtown Showroom", type="showroom"),
        "mall": Location(name="Mall Showroom", type="showroom"),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return {key: location.id for key, location in rows.items()}


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: make_user("ana", "admin", location_ids=[...], assigned_location_id=..., grants=[...])."""
    def _make(username, role, *, location_ids=(), assigned_location_id=None, grants=()):
        user = User(username=username, role=role, assigned_location_id=assigned_location_id)
        db_session.add(user)
        db_session.flush()
        for location_id in location_ids:
            db_session.add(UserLocationAccess(user_id=user.id, location_id=location_id))
        for module, action in grants:
            db_session.add(UserModuleGrant(user_id=user.id, module=module, action=action))
        db_session.commit()
        return session_service.load_session_user(user.id)
    return _make


@pytest.fixture(scope='function')
def super_admin(make_user):
    return make_user("root", "super_admin")


@pytest.fixture(scope='function')
def warehouse_admin(make_user, locations):
    """Admin over Main Warehouse and Downtown Showroom."""
    return make_user("ana", "admin", location_ids=[locations["main"], locations["downtown"]])


@pytest.fixture(scope='function')
def showroom_admin(make_user, locations):
    """Admin over both showrooms only (no warehouse)."""
    return make_user("sho", "admin", location_ids=[locations["downtown"], locations["mall"]])


@pytest.fixture(scope='function')
def sales_manager(make_user, locations):
    return make_user("sam", "sales_manager", assigned_location_id=locations["downtown"])


@pytest.fixture(scope='function')
def product_with_lots(db_session, locations):
    """
    Product A, nominal location Main Warehouse, with lots:
    #1 main 50, #2 downtown 30, #3 mall 70, #4 secondary 20.
    """
    product, _ = lot_service.create_product_with_stock(
        product_code="PA001",
        name="Product A",
        location_id=locations["main"],
        quantity=50,
        unit_price_cents=2500,
    )
    for key, quantity, price in (("downtown", 30, 2700), ("mall", 70, 2600), ("secondary", 20, 2800)):
        lot_service.add_stock(product.id, location_id=locations[key], quantity=quantity, unit_price_cents=price)
    db_session.commit()

    lots = {
        lot.location_id: lot.id
        for lot in db_session.query(ProductLot).filter_by(product_id=product.id).all()
    }
    return {
        "product_id": product.id,
        "lot_ids": {key: lots[location_id] for key, location_id in locations.items()},
    }


@pytest.fixture(scope='function')
def auth_headers(db_session):
    """Factory: auth_headers(session_user) -> Authorization header with a fresh token."""
    def _headers(user):
        _, token = session_service.create_session(user.id)
        return {'Authorization': f'Bearer {token}'}
    return _headers
