import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from grocery.api import create_app
from grocery.config import Settings
from grocery.models import Address, Category, Coupon, DiscountTypeEnum, Product
from grocery.queries import upsert_user
from grocery.security import session_token_for

OWNER_OPEN_ID = "owner-1"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        secret_key="test-secret",
        owner_open_id=OWNER_OPEN_ID,
        delivery_charge=5000,
        free_delivery_threshold=20000,
        log_level="WARNING",
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine)


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def login(db, settings, open_id, **fields):
    user = upsert_user(db, {"open_id": open_id, **fields}, settings.owner_open_id)
    return user, {"Authorization": f"Bearer {session_token_for(settings, user)}"}


@pytest.fixture
def customer(db, settings):
    return login(db, settings, "customer-1", name="Asha", email="asha@example.com")


@pytest.fixture
def other_customer(db, settings):
    return login(db, settings, "customer-2", name="Ravi")


@pytest.fixture
def admin(db, settings):
    return login(db, settings, OWNER_OPEN_ID, name="Owner")


def add_row(db, row):
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def category(db):
    return add_row(db, Category(name="Fruits", slug="fruits"))


@pytest.fixture
def make_product(db, category):
    def _make(**fields):
        values = {
            "category_id": category.id,
            "name": "Apple",
            "price": 10000,
            "stock": 50,
        }
        values.update(fields)
        return add_row(db, Product(**values))

    return _make


@pytest.fixture
def make_coupon(db):
    def _make(**fields):
        values = {
            "code": "SAVE30",
            "discount_type": DiscountTypeEnum.FIXED,
            "discount_value": 3000,
        }
        values.update(fields)
        return add_row(db, Coupon(**values))

    return _make


@pytest.fixture
def address(db, customer):
    user, _ = customer
    return add_row(
        db,
        Address(
            user_id=user.id,
            full_name="Asha Rao",
            phone_number="9876543210",
            address_line1="12 MG Road",
            city="Bengaluru",
            state="Karnataka",
            postal_code="560001",
            is_default=True,
        ),
    )
