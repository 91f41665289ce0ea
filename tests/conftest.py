import pytest
from decimal import Decimal
import os
import uuid

# In-memory SQLite and no Redis for the test run (must be set before config is imported)
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['CACHE_ENABLED'] = 'false'
os.environ.pop('PAYMENT_CALLBACK_SECRET', None)

from pharmastore import create_app
from pharmastore import database
from pharmastore.database import get_session
from pharmastore.models import (
    Pharmacy, AppUser, PharmacyMember, MemberRole, Category, Product
)
from pharmastore.services import cart_service


def _persist(session, obj):
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.Config', TESTING=True, WTF_CSRF_ENABLED=False)
    # Fixture objects must stay readable after a request removes the shared scoped session
    get_session().configure(expire_on_commit=False)
    return app


@pytest.fixture(autouse=True)
def _database(app):
    """Fresh schema for every test."""
    database.create_all()
    yield
    get_session().remove()
    database.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session for testing."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def make_pharmacy(session):
    def factory(name='Test Pharmacy', **kwargs):
        suffix = str(uuid.uuid4())[:8]
        return _persist(session, Pharmacy(slug=f'pharmacy-{suffix}', name=f'{name} {suffix}', **kwargs))
    return factory


@pytest.fixture(scope='function')
def pharmacy(make_pharmacy):
    return make_pharmacy('Pharmacy One')


@pytest.fixture(scope='function')
def pharmacy2(make_pharmacy):
    """Second pharmacy for isolation tests."""
    return make_pharmacy('Pharmacy Two')


@pytest.fixture(scope='function')
def make_user(session):
    def factory(name='user', pharmacy=None, role=None):
        suffix = str(uuid.uuid4())[:8]
        user = AppUser(email=f'{name}-{suffix}@test.com', full_name=name.title(), active=True)
        user.set_password('password123')
        _persist(session, user)
        if pharmacy is not None and role is not None:
            _persist(session, PharmacyMember(user_id=user.id, pharmacy_id=pharmacy.id, role=role, active=True))
        return user
    return factory


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user('customer')


@pytest.fixture(scope='function')
def customer2(make_user):
    return make_user('other-customer')


@pytest.fixture(scope='function')
def owner(make_user, pharmacy):
    return make_user('owner', pharmacy, MemberRole.OWNER.value)


@pytest.fixture(scope='function')
def staff(make_user, pharmacy):
    return make_user('staff', pharmacy, MemberRole.STAFF.value)


@pytest.fixture(scope='function')
def owner2(make_user, pharmacy2):
    return make_user('owner-two', pharmacy2, MemberRole.OWNER.value)


@pytest.fixture(scope='function')
def make_product(session):
    def factory(pharmacy, name='Paracetamol 500mg', price='100.00', stock=10, discounted=None, active=True):
        suffix = str(uuid.uuid4())[:8]
        category = session.query(Category).filter_by(pharmacy_id=pharmacy.id).first()
        if category is None:
            category = _persist(session, Category(pharmacy_id=pharmacy.id, name='General', slug='general'))
        return _persist(session, Product(
            pharmacy_id=pharmacy.id,
            category_id=category.id,
            name=name,
            slug=f'product-{suffix}',
            sku=f'SKU-{suffix}',
            price=Decimal(price),
            discounted_price=Decimal(discounted) if discounted else None,
            stock_quantity=stock,
            active=active
        ))
    return factory


@pytest.fixture(scope='function')
def product(make_product, pharmacy):
    """Stock 10, price 100.00."""
    return make_product(pharmacy)


@pytest.fixture(scope='function')
def product2(make_product, pharmacy2):
    return make_product(pharmacy2, name='Ibuprofen 400mg', price='50.00', stock=5)


@pytest.fixture(scope='function')
def fill_cart(session):
    """Put (product, quantity) pairs into a customer's cart through the cart service."""
    def factory(customer, pharmacy, *lines):
        cart = cart_service.get_or_create_cart(session, customer.id, pharmacy.id)
        for product, quantity in lines:
            cart_service.add_item(session, cart, session.get(Product, product.id), quantity)
        return cart
    return factory


def _login(app, user, pharmacy=None):
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['user_id'] = user.id
        if pharmacy is not None:
            sess['pharmacy_id'] = pharmacy.id
    return client


@pytest.fixture(scope='function')
def customer_client(app, customer):
    """Authenticated customer."""
    return _login(app, customer)


@pytest.fixture(scope='function')
def owner_client(app, owner, pharmacy):
    """Authenticated pharmacy owner with staff context."""
    return _login(app, owner, pharmacy)


@pytest.fixture(scope='function')
def staff_client(app, staff, pharmacy):
    return _login(app, staff, pharmacy)


@pytest.fixture(scope='function')
def owner2_client(app, owner2, pharmacy2):
    return _login(app, owner2, pharmacy2)


@pytest.fixture(scope='function')
def login(app):
    """Build an authenticated client for any user (and optional staff pharmacy)."""
    def factory(user, pharmacy=None):
        return _login(app, user, pharmacy)
    return factory
