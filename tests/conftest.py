"""
Shared fixtures for the concession test suite.

Storage-backed tests run twice: against the in-memory backend and against
SQLAlchemy on a throwaway SQLite file.
"""
import pytest
from sqlalchemy.orm import sessionmaker

from concession.celery_worker import celery_app
from concession.data.database import init_db, make_engine
from concession.data.seed import seed_catalog
from concession.domain.entities import Account
from concession.repos.factory import MEMORY_BACKEND, SQL_BACKEND, build_repositories
from concession.repos.memory import MemoryStore
from concession.services.order_engine import OrderEngine

celery_app.conf.task_always_eager = True

CUSTOMER_ID = 1001
OTHER_CUSTOMER_ID = 1002


class RecordingNotifier:
    def __init__(self):
        self.new_orders = []
        self.ready_orders = []

    def notify_new_order(self, order):
        self.new_orders.append(order.id)

    def notify_order_ready(self, order):
        self.ready_orders.append(order.id)


# ============================================================================
# Storage
# ============================================================================

@pytest.fixture(params=[MEMORY_BACKEND, SQL_BACKEND])
def repo_factory(request, tmp_path):
    """
    Returns a callable building a fresh ``Repositories`` over one shared
    store. Each SQL call gets its own Session, like one request each.
    """
    if request.param == MEMORY_BACKEND:
        store = MemoryStore()
        yield lambda: build_repositories(MEMORY_BACKEND, store=store)
        return

    engine = make_engine(f"sqlite:///{tmp_path / 'concession.db'}")
    init_db(engine)
    make_session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    sessions = []

    def factory():
        db = make_session()
        sessions.append(db)
        return build_repositories(SQL_BACKEND, db=db)

    yield factory

    for db in sessions:
        db.close()
    engine.dispose()


@pytest.fixture
def repos(repo_factory):
    return repo_factory()


@pytest.fixture
def products(repos):
    """Seeded catalog by product name."""
    seed_catalog(repos.products)
    return {p.name: p for p in repos.products.list_available()}


@pytest.fixture
def customer(repos):
    return repos.accounts.create_account(Account(id=CUSTOMER_ID, display_name="Customer One"))


@pytest.fixture
def other_customer(repos):
    return repos.accounts.create_account(Account(id=OTHER_CUSTOMER_ID, display_name="Customer Two"))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(repos, notifier):
    return OrderEngine(repos, notifier=notifier)


@pytest.fixture
def filled_cart(engine, customer, products):
    """Cart of the customer with one sweet popcorn (150.00)."""
    cart = engine.get_or_create_cart(customer.id).order
    return engine.add_item(cart.id, products["Sweet popcorn"].id, 1, products["Sweet popcorn"].price).order


@pytest.fixture
def place_order(engine, products, repos):
    """Places a one-line order for ``account_id`` and returns the snapshot."""

    def _place(account_id, destination="counter_a", coordinates=None, product="Cola"):
        if repos.accounts.get_account(account_id) is None:
            repos.accounts.create_account(Account(id=account_id, display_name=f"Customer {account_id}"))
        cart = engine.get_or_create_cart(account_id).order
        engine.add_item(cart.id, products[product].id, 1, products[product].price)
        outcome = engine.checkout(cart.id, destination, coordinates)
        assert outcome, outcome.message
        return outcome.order

    return _place
