"""
Pytest fixtures for SmartPOS backend tests.

Provides a fresh in-memory database per test, the app's terminal and data
store, a remote-backed variant and a test client.
"""

from decimal import Decimal

import pytest

from smartpos import create_app
from smartpos.entities import Product, ShopDetails
from smartpos.extensions import db
from smartpos.services.datastore import DataStore
from smartpos.services.remote_store import RemoteUnavailableError
from smartpos.services.terminal_service import EXTENSION_KEY


BASE_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'SEED_DEMO_CATALOG': False,
    'REMOTE_DATABASE_URL': None,
    'GEMINI_API_KEY': None,
    'REPORT_TIMEZONE': 'UTC',
}


def _make_app(**overrides):
    config = dict(BASE_CONFIG)
    config.update(overrides)
    return create_app(config)


@pytest.fixture(scope='function')
def app():
    """Application with an empty local database (local-only mode)."""
    app = _make_app()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def remote_app():
    """Application dual-writing to an in-memory remote store."""
    app = _make_app(REMOTE_DATABASE_URL='sqlite://')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        app.extensions[EXTENSION_KEY].store.remote.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def terminal(app):
    terminal = app.extensions[EXTENSION_KEY]
    terminal.load()
    return terminal


@pytest.fixture(scope='function')
def store(app):
    """Local-only data store bound to the app's database."""
    return DataStore()


@pytest.fixture(scope='function')
def shop():
    """Scenario shop: tax enabled at 5%."""
    return ShopDetails(tax_enabled=True, default_tax_rate=Decimal('5'))


@pytest.fixture(scope='function')
def coffee(store):
    """Product "1": price 100, stock 10, tax 5%."""
    return store.save_product(Product(
        id='1',
        name='Coffee',
        price=Decimal('100'),
        stock=10,
        category='Beverages',
        tax_rate=Decimal('5'),
    ))


class UnreachableRemote:
    """Remote store stand-in whose every call fails like a dropped connection."""

    def __init__(self):
        self.calls = []

    def _fail(self, name, *args):
        self.calls.append(name)
        raise RemoteUnavailableError(f'{name} failed: connection refused')

    def fetch_all(self, name):
        self._fail('fetch_all', name)

    def fetch_one(self, name, row_id):
        self._fail('fetch_one', name, row_id)

    def fetch_ids(self, name):
        self._fail('fetch_ids', name)

    def upsert(self, name, record):
        self._fail('upsert', name, record)

    def delete(self, name, row_id):
        self._fail('delete', name, row_id)

    def clear(self, names):
        self._fail('clear', names)

    def table_digest(self, name):
        self._fail('table_digest', name)


@pytest.fixture(scope='function')
def unreachable_remote():
    return UnreachableRemote()
