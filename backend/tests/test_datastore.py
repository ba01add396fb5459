"""
Data store adapter tests.

Verifies:
- Local-first writes, best-effort remote writes, remote-preferred reads
- An unreachable remote degrades to local-only semantics
- A local failure raises LocalStoreError and skips the remote write
- Change feed notifications reach subscribers and the terminal
- Embedded images are downscaled before they are persisted
"""

import base64
import io
from dataclasses import replace
from decimal import Decimal

import pytest
from PIL import Image

from smartpos.entities import Customer, Product, ShopDetails
from smartpos.services.change_feed import ChangeEvent, ChangeFeed
from smartpos.services.datastore import DataStore, LocalStoreError
from smartpos.services.remote_store import RemoteStore
from smartpos.services.terminal_service import EXTENSION_KEY


def _png_data_url(width, height):
    buf = io.BytesIO()
    Image.new('RGBA', (width, height), (200, 40, 40, 255)).save(buf, format='PNG')
    return 'data:image/png;base64,' + base64.b64encode(buf.getvalue()).decode('ascii')


def _image_size(data_url):
    _, encoded = data_url.split(',', 1)
    with Image.open(io.BytesIO(base64.b64decode(encoded))) as img:
        return img.size, img.format


@pytest.fixture
def remote(app):
    remote = RemoteStore('sqlite://')
    yield remote
    remote.dispose()


@pytest.fixture
def dual(remote):
    return DataStore(remote)


def _tea(**changes):
    product = Product(id='t1', name='Tea', price=Decimal('40'), stock=12, category='Beverages')
    return replace(product, **changes)


# =============================================================================
# LOCAL ONLY
# =============================================================================


class TestLocalOnly:
    def test_products_sorted_by_name(self, store):
        store.save_product(_tea(id='b', name='toast'))
        store.save_product(_tea(id='a', name='Bun'))

        assert [p.name for p in store.get_products()] == ['Bun', 'toast']

    def test_subscribe_is_none_without_remote(self, store):
        assert store.is_remote_configured() is False
        assert store.subscribe({'products': lambda e: None}) is None

    def test_shop_details_none_until_saved(self, store):
        assert store.get_shop_details() is None

        store.save_shop_details(ShopDetails(name='Corner Cafe'))

        assert store.get_shop_details().name == 'Corner Cafe'
        assert store.get_shop_details().default_tax_rate == Decimal('5')

    def test_negative_stock_is_a_local_failure(self, store):
        with pytest.raises(LocalStoreError):
            store.save_product(_tea(stock=-1))
        assert store.get_products() == []

    def test_reset_all(self, store):
        store.save_product(_tea())
        store.save_customer(Customer(id='c1', name='Ravi', phone='1'))
        store.save_shop_details(ShopDetails())

        store.reset_all()

        assert store.get_products() == []
        assert store.get_customers() == []
        assert store.get_shop_details() is None


# =============================================================================
# DUAL WRITE
# =============================================================================


class TestDualWrite:
    def test_write_lands_in_both_stores(self, dual, remote):
        dual.save_product(_tea())

        rows = remote.fetch_all('products')
        assert [(r['id'], r['name'], r['stock']) for r in rows] == [('t1', 'Tea', 12)]

    def test_reads_prefer_remote(self, dual, remote, store):
        dual.save_product(_tea())
        # another device changed the shared row
        remote.upsert('products', _tea(stock=3).to_record())

        assert dual.get_product('t1').stock == 3
        assert store.get_product('t1').stock == 12

    def test_local_failure_skips_remote(self, dual, remote):
        with pytest.raises(LocalStoreError):
            dual.save_product(_tea(stock=-1))
        assert remote.fetch_all('products') == []

    def test_delete_and_clear_reach_remote(self, dual, remote):
        dual.save_customer(Customer(id='c1', name='Ravi', phone='1'))
        dual.save_customer(Customer(id='c2', name='Mina', phone='2'))

        dual.delete_customer('c1')
        assert [r['id'] for r in remote.fetch_all('customers')] == ['c2']

        dual.clear_customers()
        assert remote.fetch_all('customers') == []

    def test_shop_details_use_record_shape_remotely(self, dual, remote):
        dual.save_shop_details(ShopDetails(name='Corner Cafe', tax_enabled=False))

        record = remote.fetch_one('settings', 'main_details')
        assert record['name'] == 'Corner Cafe'
        assert record['taxEnabled'] is False
        assert dual.get_shop_details().tax_enabled is False


class TestUnreachableRemote:
    @pytest.fixture
    def degraded(self, app, unreachable_remote):
        return DataStore(unreachable_remote)

    def test_writes_succeed_locally(self, degraded, unreachable_remote, store):
        degraded.save_product(_tea())

        assert 'upsert' in unreachable_remote.calls
        assert store.get_product('t1').name == 'Tea'

    def test_reads_fall_back_to_local(self, degraded):
        degraded.save_product(_tea())
        degraded.save_customer(Customer(id='c1', name='Ravi', phone='1'))

        assert [p.id for p in degraded.get_products()] == ['t1']
        assert [c.id for c in degraded.get_customers()] == ['c1']
        assert degraded.get_orders() == []

    def test_order_ids_use_local_only(self, degraded):
        assert degraded.order_ids() == []

    def test_shop_details_fall_back_to_local(self, degraded):
        degraded.save_shop_details(ShopDetails(name='Offline Cafe'))
        assert degraded.get_shop_details().name == 'Offline Cafe'

    def test_malformed_remote_rows_fall_back(self, dual, remote):
        dual.save_product(_tea())
        remote.upsert('orders', {'id': '1', 'date': 'not a date', 'items': [], 'total': 1, 'taxTotal': 0})

        assert dual.get_orders() == []


# =============================================================================
# CHANGE FEED
# =============================================================================


class TestChangeFeed:
    def test_changed_table_is_published(self, remote):
        feed = ChangeFeed(remote, interval=60)
        seen = []
        sub = feed.subscribe({'products': seen.append})
        feed.prime()

        assert feed.poll_once() == []
        remote.upsert('products', _tea().to_record())
        assert feed.poll_once() == [ChangeEvent('products')]

        assert sub.pending() == 1
        sub.dispatch_pending()
        assert seen == [ChangeEvent('products')]

    def test_duplicate_events_collapse(self, remote):
        feed = ChangeFeed(remote)
        calls = []
        sub = feed.subscribe({'orders': calls.append})

        feed.publish(ChangeEvent('orders'))
        feed.publish(ChangeEvent('orders'))
        feed.publish(ChangeEvent('customers'))

        assert sub.dispatch_pending() == [ChangeEvent('orders')]
        assert len(calls) == 1

    def test_unsubscribed_receives_nothing(self, remote):
        feed = ChangeFeed(remote)
        sub = feed.subscribe({'products': lambda e: None})
        feed.unsubscribe(sub)

        feed.publish(ChangeEvent('products'))

        assert sub.pending() == 0

    def test_terminal_refreshes_on_remote_change(self, remote_app):
        terminal = remote_app.extensions[EXTENSION_KEY]
        terminal.load()
        feed = terminal.store.change_feed
        feed.prime()
        assert terminal.state.products == ()

        # a second terminal adds a product to the shared store
        terminal.store.remote.upsert('products', _tea().to_record())
        feed.poll_once()
        terminal.sync()

        assert [p.id for p in terminal.state.products] == ['t1']


# =============================================================================
# IMAGES
# =============================================================================


class TestImageCompression:
    def test_product_image_is_downscaled(self, store):
        saved = store.save_product(_tea(image=_png_data_url(800, 400)))

        assert saved.image.startswith('data:image/jpeg;base64,')
        assert _image_size(saved.image) == ((400, 200), 'JPEG')
        assert store.get_product('t1').image == saved.image

    def test_small_image_keeps_its_size(self, store):
        saved = store.save_product(_tea(image=_png_data_url(120, 80)))
        assert _image_size(saved.image) == ((120, 80), 'JPEG')

    def test_plain_url_is_stored_as_is(self, store):
        saved = store.save_product(_tea(image='https://cdn.example.com/tea.png'))
        assert saved.image == 'https://cdn.example.com/tea.png'

    def test_shop_logo_and_qr_are_compressed(self, store):
        saved = store.save_shop_details(ShopDetails(
            logo=_png_data_url(1000, 500),
            payment_qr_code=_png_data_url(600, 600),
        ))

        assert _image_size(saved.logo)[0] == (400, 200)
        assert _image_size(saved.payment_qr_code)[0] == (400, 400)
