"""
HTTP API tests.

Verifies:
- Catalog and customer CRUD with payload validation (400/404)
- Billing flow over HTTP: add, line edits, checkout, receipt
- Order edit/delete keep stock consistent
- Settings, factory reset, day-end report, imports and the AI assist
- Health reports local-only and remote-backed modes
"""

import io

import pytest
from openpyxl import load_workbook

from smartpos.services.export_service import XLSX_MIMETYPE


def _create_product(client, **fields):
    payload = {'name': 'Coffee', 'price': 100, 'stock': 10, 'category': 'Beverages', 'tax_rate': 5}
    payload.update(fields)
    resp = client.post('/api/products', json=payload)
    assert resp.status_code == 201, resp.json
    return resp.json


def _checkout(client, product_id, qty=2):
    assert client.post('/api/billing/cart/items', json={'product_id': product_id, 'quantity': qty}).status_code == 200
    resp = client.post('/api/billing/checkout')
    assert resp.status_code == 201, resp.json
    return resp.json['order']


def _stock(client, product_id):
    items = client.get('/api/products').json['items']
    return next(p['stock'] for p in items if p['id'] == product_id)


# =============================================================================
# SYSTEM
# =============================================================================


class TestHealth:
    def test_local_only(self, client):
        resp = client.get('/api/health')

        assert resp.status_code == 200
        assert resp.json['status'] == 'ok'
        assert resp.json['checks']['database']['status'] == 'healthy'
        assert resp.json['checks']['remote'] == {'status': 'disabled'}

    def test_remote_backed(self, remote_app):
        client = remote_app.test_client()
        resp = client.get('/api/health')

        assert resp.status_code == 200
        assert resp.json['checks']['remote']['status'] == 'healthy'
        assert resp.json['checks']['remote']['change_feed'] == 'stopped'

    def test_cors_for_dev_frontend(self, client):
        resp = client.get('/api/health', headers={'Origin': 'http://localhost:5173'})
        assert resp.headers['Access-Control-Allow-Origin'] == 'http://localhost:5173'

        resp = client.get('/api/health', headers={'Origin': 'https://evil.example'})
        assert 'Access-Control-Allow-Origin' not in resp.headers


# =============================================================================
# CATALOG
# =============================================================================


class TestProducts:
    def test_create_and_list(self, client):
        created = _create_product(client)

        assert created['price'] == 100.0
        assert created['category'] == 'Beverages'
        assert created['min_stock_level'] == 5

        listing = client.get('/api/products').json
        assert listing['count'] == 1
        assert listing['items'][0]['id'] == created['id']

    @pytest.mark.parametrize('payload', [
        {'name': 'Tea'},
        {'name': 'Tea', 'price': -1},
        {'name': '   ', 'price': 10},
        {'name': 'Tea', 'price': 10, 'stock': 1.5},
        {'name': 'Tea', 'price': 10, 'sku': 'TEA-1'},
        {'name': 'Tea', 'price': 10, 'tax_rate': 101},
    ])
    def test_invalid_payloads(self, client, payload):
        resp = client.post('/api/products', json=payload)
        assert resp.status_code == 400
        assert 'error' in resp.json

    def test_search_and_category_filter(self, client):
        _create_product(client, name='Cappuccino')
        _create_product(client, name='Croissant', category='Snacks')

        assert [p['name'] for p in client.get('/api/products?q=cap').json['items']] == ['Cappuccino']
        assert [p['name'] for p in client.get('/api/products?category=Snacks').json['items']] == ['Croissant']
        assert client.get('/api/products?category=All').json['count'] == 2
        assert client.get('/api/products/categories').json['items'] == ['Beverages', 'Snacks']

    def test_update_and_delete(self, client):
        created = _create_product(client)

        resp = client.put(f"/api/products/{created['id']}", json={'stock': 3, 'category': ''})
        assert resp.status_code == 200
        assert resp.json['stock'] == 3
        assert resp.json['category'] == 'General'
        assert resp.json['is_low_stock'] is True

        assert client.delete(f"/api/products/{created['id']}").status_code == 200
        assert client.get('/api/products').json['count'] == 0

    def test_unknown_product_is_404(self, client):
        assert client.put('/api/products/nope', json={'stock': 1}).status_code == 404
        assert client.delete('/api/products/nope').status_code == 404

    def test_low_stock_view(self, client):
        _create_product(client, name='Tea', stock=3)
        _create_product(client, name='Milk', stock=0)
        _create_product(client, name='Sugar', stock=50)

        resp = client.get('/api/products/low-stock').json

        assert [p['name'] for p in resp['low_stock']] == ['Tea']
        assert [p['name'] for p in resp['out_of_stock']] == ['Milk']

    def test_export(self, client):
        _create_product(client)

        resp = client.get('/api/products/export')

        assert resp.status_code == 200
        assert resp.mimetype == XLSX_MIMETYPE
        assert 'Inventory_Export_' in resp.headers['Content-Disposition']


# =============================================================================
# BILLING
# =============================================================================


class TestBilling:
    def test_scenario_checkout(self, client):
        product = _create_product(client)

        resp = client.post('/api/billing/cart/items', json={'product_id': product['id'], 'quantity': 2})
        cart = resp.json['cart']
        assert cart['mode'] == 'BUILDING'
        assert cart['totals'] == {'sub_total': 200.0, 'tax_total': 10.0, 'grand_total': 210.0}

        resp = client.post('/api/billing/checkout')
        assert resp.status_code == 201
        assert resp.json['order']['id'] == '1'
        assert resp.json['order']['total'] == 210.0
        assert resp.json['cart']['mode'] == 'IDLE'
        assert _stock(client, product['id']) == 8
        assert client.get('/api/orders/next-id').json == {'next_id': '2'}

    def test_over_reservation_is_409(self, client):
        product = _create_product(client)

        resp = client.post('/api/billing/cart/items', json={'product_id': product['id'], 'quantity': 11})

        assert resp.status_code == 409
        assert resp.json['error'] == 'Only 10 items available.'
        assert resp.json['details']['available'] == 10
        assert client.get('/api/billing/cart').json['cart']['items'] == []

    def test_unknown_product_is_404(self, client):
        resp = client.post('/api/billing/cart/items', json={'product_id': 'ghost'})
        assert resp.status_code == 404

    def test_line_edits_return_warnings(self, client):
        product = _create_product(client)
        client.post('/api/billing/cart/items', json={'product_id': product['id'], 'quantity': 1})
        path = f"/api/billing/cart/items/{product['id']}"

        resp = client.patch(path, json={'qty': 'abc', 'price': 80, 'name': 'House Coffee'})
        assert resp.status_code == 200
        assert resp.json['warning'] == 'Quantity must be a positive integer'
        item = resp.json['cart']['items'][0]
        assert (item['qty'], item['price'], item['name']) == (1, 80.0, 'House Coffee')

        resp = client.patch(path, json={'qty': 50})
        assert resp.json['warning'] == 'Max available: 10'

        assert client.patch('/api/billing/cart/items/ghost', json={'qty': 1}).status_code == 404

    def test_customer_and_clear(self, client):
        product = _create_product(client)
        client.post('/api/billing/cart/items', json={'product_id': product['id']})

        resp = client.put('/api/billing/cart/customer', json={'name': 'Asha', 'phone': '9000000001'})
        assert resp.json['cart']['customer']['name'] == 'Asha'

        resp = client.delete('/api/billing/cart')
        assert resp.json['cart']['items'] == []
        assert resp.json['cart']['customer'] is None

    def test_checkout_saves_customer(self, client):
        product = _create_product(client)
        client.put('/api/billing/cart/customer', json={'name': 'Asha', 'phone': '9000000001', 'place': 'Pune'})

        order = _checkout(client, product['id'])

        assert order['customer'] == {'name': 'Asha', 'phone': '9000000001', 'place': 'Pune'}
        assert [c['phone'] for c in client.get('/api/customers').json['items']] == ['9000000001']

    def test_empty_cart_checkout_is_400(self, client):
        assert client.post('/api/billing/checkout').status_code == 400

    def test_quick_add(self, client):
        resp = client.post('/api/billing/quick-add', json={'name': 'Muffin', 'price': 60, 'stock': 4})

        assert resp.status_code == 201
        assert resp.json['product']['name'] == 'Muffin'
        assert resp.json['cart']['items'][0]['qty'] == 1
        assert 'warning' not in resp.json

        assert client.post('/api/billing/quick-add', json={'name': 'Muffin', 'price': 'x'}).status_code == 400

    def test_quick_add_rejects_fractional_stock(self, client):
        for stock in (3.7, '3.7', '1e2', True):
            resp = client.post('/api/billing/quick-add', json={'name': 'Muffin', 'price': 60, 'stock': stock})
            assert resp.status_code == 400, stock
        assert client.get('/api/products').json['items'] == []

        resp = client.post('/api/billing/quick-add', json={'name': 'Muffin', 'price': 60, 'stock': 3.0})
        assert resp.status_code == 201
        assert resp.json['product']['stock'] == 3


# =============================================================================
# ORDERS
# =============================================================================


class TestOrders:
    def test_receipt(self, client):
        product = _create_product(client)
        order = _checkout(client, product['id'])

        resp = client.get(f"/api/orders/{order['id']}/receipt")

        assert resp.status_code == 200
        html = resp.get_data(as_text=True)
        assert 'Order Transaction ID' in html
        assert '210.00' in html
        assert 'Powered by SmartPOS' in html

    def test_edit_round_trip(self, client):
        product = _create_product(client)
        order = _checkout(client, product['id'])

        resp = client.post(f"/api/orders/{order['id']}/edit")
        assert resp.status_code == 200
        assert resp.json['cart']['mode'] == 'EDITING'
        assert resp.json['cart']['editing_order_id'] == order['id']
        assert _stock(client, product['id']) == 10

        # a second edit and clearing the bill are both refused mid-edit
        assert client.post(f"/api/orders/{order['id']}/edit").status_code == 409
        assert client.delete('/api/billing/cart').status_code == 400

        resp = client.post('/api/billing/checkout')
        assert resp.json['order']['id'] == order['id']
        assert resp.json['order']['total'] == order['total']
        assert _stock(client, product['id']) == 8
        assert client.get('/api/orders').json['count'] == 1

    def test_cancel_edit_keeps_restored_stock(self, client):
        product = _create_product(client)
        order = _checkout(client, product['id'])
        client.post(f"/api/orders/{order['id']}/edit")

        resp = client.post('/api/billing/cancel-edit')

        assert resp.json['cart']['mode'] == 'IDLE'
        assert _stock(client, product['id']) == 10

    def test_edit_unknown_order_is_404(self, client):
        assert client.post('/api/orders/999/edit').status_code == 404
        assert client.get('/api/orders/999').status_code == 404

    def test_delete_restores_stock(self, client):
        product = _create_product(client)
        order = _checkout(client, product['id'])
        assert _stock(client, product['id']) == 8

        assert client.delete(f"/api/orders/{order['id']}").status_code == 200

        assert _stock(client, product['id']) == 10
        assert client.get('/api/orders').json['count'] == 0
        assert client.delete(f"/api/orders/{order['id']}").status_code == 404

    def test_clear_history_leaves_stock(self, client):
        product = _create_product(client)
        _checkout(client, product['id'])

        assert client.delete('/api/orders').status_code == 200

        assert client.get('/api/orders').json['count'] == 0
        assert _stock(client, product['id']) == 8

    def test_export(self, client):
        product = _create_product(client)
        _checkout(client, product['id'])

        resp = client.get('/api/orders/export')

        assert resp.status_code == 200
        assert 'Shop_Orders_' in resp.headers['Content-Disposition']

    def test_history_search(self, client):
        product = _create_product(client)
        client.put('/api/billing/cart/customer', json={'name': 'Asha Rao', 'phone': '9000000001'})
        first = _checkout(client, product['id'], qty=1)
        client.put('/api/billing/cart/customer', json={'name': 'Ravi', 'phone': '9111111112'})
        second = _checkout(client, product['id'], qty=1)

        def ids(query):
            return [o['id'] for o in client.get('/api/orders', query_string={'q': query}).json['items']]

        assert ids('ASHA') == [first['id']]
        assert ids('9111') == [second['id']]
        assert ids(second['id']) == [second['id']]
        assert ids('nobody') == []
        assert sorted(ids('')) == sorted([first['id'], second['id']])

    def test_history_date_range_is_inclusive(self, client):
        product = _create_product(client)
        order = _checkout(client, product['id'], qty=1)
        day = order['date'][:10]

        def count(**params):
            return client.get('/api/orders', query_string={'tz': 'UTC', **params}).json['count']

        assert count(**{'from': day, 'to': day}) == 1
        assert count(**{'from': day}) == 1
        assert count(to=day) == 1
        assert count(**{'from': '2999-01-01'}) == 0
        assert count(to='2000-01-01') == 0
        assert client.get('/api/orders?from=31/01/2025').status_code == 400

    def test_export_uses_filters(self, client):
        product = _create_product(client)
        client.put('/api/billing/cart/customer', json={'name': 'Asha', 'phone': '9000000001'})
        _checkout(client, product['id'], qty=1)
        _checkout(client, product['id'], qty=1)

        resp = client.get('/api/orders/export', query_string={'q': 'asha'})

        assert resp.status_code == 200
        wb = load_workbook(io.BytesIO(resp.data))
        assert wb.active.max_row == 2


# =============================================================================
# CUSTOMERS
# =============================================================================


class TestCustomers:
    def test_crud_and_search(self, client):
        resp = client.post('/api/customers', json={'name': 'Asha', 'phone': '9000000001', 'place': 'Pune'})
        assert resp.status_code == 201
        customer_id = resp.json['id']
        client.post('/api/customers', json={'name': 'Ravi', 'phone': '9000000002'})

        assert [c['name'] for c in client.get('/api/customers/search?q=asha').json['items']] == ['Asha']
        assert len(client.get('/api/customers/search?q=9000').json['items']) == 2
        assert client.get('/api/customers/search?q=').json['items'] == []

        resp = client.put(f'/api/customers/{customer_id}', json={'place': 'Mumbai'})
        assert resp.json['place'] == 'Mumbai'

        assert client.delete(f'/api/customers/{customer_id}').status_code == 200
        assert client.get('/api/customers').json['count'] == 1

    @pytest.mark.parametrize('payload', [
        {'name': 'Asha'},
        {'name': 'Asha', 'phone': '   '},
        {'name': 'Asha', 'phone': '1', 'email': 'a@b.c'},
    ])
    def test_invalid_payloads(self, client, payload):
        assert client.post('/api/customers', json=payload).status_code == 400

    def test_unknown_customer_is_404(self, client):
        assert client.put('/api/customers/nope', json={'place': 'x'}).status_code == 404
        assert client.delete('/api/customers/nope').status_code == 404


# =============================================================================
# SETTINGS
# =============================================================================


class TestSettings:
    def test_defaults_and_partial_update(self, client):
        settings = client.get('/api/settings').json['settings']
        assert settings['name'] == 'SmartPOS Demo Shop'
        assert settings['default_tax_rate'] == 5.0

        resp = client.put('/api/settings', json={'name': 'Corner Cafe', 'tax_enabled': False})

        assert resp.status_code == 200
        assert resp.json['settings']['name'] == 'Corner Cafe'
        assert resp.json['settings']['tax_enabled'] is False
        # untouched fields keep their values
        assert resp.json['settings']['footer_message'] == 'Thank you for your business!'

    def test_tax_disabled_bill_has_no_tax(self, client):
        client.put('/api/settings', json={'tax_enabled': False})
        product = _create_product(client)

        resp = client.post('/api/billing/cart/items', json={'product_id': product['id'], 'quantity': 2})

        assert resp.json['cart']['totals'] == {'sub_total': 200.0, 'tax_total': 0.0, 'grand_total': 200.0}

    @pytest.mark.parametrize('payload', [
        {'default_tax_rate': 150},
        {'default_tax_rate': 'high'},
        {'name': ''},
        {'theme': 'dark'},
    ])
    def test_invalid_settings(self, client, payload):
        assert client.put('/api/settings', json=payload).status_code == 400

    def test_factory_reset_requires_confirmation(self, client):
        _create_product(client)

        assert client.post('/api/settings/factory-reset', json={}).status_code == 400
        assert client.get('/api/products').json['count'] == 1

        resp = client.post('/api/settings/factory-reset', json={'confirm': True})

        assert resp.status_code == 200
        assert resp.json['settings']['name'] == 'SmartPOS Demo Shop'
        assert client.get('/api/products').json['count'] == 0


# =============================================================================
# ANALYTICS
# =============================================================================


class TestAnalytics:
    def test_today(self, client):
        product = _create_product(client)
        _checkout(client, product['id'])

        report = client.get('/api/analytics/daily').json['report']

        assert report['order_count'] == 1
        assert report['total_sales'] == 210.0
        assert report['items'] == [{'name': 'Coffee', 'qty': 2, 'revenue': 200.0}]

    def test_other_day_is_empty(self, client):
        report = client.get('/api/analytics/daily?date=2001-01-01').json['report']
        assert report['order_count'] == 0
        assert report['date'] == '2001-01-01'

    def test_bad_date_or_timezone(self, client):
        product = _create_product(client)
        _checkout(client, product['id'])

        assert client.get('/api/analytics/daily?date=2025-13-01').status_code == 400
        assert client.get('/api/analytics/daily?tz=Mars/Olympus_Mons').status_code == 400

    def test_export_and_print(self, client):
        resp = client.get('/api/analytics/daily/export?date=2025-01-31')
        assert resp.status_code == 200
        assert 'Z_Report_2025-01-31.xlsx' in resp.headers['Content-Disposition']

        resp = client.get('/api/analytics/daily/print?date=2025-01-31')
        assert resp.status_code == 200
        assert 'No sales recorded for this day.' in resp.get_data(as_text=True)


# =============================================================================
# IMPORTS / AI
# =============================================================================


class TestImports:
    def test_products_csv(self, client):
        data = {'file': (io.BytesIO(b'Name,Price,Stock\nTea,20,5\n,10,1\n'), 'inventory.csv')}

        resp = client.post('/api/imports/products', data=data, content_type='multipart/form-data')

        assert resp.status_code == 201
        assert resp.json == {'imported': 1, 'skipped': 1}
        assert [p['name'] for p in client.get('/api/products').json['items']] == ['Tea']

    def test_customers_csv(self, client):
        data = {'file': (io.BytesIO(b'Name,Phone,Place\nAsha,9000000001,Pune\n'), 'customers.csv')}

        resp = client.post('/api/imports/customers', data=data, content_type='multipart/form-data')

        assert resp.json == {'imported': 1, 'skipped': 0}

    def test_missing_or_unsupported_file(self, client):
        assert client.post('/api/imports/products', data={}, content_type='multipart/form-data').status_code == 400

        data = {'file': (io.BytesIO(b'{}'), 'inventory.json')}
        assert client.post('/api/imports/products', data=data, content_type='multipart/form-data').status_code == 400


class TestAiAssist:
    def test_without_api_key(self, client):
        resp = client.post('/api/ai/describe', json={'name': 'Latte'})
        assert resp.status_code == 200
        assert resp.json == {'suggestion': None}

    def test_name_required(self, client):
        assert client.post('/api/ai/describe', json={}).status_code == 400
