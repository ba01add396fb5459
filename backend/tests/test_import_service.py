from decimal import Decimal
from io import BytesIO

import pytest
from openpyxl import Workbook

from smartpos.entities import ShopDetails
from smartpos.services import import_service
from smartpos.services.import_service import ImportError


def _xlsx(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


class TestReadRows:
    def test_csv_with_bom(self):
        data = '\ufeffName,Price\nTea,20\nCoffee,45\n'.encode('utf-8')

        rows = import_service.read_rows('inventory.csv', BytesIO(data))

        assert rows == [{'Name': 'Tea', 'Price': '20'}, {'Name': 'Coffee', 'Price': '45'}]

    def test_xlsx_skips_blank_rows(self):
        stream = _xlsx([
            ['Product Name', 'Unit Price', 'Quantity'],
            ['Tea', 20, 5],
            [None, None, None],
            ['Coffee', 45.5, 2],
        ])

        rows = import_service.read_rows('Inventory.XLSX', stream)

        assert [r['Product Name'] for r in rows] == ['Tea', 'Coffee']
        assert rows[1]['Unit Price'] == 45.5

    def test_unsupported_extension(self):
        with pytest.raises(ImportError):
            import_service.read_rows('inventory.pdf', BytesIO(b'%PDF'))

    def test_corrupt_workbook(self):
        with pytest.raises(ImportError):
            import_service.read_rows('inventory.xlsx', BytesIO(b'not a zip file'))

    def test_csv_must_be_utf8(self):
        with pytest.raises(ImportError):
            import_service.read_rows('customers.csv', BytesIO('Name\nJos\xe9\n'.encode('latin-1')))


class TestProductImport:
    def test_aliases_and_defaults(self, store):
        shop = ShopDetails(default_tax_rate=Decimal('12'))
        rows = [
            {'Product Name': 'Tea', 'Unit Price': '20', 'Quantity': '5', 'Tax Rate (%)': '0'},
            {'name': 'Scone', 'price': 35, 'Category': 'Snacks', 'MinStockLevel': 2},
            {'NAME': 'Water'},
        ]

        result = import_service.import_products(store, rows, shop)

        assert (result.imported, result.skipped) == (3, 0)
        by_name = {p.name: p for p in store.get_products()}
        assert by_name['Tea'].stock == 5
        # an explicit zero rate is kept, not replaced by the shop default
        assert by_name['Tea'].tax_rate == Decimal('0')
        assert by_name['Scone'].category == 'Snacks'
        assert by_name['Scone'].min_stock_level == 2
        assert by_name['Scone'].tax_rate == Decimal('12')
        assert by_name['Water'].price == Decimal('0')
        assert by_name['Water'].category == 'General'
        assert by_name['Water'].min_stock_level == 5

    def test_invalid_rows_are_counted_as_skipped(self, store, shop):
        rows = [
            {'Name': ''},
            {'Price': '10'},
            {'Name': 'Refund', 'Price': '-5'},
            {'Name': 'Tea', 'Price': '20'},
        ]

        result = import_service.import_products(store, rows, shop)

        assert result.to_dict() == {'imported': 1, 'skipped': 3}
        assert [p.name for p in store.get_products()] == ['Tea']

    def test_ids_are_batch_scoped(self, store, shop):
        result = import_service.import_products(store, [{'Name': 'A'}, {'Name': 'B'}], shop)

        assert all(i.startswith('imp-') for i in result.ids)
        assert result.ids[0].endswith('-0')
        assert result.ids[1].endswith('-1')


class TestCustomerImport:
    def test_name_and_phone_required(self, store):
        rows = [
            {'Customer Name': 'Asha', 'Customer Phone': '9000000001', 'Location': 'Pune'},
            {'Name': 'No Phone'},
            {'Phone': '123'},
        ]

        result = import_service.import_customers(store, rows)

        assert (result.imported, result.skipped) == (1, 2)
        customer = store.get_customers()[0]
        assert (customer.name, customer.phone, customer.place) == ('Asha', '9000000001', 'Pune')
        assert customer.id.startswith('cust-imp-')
