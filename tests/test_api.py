# -*- coding: utf-8 -*-
"""API JSON de Flask: rutas delgadas sobre los servicios."""
import io

import pytest

from sim_stock.services.backup_service import XLSX_MIMETYPE


def _post(client, url, data, account=None):
    headers = {'X-Account-Id': account} if account else {}
    return client.post(url, json=data, headers=headers)


@pytest.fixture
def sim_type_id(client):
    r = _post(client, '/api/sim-types', {'name': 'Viettel 4G'})
    assert r.status_code == 201
    return r.get_json()['sim_type']['id']


@pytest.fixture
def package(client, sim_type_id):
    r = _post(client, '/api/packages', {
        'simTypeId': sim_type_id, 'quantity': 100, 'totalImportPrice': 1_000_000,
        'importDate': '2024-05-01', 'paymentMethod': 'TRANSFER',
    })
    assert r.status_code == 201
    return r.get_json()['package']


def test_inventory_reflects_new_package(client, package):
    data = client.get('/api/inventory').get_json()

    [product] = data['inventory']
    assert product['currentStock'] == 100
    assert product['weightedAvgCost'] == pytest.approx(10_000)
    assert product['batches'][0]['id'] == package['id']
    assert product['totalRemainingPayable'] == 0


def test_invalid_package_quantity(client, sim_type_id):
    r = _post(client, '/api/packages', {'simTypeId': sim_type_id, 'quantity': 'muchos'})
    assert r.status_code == 400
    assert r.get_json()['success'] is False


def test_unpaid_order_without_due_date_is_rejected(client, sim_type_id):
    r = _post(client, '/api/orders', {'simTypeId': sim_type_id, 'date': '2024-05-10'})
    assert r.status_code == 400
    body = r.get_json()
    assert body['success'] is False
    assert body['error']


def test_paid_order_flow(client, package, sim_type_id):
    r = _post(client, '/api/orders', {
        'simTypeId': sim_type_id, 'date': '2024-05-10', 'quantity': 10,
        'salePrice': 15_000, 'isPaid': True, 'paymentMethod': 'CASH',
    })
    assert r.status_code == 201
    assert r.get_json()['transaction']['amount'] == 150_000

    [order] = client.get('/api/orders').get_json()['orders']
    assert order['status'] == 'PAID'
    assert order['profit'] == pytest.approx(150_000 - 100_000)

    cash = client.get('/api/cashflow').get_json()
    assert cash['balance']['cash'] == 150_000
    assert cash['balance']['total'] == 150_000 - 1_000_000
    assert cash['pending_orders'] == []



def test_orders_filtered_by_channel_and_dates(client, package, sim_type_id):
    for sale_type, day in (('WHOLESALE', '2024-05-02'), ('RETAIL', '2024-05-05'), ('WHOLESALE', '2024-05-09')):
        r = _post(client, '/api/orders', {
            'simTypeId': sim_type_id, 'date': day, 'quantity': 1, 'salePrice': 20_000,
            'isPaid': True, 'saleType': sale_type,
        })
        assert r.status_code == 201

    def dates(url):
        return [o['date'] for o in client.get(url).get_json()['orders']]

    assert dates('/api/orders') == ['2024-05-09', '2024-05-05', '2024-05-02']
    assert dates('/api/orders?saleType=wholesale') == ['2024-05-09', '2024-05-02']
    assert dates('/api/orders?saleType=WHOLESALE&start=2024-05-03&end=2024-05-31') == ['2024-05-09']
    assert client.get('/api/orders?saleType=VIP').status_code == 400


def test_due_date_extension_and_logs(client, sim_type_id):
    r = _post(client, '/api/orders', {
        'simTypeId': sim_type_id, 'date': '2024-05-01', 'dueDate': '2024-05-10',
        'salePrice': 50_000,
    })
    order_id = r.get_json()['order']['id']

    r = _post(client, f'/api/orders/{order_id}/due-date', {'newDate': '2024-05-20', 'reason': 'Khách xin'})
    assert r.status_code == 200
    assert r.get_json()['order']['dueDateChanges'] == 1

    [log] = client.get(f'/api/orders/{order_id}/logs').get_json()['logs']
    assert (log['oldDate'], log['newDate']) == ('2024-05-10', '2024-05-20')

    r = _post(client, '/api/orders/nope/due-date', {'newDate': '2024-05-20'})
    assert r.status_code == 404


def test_customer_crud_and_search(client, sim_type_id):
    r = _post(client, '/api/customers', {'name': 'Nguyễn Văn An', 'phone': '0901234567'})
    assert r.status_code == 201
    customer = r.get_json()['customer']
    assert customer['cid'] == 'KH-NVA4567'

    r = client.put(f"/api/customers/{customer['id']}", json={'address': 'Hà Nội'})
    assert r.get_json()['customer']['address'] == 'Hà Nội'

    found = client.get('/api/customers?q=nva').get_json()['customers']
    assert [c['id'] for c in found] == [customer['id']]
    assert client.get('/api/customers?q=zzz').get_json()['customers'] == []

    _post(client, '/api/orders', {
        'simTypeId': sim_type_id, 'date': '2024-05-01', 'dueDate': '2099-01-01',
        'salePrice': 10_000, 'saleType': 'WHOLESALE', 'customerId': customer['id'],
    })
    r = client.delete(f"/api/customers/{customer['id']}")
    assert r.status_code == 400

    assert client.delete('/api/customers/nope').status_code == 404


def test_transactions_and_deletes(client, package):
    r = _post(client, '/api/transactions', {'type': 'IN', 'amount': 5_000, 'date': '2024-05-02'})
    assert r.status_code == 201
    tx_id = r.get_json()['transaction']['id']

    assert _post(client, '/api/transactions', {'type': 'IN', 'amount': -1}).status_code == 400
    assert client.delete(f'/api/transactions/{tx_id}').status_code == 200
    assert client.delete(f"/api/packages/{package['id']}").status_code == 200
    assert client.delete(f"/api/sim-types/{package['simTypeId']}").status_code == 200
    assert client.get('/api/inventory').get_json()['inventory'] == []


def test_dashboard_and_calendar(client, package):
    data = client.get('/api/dashboard?period=week').get_json()
    assert data['success']
    assert data['period']['name'] == 'week'
    assert data['metrics']['total_sim_qty'] == 100
    assert len(data['daily_revenue']) == 7
    assert data['low_stock'] == []
    assert data['today'] == {'revenue': 0, 'orders': 0}
    assert {'decisions', 'position', 'top_debtors', 'slow_inventory',
            'risk_decisions', 'debt_reminder'} <= set(data)

    cal = client.get('/api/calendar?year=2024&month=2').get_json()
    assert len(cal['days']) == 29
    assert client.get('/api/calendar?year=2024&month=13').status_code == 400


def test_accounts_are_isolated(client, package):
    data = client.get('/api/inventory', headers={'X-Account-Id': 'otra'}).get_json()
    assert data['inventory'] == []


def test_export_then_import_into_other_account(client, package):
    r = client.get('/backup/export')
    assert r.status_code == 200
    assert r.mimetype == XLSX_MIMETYPE
    assert 'SIM_PRO_BACKUP_default_' in r.headers['Content-Disposition']

    r = client.post(
        '/backup/import',
        data={'file': (io.BytesIO(r.data), 'backup.xlsx')},
        content_type='multipart/form-data',
        headers={'X-Account-Id': 'copia'},
    )
    assert r.status_code == 200
    counts = r.get_json()['counts']
    assert (counts['sim_types'], counts['packages'], counts['transactions']) == (1, 1, 1)

    data = client.get('/api/inventory', headers={'X-Account-Id': 'copia'}).get_json()
    assert data['inventory'][0]['currentStock'] == 100


def test_import_errors(client):
    r = client.post('/backup/import', data={}, content_type='multipart/form-data')
    assert r.status_code == 400

    r = client.post(
        '/backup/import',
        data={'file': (io.BytesIO(b'no es excel'), 'datos.xlsx')},
        content_type='multipart/form-data',
    )
    assert r.status_code == 400
    assert r.get_json()['success'] is False


def test_backup_create_and_status(client, package):
    r = _post(client, '/backup/create', {})
    assert r.status_code == 200
    assert r.get_json()['records']['packages'] == 1

    status = client.get('/backup/status').get_json()
    assert status['total_backups'] == 1
    assert status['today_exists']


def test_login_logout(client, package):
    r = _post(client, '/api/login', {'account': 'default'})
    assert r.get_json()['counts']['packages'] == 1
    assert _post(client, '/api/logout', {}).get_json()['success']
