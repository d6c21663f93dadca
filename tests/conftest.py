# -*- coding: utf-8 -*-
"""
Fixtures compartidas: store JSON en carpeta temporal, "ahora" fijo y
constructores de entidades con valores por defecto razonables.
"""
from datetime import datetime

import pytest

from sim_stock.app_container import AppContainer
from sim_stock.config import Settings
from sim_stock.main import create_app
from sim_stock.models.entities import (
    Customer,
    SaleOrder,
    SaleType,
    SimPackage,
    SimType,
    Transaction,
    TransactionMethod,
    TransactionType,
)
from sim_stock.repositories import ChangeFeed, JsonEntityStore

ACCOUNT = 'tienda1'

# 10/05/2024 12:00 (hora local, naive)
NOW = datetime(2024, 5, 10, 12, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def store(tmp_path, feed):
    return JsonEntityStore(str(tmp_path / 'data'), feed)


@pytest.fixture
def settings(tmp_path):
    return Settings.for_path(str(tmp_path / 'app'))


@pytest.fixture
def app(settings):
    app = create_app(settings)
    app.config['TESTING'] = True
    yield app
    AppContainer.reset_instance()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


# ---- constructores ----

def make_sim_type(id='st-1', name='Viettel 4G'):
    return SimType(id=id, name=name)


def make_package(id='pk-1', sim_type_id='st-1', quantity=100, total=1_000_000,
                 import_date='2024-05-01', due_date=None):
    return SimPackage(
        id=id, code=f'SIM-{id}', name='Viettel 4G', sim_type_id=sim_type_id,
        import_date=import_date, quantity=quantity, total_import_price=total,
        due_date=due_date,
    )


def make_order(id='so-1', sim_type_id='st-1', quantity=1, price=100_000,
               date='2024-05-01', due_date='2024-05-20', customer_id=None,
               sale_type=SaleType.WHOLESALE, changes=0, package_id=None,
               agent_name='Đại lý'):
    return SaleOrder(
        id=id, code=f'SO-{id}', date=date, agent_name=agent_name,
        sale_type=sale_type, sim_type_id=sim_type_id, quantity=quantity,
        sale_price=price, customer_id=customer_id, sim_package_id=package_id,
        due_date=due_date, due_date_changes=changes,
    )


def make_tx(id='tx-1', amount=0, tx_type=TransactionType.IN, date='2024-05-01',
            order_id=None, package_id=None, method=TransactionMethod.TRANSFER):
    return Transaction(
        id=id, code=f'TX-{id}', date=date, type=tx_type, amount=amount,
        method=method, sale_order_id=order_id, sim_package_id=package_id,
    )


def make_customer(id='c-1', name='Nguyễn Văn An', phone='0901234567', cid='KH-NVA4567'):
    return Customer(id=id, cid=cid, name=name, phone=phone, type=SaleType.WHOLESALE)
