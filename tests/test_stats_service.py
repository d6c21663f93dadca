# -*- coding: utf-8 -*-
"""Cadena de derivación y reportes (panel de control, calendario, cobranza)."""
import copy
from datetime import date

import pytest

from sim_stock.models.entities import DataSet, SaleType, TransactionType
from sim_stock.services.stats_service import StatsService, compute_all, format_day, format_vnd

from conftest import NOW, make_customer, make_order, make_package, make_sim_type, make_tx

TODAY = date(2024, 5, 10)


@pytest.fixture
def dataset():
    return DataSet(
        sim_types=[make_sim_type()],
        packages=[make_package('pk-1', quantity=100, total=1_000_000, import_date='2024-03-01')],
        orders=[
            make_order('so-1', quantity=10, price=20_000, date='2024-05-05',
                       due_date='2024-05-15', customer_id='c-1'),
            make_order('so-2', quantity=5, price=20_000, date='2024-05-06', due_date='2024-05-06'),
        ],
        transactions=[
            make_tx('tx-1', 1_000_000, TransactionType.OUT, date='2024-03-01', package_id='pk-1'),
            make_tx('tx-2', 100_000, TransactionType.IN, date='2024-05-06', order_id='so-2'),
        ],
        customers=[make_customer('c-1', name='An')],
    )


@pytest.fixture
def stats(dataset):
    return StatsService(lambda account_id: dataset)


def test_compute_all_chains_aggregators(dataset):
    derived = compute_all(dataset, NOW)

    [product] = derived.inventory
    assert product.current_stock == 85
    assert product.weighted_avg_cost == pytest.approx(10_000)
    assert [o.remaining for o in derived.orders] == [200_000, 0]
    [customer] = derived.customers
    assert customer.current_debt == 200_000


def test_aggregators_are_pure(dataset):
    first = compute_all(dataset, NOW)
    second = compute_all(copy.deepcopy(dataset), NOW)

    assert first == second
    assert first.to_dict() == second.to_dict()
    # la entrada no se modifica
    assert dataset == copy.deepcopy(dataset)


def test_derive_uses_snapshot_loader(stats, dataset):
    loaded, derived = stats.derive('tienda1', NOW)
    assert loaded is dataset
    assert len(derived.orders) == 2


def test_derive_without_loader_is_empty():
    dataset, derived = StatsService().derive('tienda1', NOW)
    assert dataset.is_empty()
    assert derived.inventory == [] and derived.orders == [] and derived.customers == []


@pytest.mark.parametrize('period, start, end, expected', [
    ('today', None, None, ('2024-05-10', '2024-05-10')),
    ('week', None, None, ('2024-05-06', '2024-05-12')),
    ('month', None, None, ('2024-05-01', '2024-05-31')),
    ('custom', '2024-01-01', '2024-02-15', ('2024-01-01', '2024-02-15')),
    ('custom', '2024-13-01', '2024-02-15', ('2024-05-01', '2024-05-31')),
    ('year', None, None, ('2024-05-01', '2024-05-31')),
])
def test_period_range(period, start, end, expected):
    assert StatsService().period_range(period, start, end, TODAY) == expected


def test_control_center(stats, dataset):
    derived = compute_all(dataset, NOW)
    metrics = stats.control_center(derived, dataset.transactions, '2024-05-01', '2024-05-31', TODAY)

    assert metrics == {
        'working_capital': 100_000,
        'total_receivable': 200_000,
        'total_payable': 0,
        'inventory_value': pytest.approx(850_000),
        'gross_profit': pytest.approx(150_000),
        'net_revenue': 300_000,
        'total_sim_qty': 85,
        'low_stock_count': 0,
        'aging_inventory_count': 1,
        'debt_due_soon_count': 1,
        'debt_due_soon_amount': 200_000,
    }
    assert [d['code'] for d in stats.decisions(metrics)] == ['SAFE']


def test_decisions_alerts(stats):
    metrics = {
        'working_capital': -1,
        'debt_due_soon_amount': 30_000_001,
        'total_payable': 50_000_001,
    }
    codes = [d['code'] for d in stats.decisions(metrics)]
    assert codes == ['STOP_IMPORT', 'PRIORITIZE_COLLECTION', 'PAY_SUPPLIERS']


def test_financial_position_and_risk(stats, dataset):
    derived = compute_all(dataset, NOW)
    position = stats.financial_position(derived, dataset.transactions)

    assert position['cash_on_hand'] == -900_000
    assert position['total_receivable'] == 200_000
    assert position['total_payable'] == 0
    assert position['net_cash_position'] == -700_000

    slow = stats.slow_inventory(derived.inventory)
    assert slow == []
    codes = [d['code'] for d in stats.risk_decisions(position, slow, derived.orders)]
    assert codes == ['STOP_IMPORT']


def test_risk_decisions_slow_stock_and_bad_debt(stats, dataset):
    dataset.packages[0].quantity = 500
    dataset.orders[0].due_date = '2024-03-01'
    derived = compute_all(dataset, NOW)
    position = {'net_cash_position': 1}

    slow = stats.slow_inventory(derived.inventory)
    codes = [d['code'] for d in stats.risk_decisions(position, slow, derived.orders)]
    assert codes == ['CLEAR_SLOW_STOCK', 'LOCK_CREDIT']


def test_top_debtors(stats, dataset):
    derived = compute_all(dataset, NOW)
    assert [c.id for c in stats.top_debtors(derived.customers)] == ['c-1']
    assert stats.top_debtors(derived.customers, limit=0) == []


def test_calendar_month(stats, dataset):
    derived = compute_all(dataset, NOW)
    days = stats.calendar_month(2024, 5, derived.orders, dataset.transactions)

    assert len(days) == 31
    assert days[4]['date'] == '2024-05-05'
    assert days[4]['profit'] == pytest.approx(100_000)
    assert [o.id for o in days[4]['orders']] == ['so-1']
    assert [t.id for t in days[5]['transactions']] == ['tx-2']
    assert days[0]['orders'] == [] and days[0]['profit'] == 0


def test_debt_reminder(stats, dataset):
    derived = compute_all(dataset, NOW)
    text = stats.debt_reminder(derived.orders, TODAY)

    assert text == (
        "📋 THÔNG BÁO THU HỒI NỢ (10/05/2024)\n"
        "----------------------------\n"
        "🚨 An - Nợ: 200.000 đ - Hạn: 15/05/2024"
    )


def test_debt_reminder_without_debt(stats):
    text = stats.debt_reminder([], TODAY)
    assert text.endswith("✅ Không có nợ đến hạn.")


def test_formatters():
    assert format_vnd(1_234_567) == '1.234.567 đ'
    assert format_vnd(0) == '0 đ'
    assert format_day('2024-05-10') == '10/05/2024'
    assert format_day('') == ''
    assert format_day('pronto') == 'pronto'


def test_filter_orders_by_channel_and_range(stats):
    orders = compute_all(DataSet(
        sim_types=[make_sim_type()],
        orders=[
            make_order('so-1', date='2024-05-01'),
            make_order('so-2', date='2024-05-08', sale_type=SaleType.RETAIL),
            make_order('so-3', date='2024-05-09'),
            make_order('so-4', date='2024-04-20'),
        ],
    ), NOW).orders

    assert [o.id for o in stats.filter_orders(orders)] == ['so-3', 'so-2', 'so-1', 'so-4']
    wholesale = stats.filter_orders(orders, SaleType.WHOLESALE, '2024-05-01', '2024-05-31')
    assert [o.id for o in wholesale] == ['so-3', 'so-1']
    assert [o.id for o in stats.filter_orders(orders, SaleType.RETAIL, end='2024-05-08')] == ['so-2']
    assert stats.filter_orders(orders, SaleType.RETAIL, end='2024-05-07') == []


def test_today_summary(stats, dataset):
    dataset.orders.append(make_order('so-3', quantity=2, price=50_000, date='2024-05-10'))
    derived = compute_all(dataset, NOW)

    assert stats.today_summary(derived.orders, TODAY) == {'revenue': 100_000, 'orders': 1}
    assert stats.today_summary(derived.orders, date(2024, 5, 11)) == {'revenue': 0, 'orders': 0}


def test_daily_revenue_has_one_point_per_day(stats, dataset):
    derived = compute_all(dataset, NOW)

    series = stats.daily_revenue(derived.orders, '2024-05-04', '2024-05-07')

    assert [p['date'] for p in series] == ['2024-05-04', '2024-05-05', '2024-05-06', '2024-05-07']
    assert [p['day'] for p in series] == ['04', '05', '06', '07']
    assert [p['revenue'] for p in series] == [0, 200_000, 100_000, 0]
    assert stats.daily_revenue(derived.orders, 'ayer', '2024-05-07') == []


def test_low_stock_products_sorted_ascending(stats):
    inventory = compute_all(DataSet(
        sim_types=[make_sim_type('st-1'), make_sim_type('st-2', 'Mobi'), make_sim_type('st-3', 'Vina')],
        packages=[
            make_package('pk-1', sim_type_id='st-1', quantity=30),
            make_package('pk-2', sim_type_id='st-2', quantity=10),
            make_package('pk-3', sim_type_id='st-3', quantity=80),
        ],
    ), NOW).inventory

    assert [p.sim_type_id for p in stats.low_stock_products(inventory)] == ['st-2', 'st-1']
