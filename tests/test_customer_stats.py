# -*- coding: utf-8 -*-
"""Agregador de clientes: GMV, deuda, vencimientos y scoring."""
from sim_stock.models.stats import CreditScore, DebtLevel
from sim_stock.services.customer_service import (
    compute_customer_stats,
    search_customers,
    worst_debt_level,
)
from sim_stock.services.inventory_service import compute_inventory_stats
from sim_stock.services.sales_service import compute_order_stats

from conftest import NOW, make_customer, make_order, make_package, make_sim_type, make_tx


def _customer_stats(orders, transactions=(), customers=None):
    customers = customers if customers is not None else [make_customer('c-1')]
    inventory = compute_inventory_stats([make_sim_type()], [make_package()], orders, transactions)
    order_stats = compute_order_stats(orders, inventory, transactions, customers, NOW)
    return compute_customer_stats(customers, order_stats)


def _paid_orders(count):
    orders = [make_order(f'so-{i}', customer_id='c-1', price=10_000) for i in range(count)]
    transactions = [make_tx(f'tx-{i}', 10_000, order_id=f'so-{i}') for i in range(count)]
    return orders, transactions


def test_six_paid_orders_score_a():
    [stat] = _customer_stats(*_paid_orders(6))
    assert stat.worst_debt_level == DebtLevel.NORMAL
    assert stat.credit_score == CreditScore.A


def test_five_paid_orders_score_b():
    [stat] = _customer_stats(*_paid_orders(5))
    assert stat.credit_score == CreditScore.B


def test_new_customer_scores_b():
    [stat] = _customer_stats([])
    assert stat.order_count == 0
    assert stat.gmv == 0
    assert stat.current_debt == 0
    assert stat.next_due_date is None
    assert stat.credit_score == CreditScore.B


def test_worst_level_drives_score():
    cases = [
        ('2024-04-01', CreditScore.D),  # RECOVERY
        ('2024-05-05', CreditScore.C),  # OVERDUE
        ('2024-05-11', CreditScore.B),  # WARNING
    ]
    for due_date, expected in cases:
        orders, transactions = _paid_orders(6)
        orders.append(make_order('so-debt', customer_id='c-1', due_date=due_date))
        [stat] = _customer_stats(orders, transactions)
        assert stat.credit_score == expected, due_date


def test_unpaid_normal_order_blocks_a():
    orders, transactions = _paid_orders(6)
    orders.append(make_order('so-debt', customer_id='c-1', due_date='2024-06-30'))
    [stat] = _customer_stats(orders, transactions)
    assert stat.worst_debt_level == DebtLevel.NORMAL
    assert stat.credit_score == CreditScore.B


def test_gmv_debt_and_next_due_date():
    orders = [
        make_order('so-1', customer_id='c-1', price=100_000, due_date='2024-06-01'),
        make_order('so-2', customer_id='c-1', price=50_000, due_date='2024-05-20'),
        make_order('so-3', customer_id='c-1', price=70_000, due_date='2024-05-12'),
        make_order('so-4', customer_id='c-2', price=999_999),
    ]
    transactions = [
        make_tx('tx-1', 30_000, order_id='so-1'),
        make_tx('tx-3', 70_000, order_id='so-3'),  # saldada: no cuenta para el vencimiento
    ]
    [stat] = _customer_stats(orders, transactions)

    assert stat.order_count == 3
    assert stat.gmv == 220_000
    assert stat.current_debt == 120_000
    assert stat.next_due_date == '2024-05-20'


def test_worst_debt_level_empty():
    assert worst_debt_level([]) == DebtLevel.NORMAL


def test_search_customers():
    customers = [
        make_customer('c-1', name='Nguyễn Văn An', phone='0901234567', cid='KH-NVA4567'),
        make_customer('c-2', name='Trần Bình', phone='0987000111', cid='KH-TB0111'),
    ]
    stats = _customer_stats([], customers=customers)

    assert [s.id for s in search_customers(stats, 'văn')] == ['c-1']
    assert [s.id for s in search_customers(stats, 'kh-tb')] == ['c-2']
    assert [s.id for s in search_customers(stats, '0987')] == ['c-2']
    assert len(search_customers(stats, '  ')) == 2
    assert search_customers(stats, 'zzz') == []
