# -*- coding: utf-8 -*-
"""Agregador de órdenes: costo promedio, estado de pago y niveles de deuda."""
import pytest

from sim_stock.models.entities import SaleType, TransactionType
from sim_stock.models.stats import DebtLevel, PaymentStatus
from sim_stock.services.inventory_service import compute_inventory_stats
from sim_stock.services.sales_service import (
    UNKNOWN_PRODUCT,
    classify_debt_level,
    compute_order_stats,
    days_past_due,
    list_due_date_logs,
    payment_status,
)
from sim_stock.models.entities import DueDateLog

from conftest import NOW, make_customer, make_order, make_package, make_sim_type, make_tx


def _stats(orders, transactions=(), customers=(), packages=None):
    packages = packages if packages is not None else [make_package()]
    inventory = compute_inventory_stats([make_sim_type()], packages, orders, transactions)
    return compute_order_stats(orders, inventory, transactions, customers, NOW)


# ═══════════════════════════════════════════════════════════════════════════
# RENTABILIDAD Y PAGOS
# ═══════════════════════════════════════════════════════════════════════════

def test_cost_uses_weighted_average_regardless_of_batch():
    packages = [make_package('pk-1'), make_package('pk-2', quantity=50, total=600_000)]
    orders = [
        make_order('so-1', quantity=3, price=20_000, package_id='pk-2'),
        make_order('so-2', quantity=3, price=20_000),
    ]

    first, second = _stats(orders, packages=packages)

    assert first.cost == pytest.approx(3 * 1_600_000 / 150)
    assert second.cost == pytest.approx(first.cost)
    assert first.total_amount == 60_000
    assert first.profit == pytest.approx(60_000 - first.cost)


@pytest.mark.parametrize('paid, remaining, status', [
    (0, 100_000, PaymentStatus.UNPAID),
    (40_000, 60_000, PaymentStatus.PARTIAL),
    (100_000, 0, PaymentStatus.PAID),
    (150_000, 0, PaymentStatus.PAID),
])
def test_remaining_and_status(paid, remaining, status):
    orders = [make_order('so-1', quantity=1, price=100_000)]
    transactions = [make_tx('tx-1', paid, order_id='so-1')] if paid else []

    [stat] = _stats(orders, transactions)

    assert stat.paid_amount == paid
    assert stat.remaining == remaining
    assert stat.status == status


def test_out_transactions_do_not_pay_orders():
    orders = [make_order('so-1', price=100_000)]
    transactions = [make_tx('tx-1', 100_000, TransactionType.OUT, order_id='so-1')]

    [stat] = _stats(orders, transactions)

    assert stat.paid_amount == 0
    assert stat.status == PaymentStatus.UNPAID


def test_lookup_fallbacks():
    orders = [make_order('so-1', sim_type_id='borrado', customer_id='c-x', agent_name='Anh Tư')]

    [stat] = _stats(orders)

    assert stat.product_name == UNKNOWN_PRODUCT
    assert stat.cost == 0
    assert stat.customer_name == 'Anh Tư'


def test_customer_name_from_customer_record():
    orders = [make_order('so-1', customer_id='c-1', agent_name='viejo')]
    [stat] = _stats(orders, customers=[make_customer('c-1', name='Trần Bình')])
    assert stat.customer_name == 'Trần Bình'
    assert stat.product_name == 'Viettel 4G'


def test_payment_status_helper():
    assert payment_status(0, 0) == PaymentStatus.PAID
    assert payment_status(10, 5) == PaymentStatus.PARTIAL
    assert payment_status(0, 5) == PaymentStatus.UNPAID


# ═══════════════════════════════════════════════════════════════════════════
# NIVELES DE DEUDA (ahora = 2024-05-10 12:00)
# ═══════════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize('due_date, level', [
    ('2024-05-05', DebtLevel.OVERDUE),
    ('2024-04-11', DebtLevel.OVERDUE),    # 30 días: aún no RECOVERY
    ('2024-04-10', DebtLevel.RECOVERY),   # 31 días
    ('2024-04-01', DebtLevel.RECOVERY),
    ('2024-05-11', DebtLevel.WARNING),
    ('2024-05-13', DebtLevel.WARNING),
    ('2024-05-14', DebtLevel.NORMAL),
    ('2024-06-30', DebtLevel.NORMAL),
    (None, DebtLevel.WARNING),            # sin fecha = vence ahora
    ('pronto', DebtLevel.WARNING),
])
def test_debt_level_by_due_date(due_date, level):
    order = make_order(due_date=due_date)
    assert classify_debt_level(order, 100_000, NOW) == level


def test_three_extensions_override_future_due_date():
    order = make_order(due_date='2024-05-11', changes=3)
    assert classify_debt_level(order, 1, NOW) == DebtLevel.RECOVERY

    far = make_order(due_date='2025-01-01', changes=3)
    assert classify_debt_level(far, 1, NOW) == DebtLevel.RECOVERY


def test_paid_orders_are_normal_even_if_overdue():
    order = make_order(due_date='2024-01-01', changes=5)
    assert classify_debt_level(order, 0, NOW) == DebtLevel.NORMAL


def test_days_past_due_rounds_up():
    assert days_past_due('2024-05-10', NOW) == 1
    assert days_past_due('2024-05-11', NOW) == 0
    assert days_past_due('2024-05-12', NOW) == -1
    assert days_past_due(None, NOW) == 0


def test_overdue_flags():
    orders = [
        make_order('so-1', due_date='2024-05-05'),
        make_order('so-2', due_date='2024-04-01'),
        make_order('so-3', due_date='2024-05-11'),
    ]
    overdue, recovery, warning = _stats(orders)

    assert (overdue.is_overdue, overdue.is_bad_debt) == (True, False)
    assert (recovery.is_overdue, recovery.is_bad_debt) == (True, True)
    assert (warning.is_overdue, warning.is_bad_debt) == (False, False)


def test_retail_orders_keep_agent_name():
    orders = [make_order('so-1', sale_type=SaleType.RETAIL, agent_name='Khách lẻ')]
    [stat] = _stats(orders)
    assert stat.customer_name == 'Khách lẻ'


def test_due_date_logs_newest_first():
    logs = [
        DueDateLog('l-1', 'so-1', '2024-05-01', '2024-05-08', 'a', '2024-05-01T10:00:00'),
        DueDateLog('l-2', 'so-2', '2024-05-01', '2024-05-09', 'b', '2024-05-02T10:00:00'),
        DueDateLog('l-3', 'so-1', '2024-05-08', '2024-05-15', 'c', '2024-05-07T10:00:00'),
    ]
    assert [log.id for log in list_due_date_logs(logs, 'so-1')] == ['l-3', 'l-1']
    assert list_due_date_logs(logs, 'so-9') == []
