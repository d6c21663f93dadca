# -*- coding: utf-8 -*-
"""Agregador de inventario: stock por lote, costo promedio y deuda con proveedor."""
import pytest

from sim_stock.models.entities import TransactionType
from sim_stock.models.stats import StockStatus
from sim_stock.services.inventory_service import compute_inventory_stats, find_product_stat

from conftest import make_order, make_package, make_sim_type, make_tx


def test_batch_sold_counts_only_linked_orders():
    sim_types = [make_sim_type()]
    packages = [make_package('pk-1'), make_package('pk-2', quantity=50, total=600_000)]
    orders = [
        make_order('so-1', quantity=30, package_id='pk-1'),
        make_order('so-2', quantity=5),  # sin lote
    ]

    [product] = compute_inventory_stats(sim_types, packages, orders, [])
    by_id = {b.id: b for b in product.batches}

    assert by_id['pk-1'].sold == 30
    assert by_id['pk-1'].stock == 70
    assert by_id['pk-2'].sold == 0
    assert by_id['pk-2'].stock == 50

    # el producto cuenta TODAS las órdenes del tipo
    assert product.total_imported == 150
    assert product.total_sold == 35
    assert product.current_stock == 115


def test_weighted_avg_cost_across_batches():
    packages = [make_package('pk-1'), make_package('pk-2', quantity=50, total=600_000)]

    [product] = compute_inventory_stats([make_sim_type()], packages, [], [])

    assert product.weighted_avg_cost == pytest.approx(1_600_000 / 150)
    assert product.weighted_avg_cost == pytest.approx(10666.67, abs=0.01)
    assert product.batches[0].cost_per_sim == pytest.approx(10_000)
    assert product.batches[1].cost_per_sim == pytest.approx(12_000)


def test_zero_quantity_does_not_divide_by_zero():
    packages = [make_package('pk-1', quantity=0, total=500_000)]

    [product] = compute_inventory_stats([make_sim_type()], packages, [], [])

    assert product.batches[0].cost_per_sim == 0
    assert product.weighted_avg_cost == 0


def test_sim_type_without_batches():
    [product] = compute_inventory_stats([make_sim_type()], [], [], [])

    assert product.total_imported == 0
    assert product.current_stock == 0
    assert product.weighted_avg_cost == 0
    assert product.status == StockStatus.LOW_STOCK
    assert product.batches == []


def test_low_stock_thresholds():
    packages = [
        make_package('pk-1', quantity=60),
        make_package('pk-2', quantity=10),
        make_package('pk-3', quantity=9),
    ]
    orders = [make_order('so-1', quantity=29, package_id='pk-1')]

    [product] = compute_inventory_stats([make_sim_type()], packages, orders, [])
    by_id = {b.id: b for b in product.batches}

    # lote: LOW_STOCK si stock < 10
    assert by_id['pk-2'].status == StockStatus.OK
    assert by_id['pk-3'].status == StockStatus.LOW_STOCK
    # producto: LOW_STOCK si stock <= 50 (79 - 29 = 50)
    assert product.current_stock == 50
    assert product.status == StockStatus.LOW_STOCK


def test_product_above_threshold_is_ok():
    [product] = compute_inventory_stats([make_sim_type()], [make_package(quantity=51)], [], [])
    assert product.status == StockStatus.OK


def test_remaining_payable_from_linked_out_transactions():
    packages = [make_package('pk-1', total=1_000_000)]
    transactions = [
        make_tx('tx-1', 400_000, TransactionType.OUT, package_id='pk-1'),
        make_tx('tx-2', 999_999, TransactionType.IN, package_id='pk-1'),  # IN no cuenta
        make_tx('tx-3', 50_000, TransactionType.OUT),  # sin lote
    ]

    [product] = compute_inventory_stats([make_sim_type()], packages, [], transactions)
    batch = product.batches[0]

    assert batch.paid_amount == 400_000
    assert batch.remaining_payable == 600_000
    assert product.total_payable == 1_000_000
    assert product.total_remaining_payable == 600_000


def test_overpaid_batch_remaining_is_zero():
    packages = [make_package('pk-1', total=100)]
    transactions = [make_tx('tx-1', 150, TransactionType.OUT, package_id='pk-1')]

    [product] = compute_inventory_stats([make_sim_type()], packages, [], transactions)

    assert product.batches[0].remaining_payable == 0


def test_batches_of_unknown_type_are_ignored():
    packages = [make_package('pk-x', sim_type_id='missing')]
    [product] = compute_inventory_stats([make_sim_type()], packages, [], [])
    assert product.batches == []


def test_find_product_stat_returns_none_when_missing():
    inventory = compute_inventory_stats([make_sim_type()], [], [], [])
    assert find_product_stat(inventory, 'st-1') is inventory[0]
    assert find_product_stat(inventory, 'nope') is None
    assert find_product_stat(inventory, None) is None
