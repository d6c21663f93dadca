# ==============================================================================
# SERVICIO DE CAJA (SỔ QUỸ)
# ==============================================================================
# Movimientos de caja de entrada simple:
# - IN  → cobro (puede saldar una orden vía saleOrderId)
# - OUT → pago  (puede saldar un lote vía simPackageId)
#
# El saldo es siempre IN - OUT; nunca se guarda.
# ==============================================================================

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sim_stock.exceptions import BusinessRuleViolation, RecordNotFoundError
from sim_stock.models.entities import (
    EntityKind,
    Transaction,
    TransactionMethod,
    TransactionType,
    coerce_enum,
)
from sim_stock.models.identifiers import generate_code, generate_id
from sim_stock.models.stats import InventoryProductStat, SaleOrderWithStats, SimPackageWithStats
from sim_stock.repositories.interfaces import IEntityStore

logger = logging.getLogger(__name__)


def filter_by_date(
    transactions: Iterable[Transaction],
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> List[Transaction]:
    """Movimientos dentro del rango ISO [start, end] (ambos inclusive)."""
    return [
        t for t in transactions
        if (not start or t.date >= start) and (not end or t.date <= end)
    ]


def _balance(transactions: List[Transaction]) -> float:
    incoming = sum(t.amount for t in transactions if t.type == TransactionType.IN)
    outgoing = sum(t.amount for t in transactions if t.type == TransactionType.OUT)
    return incoming - outgoing


def cash_balance(
    transactions: Iterable[Transaction],
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> Dict[str, float]:
    """
    Saldo del período.

    Returns:
        {'total': float, 'transfer': float, 'cash': float}
    """
    selected = filter_by_date(transactions, start, end)
    return {
        'total': _balance(selected),
        'transfer': _balance([t for t in selected if t.method == TransactionMethod.TRANSFER]),
        'cash': _balance([t for t in selected if t.method == TransactionMethod.CASH]),
    }


def pending_orders(order_stats: Iterable[SaleOrderWithStats]) -> List[SaleOrderWithStats]:
    """Órdenes con saldo por cobrar."""
    return [o for o in order_stats if o.remaining > 0]


def pending_payables(inventory: Iterable[InventoryProductStat]) -> List[SimPackageWithStats]:
    """Lotes con deuda pendiente con el proveedor."""
    return [b for product in inventory for b in product.batches if b.remaining_payable > 0]


class PaymentService:
    """Alta y baja de movimientos de caja."""

    def __init__(self, store: IEntityStore):
        self.store = store

    def add_transaction(
        self,
        account_id: str,
        tx_type: str,
        amount: float,
        date: str = None,
        category: str = '',
        method: str = TransactionMethod.TRANSFER,
        sale_order_id: str = None,
        sim_package_id: str = None,
        note: str = '',
    ) -> Transaction:
        """
        Registra un movimiento de caja.

        Raises:
            BusinessRuleViolation: Tipo inválido o monto negativo
        """
        if str(tx_type or '').upper() not in (TransactionType.IN.value, TransactionType.OUT.value):
            raise BusinessRuleViolation(f"Tipo de movimiento inválido: '{tx_type}'")
        amount = float(amount or 0)
        if amount < 0:
            raise BusinessRuleViolation("El monto no puede ser negativo")

        tx = Transaction(
            id=generate_id(),
            code=generate_code('TX'),
            date=date or datetime.now().strftime('%Y-%m-%d'),
            type=TransactionType(str(tx_type).upper()),
            amount=amount,
            category=category or '',
            method=coerce_enum(TransactionMethod, method, TransactionMethod.TRANSFER),
            sale_order_id=sale_order_id or None,
            sim_package_id=sim_package_id or None,
            note=note or '',
        )
        self.store.create(account_id, EntityKind.TRANSACTIONS, tx.to_dict())
        logger.info("[CASH] %s %s: %s (%s)", tx.type.value, tx.code, tx.amount, tx.category)
        return tx

    def delete_transaction(self, account_id: str, transaction_id: str) -> Transaction:
        record = self.store.get(account_id, EntityKind.TRANSACTIONS, transaction_id)
        if record is None:
            raise RecordNotFoundError(EntityKind.TRANSACTIONS.value, transaction_id)
        self.store.delete(account_id, EntityKind.TRANSACTIONS, transaction_id)
        logger.info("[CASH] Movimiento eliminado: %s", record.get('code'))
        return Transaction.from_dict(record)
