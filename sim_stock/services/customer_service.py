# ==============================================================================
# SERVICIO DE CLIENTES (CRM)
# ==============================================================================
# Gestión de clientes/agentes y su calificación crediticia.
#
# SCORING (A mejor, D peor):
# - D → alguna orden en RECOVERY
# - C → alguna orden OVERDUE
# - B → alguna orden en WARNING
# - A → más de 5 órdenes y TODAS pagadas
# - B → el resto (clientes nuevos o con pocas órdenes)
# ==============================================================================

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List

from sim_stock.config import CREDIT_A_MIN_ORDERS
from sim_stock.exceptions import BusinessRuleViolation, RecordNotFoundError
from sim_stock.models.entities import Customer, EntityKind, SaleOrder, SaleType, Transaction, coerce_enum
from sim_stock.models.identifiers import generate_cid, generate_id
from sim_stock.models.stats import (
    CreditScore,
    CustomerWithStats,
    DebtLevel,
    PaymentStatus,
    SaleOrderWithStats,
)
from sim_stock.repositories.interfaces import IEntityStore
from sim_stock.services.sales_service import compute_order_stats

logger = logging.getLogger(__name__)


# ==============================================================================
# AGREGADOR DE CLIENTES (puro)
# ==============================================================================

def worst_debt_level(order_stats: Iterable[SaleOrderWithStats]) -> DebtLevel:
    worst = DebtLevel.NORMAL
    for stat in order_stats:
        if stat.debt_level.severity > worst.severity:
            worst = stat.debt_level
    return worst


def credit_score(worst: DebtLevel, order_stats: List[SaleOrderWithStats]) -> CreditScore:
    if worst == DebtLevel.RECOVERY:
        return CreditScore.D
    if worst == DebtLevel.OVERDUE:
        return CreditScore.C
    if worst == DebtLevel.WARNING:
        return CreditScore.B
    if len(order_stats) > CREDIT_A_MIN_ORDERS and all(
        o.status == PaymentStatus.PAID for o in order_stats
    ):
        return CreditScore.A
    return CreditScore.B


def compute_customer_stats(
    customers: Iterable[Customer],
    order_stats: Iterable[SaleOrderWithStats],
) -> List[CustomerWithStats]:
    """GMV, deuda actual, próximo vencimiento y scoring por cliente."""
    by_customer: Dict[str, List[SaleOrderWithStats]] = defaultdict(list)
    for stat in order_stats:
        if stat.customer_id:
            by_customer[stat.customer_id].append(stat)

    result = []
    for customer in customers:
        c_orders = by_customer.get(customer.id, [])
        # Fechas ISO (YYYY-MM-DD): el orden de strings es el cronológico
        pending_due = sorted(o.due_date for o in c_orders if o.remaining > 0 and o.due_date)
        worst = worst_debt_level(c_orders)
        result.append(CustomerWithStats(
            customer=customer,
            order_count=len(c_orders),
            gmv=sum(o.total_amount for o in c_orders),
            current_debt=sum(o.remaining for o in c_orders),
            next_due_date=pending_due[0] if pending_due else None,
            worst_debt_level=worst,
            credit_score=credit_score(worst, c_orders),
        ))
    return result


def search_customers(stats: Iterable[CustomerWithStats], term: str) -> List[CustomerWithStats]:
    """Busca por nombre o cid (sin distinguir mayúsculas) o por teléfono."""
    term = (term or '').strip()
    if not term:
        return list(stats)
    needle = term.lower()
    return [
        s for s in stats
        if needle in s.customer.name.lower()
        or needle in s.customer.cid.lower()
        or term in s.customer.phone
    ]


# ==============================================================================
# OPERACIONES
# ==============================================================================

class CustomerService:
    """
    Servicio de clientes.

    El cid se genera una sola vez al crear y se conserva en cada
    actualización.
    """

    def __init__(self, store: IEntityStore):
        self.store = store

    def add_customer(
        self,
        account_id: str,
        name: str,
        phone: str = '',
        email: str = '',
        address: str = '',
        customer_type: str = SaleType.WHOLESALE,
        note: str = '',
    ) -> Customer:
        name = (name or '').strip()
        if not name:
            raise BusinessRuleViolation("El nombre del cliente es obligatorio")

        customer = Customer(
            id=generate_id(),
            cid=generate_cid(name, phone, email),
            name=name,
            phone=phone or '',
            email=email or '',
            address=address or '',
            type=coerce_enum(SaleType, customer_type, SaleType.WHOLESALE),
            note=note or '',
        )
        self.store.create(account_id, EntityKind.CUSTOMERS, customer.to_dict())
        logger.info("[CRM] Cliente creado: %s (%s)", customer.name, customer.cid)
        return customer

    def update_customer(self, account_id: str, customer_id: str, updates: Dict) -> Customer:
        """
        Actualiza datos de contacto de un cliente.

        Args:
            updates: Campos canónicos (name, phone, email, address, type, note)
        """
        record = self.store.get(account_id, EntityKind.CUSTOMERS, customer_id)
        if record is None:
            raise RecordNotFoundError(EntityKind.CUSTOMERS.value, customer_id)

        allowed_fields = ('name', 'phone', 'email', 'address', 'type', 'note')
        merged = dict(record)
        merged.update({k: v for k, v in updates.items() if k in allowed_fields})
        # id y cid nunca cambian
        merged['id'] = record['id']
        merged['cid'] = record.get('cid', '')

        customer = Customer.from_dict(merged)
        if not customer.name.strip():
            raise BusinessRuleViolation("El nombre del cliente es obligatorio")

        self.store.update(account_id, EntityKind.CUSTOMERS, customer.to_dict())
        logger.info("[CRM] Cliente actualizado: %s", customer.cid)
        return customer

    def current_debt(self, account_id: str, customer_id: str, now: datetime = None) -> float:
        """Deuda pendiente del cliente según las órdenes y cobros actuales."""
        orders = [
            SaleOrder.from_dict(r) for r in self.store.list(account_id, EntityKind.ORDERS)
            if r.get('customerId') == customer_id
        ]
        transactions = [
            Transaction.from_dict(r) for r in self.store.list(account_id, EntityKind.TRANSACTIONS)
        ]
        stats = compute_order_stats(orders, [], transactions, [], now)
        return sum(s.remaining for s in stats)

    def delete_customer(self, account_id: str, customer_id: str, now: datetime = None) -> Customer:
        """
        Elimina un cliente.

        Raises:
            RecordNotFoundError: Cliente inexistente
            BusinessRuleViolation: El cliente tiene deuda pendiente
        """
        record = self.store.get(account_id, EntityKind.CUSTOMERS, customer_id)
        if record is None:
            raise RecordNotFoundError(EntityKind.CUSTOMERS.value, customer_id)

        debt = self.current_debt(account_id, customer_id, now)
        if debt > 0:
            raise BusinessRuleViolation(
                f"No se puede eliminar a '{record.get('name')}': tiene deuda pendiente de {debt:,.0f}"
            )

        self.store.delete(account_id, EntityKind.CUSTOMERS, customer_id)
        logger.info("[CRM] Cliente eliminado: %s", record.get('cid'))
        return Customer.from_dict(record)
