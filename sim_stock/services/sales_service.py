# ==============================================================================
# SERVICIO DE VENTAS
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con órdenes de venta.
#
# NIVELES DE DEUDA (solo si queda saldo pendiente):
# - RECOVERY → 3+ extensiones de vencimiento, o más de 30 días vencida
# - OVERDUE  → vencida
# - WARNING  → vence dentro de los próximos 3 días
# - NORMAL   → el resto (incluye órdenes pagadas)
#
# RECOVERY tiene prioridad: una orden con 3 extensiones es RECOVERY aunque
# su vencimiento esté en el futuro.
# ==============================================================================

import logging
import math
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sim_stock.config import (
    RECOVERY_MAX_DUE_DATE_CHANGES,
    RECOVERY_OVERDUE_DAYS,
    WARNING_WINDOW_DAYS,
)
from sim_stock.exceptions import BusinessRuleViolation, RecordNotFoundError, StoreWriteError
from sim_stock.models.entities import (
    Customer,
    DueDateLog,
    EntityKind,
    SaleOrder,
    SaleType,
    Transaction,
    TransactionMethod,
    TransactionType,
    coerce_enum,
)
from sim_stock.models.identifiers import generate_code, generate_id
from sim_stock.models.stats import (
    DebtLevel,
    InventoryProductStat,
    PaymentStatus,
    SaleOrderWithStats,
)
from sim_stock.repositories.interfaces import IEntityStore
from sim_stock.services.inventory_service import find_product_stat

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT = 'Chưa rõ'
DEFAULT_AGENT_NAME = 'Đại lý'
DEFAULT_RETAIL_NAME = 'Khách lẻ'

INCOME_CATEGORY = {
    SaleType.WHOLESALE: 'Thu bán sỉ',
    SaleType.RETAIL: 'Thu bán lẻ',
}

_SECONDS_PER_DAY = 86400


# ==============================================================================
# REGLAS DE DEUDA (puras)
# ==============================================================================

def _due_datetime(due_date: Optional[str], now: datetime) -> datetime:
    """Medianoche del vencimiento; sin fecha (o ilegible) = ahora."""
    if not due_date:
        return now
    try:
        due = datetime.strptime(str(due_date)[:10], '%Y-%m-%d')
    except ValueError:
        return now
    return due.replace(tzinfo=now.tzinfo)


def days_past_due(due_date: Optional[str], now: datetime) -> int:
    """Días transcurridos desde el vencimiento, redondeado hacia arriba."""
    elapsed = (now - _due_datetime(due_date, now)).total_seconds()
    return math.ceil(elapsed / _SECONDS_PER_DAY)


def classify_debt_level(order: SaleOrder, remaining: float, now: datetime) -> DebtLevel:
    if remaining <= 0:
        return DebtLevel.NORMAL

    diff_days = days_past_due(order.due_date, now)
    if order.due_date_changes >= RECOVERY_MAX_DUE_DATE_CHANGES or diff_days > RECOVERY_OVERDUE_DAYS:
        return DebtLevel.RECOVERY
    if diff_days > 0:
        return DebtLevel.OVERDUE
    if diff_days > -WARNING_WINDOW_DAYS:
        return DebtLevel.WARNING
    return DebtLevel.NORMAL


def payment_status(paid_amount: float, remaining: float) -> PaymentStatus:
    if remaining <= 0:
        return PaymentStatus.PAID
    if paid_amount > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def find_customer(customers: Iterable[Customer], customer_id: Optional[str]) -> Optional[Customer]:
    if not customer_id:
        return None
    for customer in customers:
        if customer.id == customer_id:
            return customer
    return None


# ==============================================================================
# AGREGADOR DE ÓRDENES (puro)
# ==============================================================================

def compute_order_stats(
    orders: Iterable[SaleOrder],
    inventory: Iterable[InventoryProductStat],
    transactions: Iterable[Transaction],
    customers: Iterable[Customer],
    now: datetime = None,
) -> List[SaleOrderWithStats]:
    """
    Rentabilidad, estado de pago y nivel de deuda de cada orden.

    El costo usa el costo promedio ponderado del producto, no el del lote.

    Args:
        now: Momento de referencia para los niveles de deuda
    """
    now = now or datetime.now()
    inventory = list(inventory)
    customers = list(customers)

    paid_by_order: Dict[str, float] = defaultdict(float)
    for tx in transactions:
        if tx.type == TransactionType.IN and tx.sale_order_id:
            paid_by_order[tx.sale_order_id] += tx.amount

    result = []
    for order in orders:
        product = find_product_stat(inventory, order.sim_type_id)
        customer = find_customer(customers, order.customer_id)

        cost_per_unit = product.weighted_avg_cost if product is not None else 0
        total_amount = order.total_amount
        cost = order.quantity * cost_per_unit
        paid = paid_by_order.get(order.id, 0)
        remaining = max(0, total_amount - paid)
        debt_level = classify_debt_level(order, remaining, now)

        result.append(SaleOrderWithStats(
            order=order,
            product_name=product.name if product is not None else UNKNOWN_PRODUCT,
            customer_name=customer.name if customer is not None else order.agent_name,
            total_amount=total_amount,
            cost=cost,
            profit=total_amount - cost,
            paid_amount=paid,
            remaining=remaining,
            status=payment_status(paid, remaining),
            debt_level=debt_level,
            is_overdue=debt_level in (DebtLevel.OVERDUE, DebtLevel.RECOVERY),
            is_bad_debt=debt_level == DebtLevel.RECOVERY,
        ))
    return result


def list_due_date_logs(logs: Iterable[DueDateLog], order_id: str) -> List[DueDateLog]:
    """Historial de extensiones de una orden, más reciente primero."""
    history = [log for log in logs if log.order_id == order_id]
    return sorted(history, key=lambda log: log.updated_at, reverse=True)


# ==============================================================================
# OPERACIONES
# ==============================================================================

class SalesService:
    """
    Servicio para gestión de ventas.

    Responsabilidades:
    - Crear órdenes (con cobro automático si se pagan al contado)
    - Eliminar órdenes
    - Extender vencimientos con su registro de auditoría
    """

    def __init__(self, store: IEntityStore):
        self.store = store

    def create_order(
        self,
        account_id: str,
        sim_type_id: str,
        date: str,
        quantity: int = 1,
        sale_price: float = 0,
        sale_type: str = SaleType.RETAIL,
        customer_id: str = None,
        retail_customer_info: str = '',
        is_paid: bool = False,
        due_date: str = None,
        payment_method: str = TransactionMethod.TRANSFER,
        note: str = '',
        sim_package_id: str = None,
    ) -> Tuple[SaleOrder, Optional[Transaction]]:
        """
        Crea una orden de venta.

        - Pagada: vencimiento = fecha de la orden, y se registra el cobro
        - A deuda: la fecha de vencimiento es obligatoria

        Returns:
            Tupla (orden, cobro o None)

        Raises:
            BusinessRuleViolation: Falta fecha, producto o vencimiento
            StoreWriteError: Fallo al guardar. Si falla el cobro, la orden
                ya creada se conserva
        """
        if not date:
            raise BusinessRuleViolation("La fecha de venta es obligatoria")
        if not sim_type_id:
            raise BusinessRuleViolation("El producto es obligatorio")
        if not is_paid and not due_date:
            raise BusinessRuleViolation("Las ventas a deuda requieren fecha de vencimiento")

        sale_type = coerce_enum(SaleType, sale_type, SaleType.RETAIL)
        if sale_type == SaleType.WHOLESALE:
            customer = self.store.get(account_id, EntityKind.CUSTOMERS, customer_id) if customer_id else None
            agent_name = (customer or {}).get('name') or DEFAULT_AGENT_NAME
        else:
            customer_id = None
            agent_name = (retail_customer_info or '').strip() or DEFAULT_RETAIL_NAME

        order = SaleOrder(
            id=generate_id(),
            code=generate_code('SO'),
            date=date,
            customer_id=customer_id or None,
            agent_name=agent_name,
            sale_type=sale_type,
            sim_type_id=sim_type_id,
            sim_package_id=sim_package_id or None,
            quantity=int(quantity or 0) or 1,
            sale_price=float(sale_price or 0),
            due_date=date if is_paid else due_date,
            due_date_changes=0,
            note=note or '',
            is_finished=bool(is_paid),
        )
        # La orden primero: el cobro la referencia
        self.store.create(account_id, EntityKind.ORDERS, order.to_dict())
        logger.info("[SALES] Orden %s creada (%s, total %s)", order.code, agent_name, order.total_amount)

        income = None
        if is_paid:
            income = Transaction(
                id=generate_id(),
                code=generate_code('TX'),
                date=date,
                type=TransactionType.IN,
                amount=order.total_amount,
                category=INCOME_CATEGORY[sale_type],
                method=coerce_enum(TransactionMethod, payment_method, TransactionMethod.TRANSFER),
                sale_order_id=order.id,
                note=f"Thu đơn {order.code}",
            )
            self.store.create(account_id, EntityKind.TRANSACTIONS, income.to_dict())

        return order, income

    def delete_order(self, account_id: str, order_id: str) -> SaleOrder:
        record = self.store.get(account_id, EntityKind.ORDERS, order_id)
        if record is None:
            raise RecordNotFoundError(EntityKind.ORDERS.value, order_id)
        self.store.delete(account_id, EntityKind.ORDERS, order_id)
        logger.info("[SALES] Orden eliminada: %s", record.get('code'))
        return SaleOrder.from_dict(record)

    def extend_due_date(
        self,
        account_id: str,
        order_id: str,
        new_date: str,
        reason: str = '',
        now: datetime = None,
    ) -> Tuple[SaleOrder, DueDateLog]:
        """
        Extiende el vencimiento de una orden.

        Incrementa dueDateChanges en exactamente 1 y agrega un DueDateLog.
        Si falla el registro del log, se revierte la orden.

        Raises:
            BusinessRuleViolation: Sin nueva fecha
            RecordNotFoundError: Orden inexistente
            StoreWriteError: Fallo de escritura (orden revertida)
        """
        if not new_date:
            raise BusinessRuleViolation("La nueva fecha de vencimiento es obligatoria")
        original = self.store.get(account_id, EntityKind.ORDERS, order_id)
        if original is None:
            raise RecordNotFoundError(EntityKind.ORDERS.value, order_id)

        order = SaleOrder.from_dict(original)
        log = DueDateLog(
            id=generate_id(),
            order_id=order.id,
            old_date=order.due_date,
            new_date=new_date,
            reason=reason or '',
            updated_at=(now or datetime.now()).isoformat(),
        )
        order.due_date = new_date
        order.due_date_changes += 1

        self.store.update(account_id, EntityKind.ORDERS, order.to_dict())
        try:
            self.store.create(account_id, EntityKind.DUE_DATE_LOGS, log.to_dict())
        except StoreWriteError:
            logger.error("[SALES] No se pudo registrar la extensión de %s; se revierte", order.code)
            self.store.update(account_id, EntityKind.ORDERS, original)
            raise

        logger.info(
            "[SALES] Vencimiento de %s: %s → %s (extensión #%d)",
            order.code, log.old_date, new_date, order.due_date_changes,
        )
        return order, log
