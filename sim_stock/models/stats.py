# ==============================================================================
# ESTADÍSTICAS DERIVADAS - Resultados de los agregadores
# ==============================================================================
# Estas estructuras NUNCA se persisten: se recalculan desde cero a partir del
# DataSet cada vez que cambia algo. Cada una envuelve el registro original
# (lote, orden, cliente) y agrega los campos calculados.
# ==============================================================================

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from sim_stock.models.entities import Customer, SaleOrder, SimPackage


class StockStatus(str, Enum):
    OK = "OK"
    LOW_STOCK = "LOW_STOCK"


class PaymentStatus(str, Enum):
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    UNPAID = "UNPAID"


class DebtLevel(str, Enum):
    """Nivel de riesgo de una deuda, de menor a mayor severidad."""
    NORMAL = "NORMAL"
    WARNING = "WARNING"
    OVERDUE = "OVERDUE"
    RECOVERY = "RECOVERY"

    @property
    def severity(self) -> int:
        return _DEBT_SEVERITY[self]


_DEBT_SEVERITY = {
    DebtLevel.NORMAL: 0,
    DebtLevel.WARNING: 1,
    DebtLevel.OVERDUE: 2,
    DebtLevel.RECOVERY: 3,
}


class CreditScore(str, Enum):
    """Calificación de cliente: A (mejor) a D (peor)."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"


@dataclass
class SimPackageWithStats:
    """
    Lote con sus estadísticas.

    Attributes:
        batch: Lote original
        sold: Unidades vendidas en órdenes que referencian ESTE lote
        stock: quantity - sold (puede ser negativo con datos inconsistentes)
        cost_per_sim: Costo unitario del lote (0 si quantity es 0)
        status: LOW_STOCK si stock < 10
        paid_amount: Egresos (OUT) ligados a este lote
        remaining_payable: Deuda pendiente con el proveedor (>= 0)
    """
    batch: SimPackage
    sold: int
    stock: int
    cost_per_sim: float
    status: StockStatus
    paid_amount: float
    remaining_payable: float

    @property
    def id(self) -> str:
        return self.batch.id

    def to_dict(self) -> Dict[str, Any]:
        d = self.batch.to_dict()
        d.update({
            'sold': self.sold,
            'stock': self.stock,
            'costPerSim': self.cost_per_sim,
            'status': self.status.value,
            'paidAmount': self.paid_amount,
            'remainingPayable': self.remaining_payable,
        })
        return d


@dataclass
class InventoryProductStat:
    """
    Estadísticas de un tipo de producto (agrupa sus lotes).

    `weighted_avg_cost` es la base de costo para TODAS las órdenes de este
    producto, sin importar el lote que las despachó.
    """
    sim_type_id: str
    name: str
    total_imported: int
    total_sold: int
    current_stock: int
    weighted_avg_cost: float
    status: StockStatus
    total_payable: float
    total_remaining_payable: float
    batches: List[SimPackageWithStats] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'simTypeId': self.sim_type_id,
            'name': self.name,
            'totalImported': self.total_imported,
            'totalSold': self.total_sold,
            'currentStock': self.current_stock,
            'weightedAvgCost': self.weighted_avg_cost,
            'status': self.status.value,
            'totalPayable': self.total_payable,
            'totalRemainingPayable': self.total_remaining_payable,
            'batches': [b.to_dict() for b in self.batches],
        }


@dataclass
class SaleOrderWithStats:
    """Orden con rentabilidad, estado de pago y nivel de deuda."""
    order: SaleOrder
    product_name: str
    customer_name: str
    total_amount: float
    cost: float
    profit: float
    paid_amount: float
    remaining: float
    status: PaymentStatus
    debt_level: DebtLevel
    is_overdue: bool
    is_bad_debt: bool

    @property
    def id(self) -> str:
        return self.order.id

    @property
    def customer_id(self) -> Optional[str]:
        return self.order.customer_id

    @property
    def due_date(self) -> Optional[str]:
        return self.order.due_date

    @property
    def date(self) -> str:
        return self.order.date

    def to_dict(self) -> Dict[str, Any]:
        d = self.order.to_dict()
        d.update({
            'productName': self.product_name,
            'customerName': self.customer_name,
            'totalAmount': self.total_amount,
            'cost': self.cost,
            'profit': self.profit,
            'paidAmount': self.paid_amount,
            'remaining': self.remaining,
            'status': self.status.value,
            'debtLevel': self.debt_level.value,
            'isOverdue': self.is_overdue,
            'isBadDebt': self.is_bad_debt,
        })
        return d


@dataclass
class CustomerWithStats:
    """Cliente con GMV, deuda actual, próximo vencimiento y scoring."""
    customer: Customer
    order_count: int
    gmv: float
    current_debt: float
    next_due_date: Optional[str]
    worst_debt_level: DebtLevel
    credit_score: CreditScore

    @property
    def id(self) -> str:
        return self.customer.id

    def to_dict(self) -> Dict[str, Any]:
        d = self.customer.to_dict()
        d.update({
            'orderCount': self.order_count,
            'gmv': self.gmv,
            'currentDebt': self.current_debt,
            'nextDueDate': self.next_due_date,
            'worstDebtLevel': self.worst_debt_level.value,
            'creditScore': self.credit_score.value,
        })
        return d


@dataclass
class DerivedStats:
    """Resultado de la cadena completa inventario → órdenes → clientes."""
    inventory: List[InventoryProductStat] = field(default_factory=list)
    orders: List[SaleOrderWithStats] = field(default_factory=list)
    customers: List[CustomerWithStats] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'inventory': [i.to_dict() for i in self.inventory],
            'orders': [o.to_dict() for o in self.orders],
            'customers': [c.to_dict() for c in self.customers],
        }
