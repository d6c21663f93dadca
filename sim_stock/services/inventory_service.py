# ==============================================================================
# SERVICIO DE INVENTARIO
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con productos (SimType),
# lotes de compra (SimPackage) y stock.
#
# El stock NUNCA se guarda: se deriva de lotes - órdenes en
# compute_inventory_stats(), que es una función pura.
# ==============================================================================

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sim_stock.config import BATCH_LOW_STOCK_THRESHOLD, PRODUCT_LOW_STOCK_THRESHOLD
from sim_stock.exceptions import BusinessRuleViolation, RecordNotFoundError
from sim_stock.models.entities import (
    EntityKind,
    PurchaseMethod,
    SaleOrder,
    SimPackage,
    SimType,
    Transaction,
    TransactionMethod,
    TransactionType,
    coerce_enum,
)
from sim_stock.models.identifiers import generate_code, generate_id
from sim_stock.models.stats import (
    InventoryProductStat,
    SimPackageWithStats,
    StockStatus,
)
from sim_stock.repositories.interfaces import IEntityStore

logger = logging.getLogger(__name__)

# Categoría del egreso automático al comprar un lote
PURCHASE_CATEGORY = 'Chi nhập SIM'


def _safe_div(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0


# ==============================================================================
# AGREGADOR DE INVENTARIO (puro)
# ==============================================================================

def compute_inventory_stats(
    sim_types: Iterable[SimType],
    packages: Iterable[SimPackage],
    orders: Iterable[SaleOrder],
    transactions: Iterable[Transaction],
) -> List[InventoryProductStat]:
    """
    Calcula stock, costo promedio ponderado y deuda con proveedores.

    - Por lote: vendidos = órdenes ligadas a ESE lote (simPackageId)
    - Por producto: vendidos = todas las órdenes del tipo (ligadas o no)

    Returns:
        Una estadística por SimType, en el orden recibido
    """
    packages = list(packages)

    sold_by_batch: Dict[str, int] = defaultdict(int)
    sold_by_type: Dict[str, int] = defaultdict(int)
    for order in orders:
        if order.sim_package_id:
            sold_by_batch[order.sim_package_id] += order.quantity
        sold_by_type[order.sim_type_id] += order.quantity

    paid_by_batch: Dict[str, float] = defaultdict(float)
    for tx in transactions:
        if tx.type == TransactionType.OUT and tx.sim_package_id:
            paid_by_batch[tx.sim_package_id] += tx.amount

    result = []
    for sim_type in sim_types:
        batches = []
        for pkg in packages:
            if pkg.sim_type_id != sim_type.id:
                continue
            sold = sold_by_batch.get(pkg.id, 0)
            stock = pkg.quantity - sold
            paid = paid_by_batch.get(pkg.id, 0)
            batches.append(SimPackageWithStats(
                batch=pkg,
                sold=sold,
                stock=stock,
                cost_per_sim=_safe_div(pkg.total_import_price, pkg.quantity),
                status=StockStatus.LOW_STOCK if stock < BATCH_LOW_STOCK_THRESHOLD else StockStatus.OK,
                paid_amount=paid,
                remaining_payable=max(0, pkg.total_import_price - paid),
            ))

        total_imported = sum(b.batch.quantity for b in batches)
        total_cost = sum(b.batch.total_import_price for b in batches)
        total_sold = sold_by_type.get(sim_type.id, 0)
        current_stock = total_imported - total_sold

        result.append(InventoryProductStat(
            sim_type_id=sim_type.id,
            name=sim_type.name,
            total_imported=total_imported,
            total_sold=total_sold,
            current_stock=current_stock,
            weighted_avg_cost=_safe_div(total_cost, total_imported),
            status=StockStatus.LOW_STOCK if current_stock <= PRODUCT_LOW_STOCK_THRESHOLD else StockStatus.OK,
            total_payable=total_cost,
            total_remaining_payable=sum(b.remaining_payable for b in batches),
            batches=batches,
        ))
    return result


def find_product_stat(
    inventory: Iterable[InventoryProductStat], sim_type_id: Optional[str]
) -> Optional[InventoryProductStat]:
    """Estadística del producto o None si no existe."""
    for stat in inventory:
        if stat.sim_type_id == sim_type_id:
            return stat
    return None


# ==============================================================================
# OPERACIONES
# ==============================================================================

class InventoryService:
    """
    Servicio para gestión de inventario.

    Responsabilidades:
    - Alta/baja de productos (SimType)
    - Alta/baja de lotes con su egreso automático
    - Guardas de borrado en modo estricto
    """

    def __init__(self, store: IEntityStore, strict_deletes: bool = False):
        """
        Args:
            store: Store de entidades
            strict_deletes: True = bloquear borrado de registros referenciados
        """
        self.store = store
        self.strict_deletes = strict_deletes

    # =========================================================================
    # PRODUCTOS
    # =========================================================================

    def add_sim_type(self, account_id: str, name: str) -> SimType:
        name = (name or '').strip()
        if not name:
            raise BusinessRuleViolation("El nombre del producto es obligatorio")
        sim_type = SimType(id=generate_id(), name=name)
        self.store.create(account_id, EntityKind.SIM_TYPES, sim_type.to_dict())
        logger.info("[INVENTORY] Producto creado: %s", name)
        return sim_type

    def delete_sim_type(self, account_id: str, sim_type_id: str) -> SimType:
        """
        Elimina un producto.

        Por defecto los lotes/órdenes que lo referencian quedan huérfanos
        (se muestran como producto desconocido).

        Raises:
            RecordNotFoundError: Si no existe
            BusinessRuleViolation: En modo estricto, si está referenciado
        """
        record = self.store.get(account_id, EntityKind.SIM_TYPES, sim_type_id)
        if record is None:
            raise RecordNotFoundError(EntityKind.SIM_TYPES.value, sim_type_id)

        if self.strict_deletes:
            in_use = any(
                r.get('simTypeId') == sim_type_id
                for kind in (EntityKind.PACKAGES, EntityKind.ORDERS)
                for r in self.store.list(account_id, kind)
            )
            if in_use:
                raise BusinessRuleViolation(
                    f"El producto '{record.get('name')}' tiene lotes u órdenes asociados"
                )

        self.store.delete(account_id, EntityKind.SIM_TYPES, sim_type_id)
        logger.info("[INVENTORY] Producto eliminado: %s", record.get('name'))
        return SimType.from_dict(record)

    # =========================================================================
    # LOTES
    # =========================================================================

    def add_package(
        self,
        account_id: str,
        sim_type_id: str,
        quantity: int,
        total_import_price: float,
        import_date: str = None,
        payment_method: str = PurchaseMethod.TRANSFER,
        due_date: str = None,
    ) -> SimPackage:
        """
        Registra la compra de un lote.

        Pagado (CASH/TRANSFER) → se registra además un egreso ligado al lote.
        A crédito (CREDIT) → sin egreso; se conserva la fecha de vencimiento.

        Raises:
            BusinessRuleViolation: Producto inexistente o cantidad inválida
        """
        record = self.store.get(account_id, EntityKind.SIM_TYPES, sim_type_id)
        if record is None:
            raise BusinessRuleViolation(f"Producto '{sim_type_id}' no existe")
        if int(quantity or 0) <= 0:
            raise BusinessRuleViolation("La cantidad debe ser mayor a 0")

        method = coerce_enum(PurchaseMethod, payment_method, PurchaseMethod.TRANSFER)
        if method == PurchaseMethod.CREDIT and not due_date:
            raise BusinessRuleViolation("Las compras a crédito requieren fecha de vencimiento")

        package = SimPackage(
            id=generate_id(),
            code=generate_code('SIM'),
            name=record.get('name', ''),
            sim_type_id=sim_type_id,
            import_date=import_date or datetime.now().strftime('%Y-%m-%d'),
            quantity=int(quantity),
            total_import_price=float(total_import_price or 0),
            due_date=due_date if method == PurchaseMethod.CREDIT else None,
        )
        self.store.create(account_id, EntityKind.PACKAGES, package.to_dict())
        logger.info("[INVENTORY] Lote %s: %d unidades de %s", package.code, package.quantity, package.name)

        if method != PurchaseMethod.CREDIT:
            # El lote ya existe: un fallo aquí no lo deshace
            tx = Transaction(
                id=generate_id(),
                code=generate_code('TX'),
                date=package.import_date,
                type=TransactionType.OUT,
                amount=package.total_import_price,
                category=PURCHASE_CATEGORY,
                method=TransactionMethod(method.value),
                sim_package_id=package.id,
                note=f"Tự động chi lô {package.code}",
            )
            self.store.create(account_id, EntityKind.TRANSACTIONS, tx.to_dict())

        return package

    def delete_package(self, account_id: str, package_id: str) -> SimPackage:
        """
        Elimina un lote (las órdenes/egresos ligados quedan huérfanos salvo
        en modo estricto).
        """
        record = self.store.get(account_id, EntityKind.PACKAGES, package_id)
        if record is None:
            raise RecordNotFoundError(EntityKind.PACKAGES.value, package_id)

        if self.strict_deletes:
            in_use = any(
                r.get('simPackageId') == package_id
                for kind in (EntityKind.ORDERS, EntityKind.TRANSACTIONS)
                for r in self.store.list(account_id, kind)
            )
            if in_use:
                raise BusinessRuleViolation(
                    f"El lote '{record.get('code')}' tiene órdenes o pagos asociados"
                )

        self.store.delete(account_id, EntityKind.PACKAGES, package_id)
        logger.info("[INVENTORY] Lote eliminado: %s", record.get('code'))
        return SimPackage.from_dict(record)
