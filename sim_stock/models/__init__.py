# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Este módulo define todas las entidades del dominio usando dataclasses.
#   - entities.py    → registros planos (lo que se persiste)
#   - stats.py       → estadísticas derivadas (lo que se calcula)
#   - identifiers.py → ids globales, códigos legibles y cid de clientes
# ==============================================================================

from sim_stock.models.entities import (
    # Catálogo e inventario
    SimType,
    SimPackage,
    PurchaseMethod,

    # Ventas
    SaleOrder,
    SaleType,
    DueDateLog,

    # Caja
    Transaction,
    TransactionType,
    TransactionMethod,

    # Clientes
    Customer,

    # Conjunto de datos
    DataSet,
    EntityKind,
    ENTITY_CLASSES,
    coerce_enum,
)

from sim_stock.models.stats import (
    StockStatus,
    PaymentStatus,
    DebtLevel,
    CreditScore,
    SimPackageWithStats,
    InventoryProductStat,
    SaleOrderWithStats,
    CustomerWithStats,
    DerivedStats,
)

from sim_stock.models.identifiers import (
    generate_id,
    generate_code,
    generate_cid,
    is_valid_id,
)

__all__ = [
    # Catálogo e inventario
    'SimType',
    'SimPackage',
    'PurchaseMethod',

    # Ventas
    'SaleOrder',
    'SaleType',
    'DueDateLog',

    # Caja
    'Transaction',
    'TransactionType',
    'TransactionMethod',

    # Clientes
    'Customer',

    # Conjunto de datos
    'DataSet',
    'EntityKind',
    'ENTITY_CLASSES',
    'coerce_enum',

    # Estadísticas
    'StockStatus',
    'PaymentStatus',
    'DebtLevel',
    'CreditScore',
    'SimPackageWithStats',
    'InventoryProductStat',
    'SaleOrderWithStats',
    'CustomerWithStats',
    'DerivedStats',

    # Identificadores
    'generate_id',
    'generate_code',
    'generate_cid',
    'is_valid_id',
]
