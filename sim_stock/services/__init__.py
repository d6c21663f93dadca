# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de la aplicación.
#
# PRINCIPIOS:
# 1. Los agregadores (compute_*) son funciones puras: mismos datos → mismo
#    resultado, sin tocar el store
# 2. Los servicios aplican reglas de negocio ANTES de escribir
# 3. Las rutas (controllers) solo llaman a servicios
# 4. Los servicios NO conocen el tipo de almacenamiento (dependen de
#    IEntityStore)
#
# ESTRUCTURA:
# ├── inventory_service.py → Productos, lotes, stock y costo promedio
# ├── sales_service.py     → Órdenes, niveles de deuda, vencimientos
# ├── customer_service.py  → Clientes (CRM) y scoring
# ├── payment_service.py   → Sổ quỹ: movimientos de caja y saldos
# ├── stats_service.py     → compute_all() + panel de control y reportes
# ├── sync_service.py      → Foto en memoria sincronizada con el store
# ├── restore_service.py   → Importación/restauración desde Excel
# └── backup_service.py    → Exportación a Excel y backups
# ==============================================================================

from sim_stock.services.inventory_service import (
    InventoryService,
    compute_inventory_stats,
    find_product_stat,
)
from sim_stock.services.sales_service import (
    SalesService,
    classify_debt_level,
    compute_order_stats,
    find_customer,
    list_due_date_logs,
    payment_status,
)
from sim_stock.services.customer_service import (
    CustomerService,
    compute_customer_stats,
    credit_score,
    search_customers,
    worst_debt_level,
)
from sim_stock.services.payment_service import (
    PaymentService,
    cash_balance,
    pending_orders,
    pending_payables,
)
from sim_stock.services.stats_service import StatsService, compute_all
from sim_stock.services.sync_service import SnapshotSync
from sim_stock.services.restore_service import (
    IdRemapper,
    RestoreService,
    parse_dataset,
    read_workbook,
    rekey_dataset,
    resolve_field,
)
from sim_stock.services.backup_service import BackupService, export_bytes, export_workbook

__all__ = [
    # Inventario
    'InventoryService',
    'compute_inventory_stats',
    'find_product_stat',

    # Ventas
    'SalesService',
    'classify_debt_level',
    'compute_order_stats',
    'find_customer',
    'list_due_date_logs',
    'payment_status',

    # Clientes
    'CustomerService',
    'compute_customer_stats',
    'credit_score',
    'search_customers',
    'worst_debt_level',

    # Caja
    'PaymentService',
    'cash_balance',
    'pending_orders',
    'pending_payables',

    # Estadísticas
    'StatsService',
    'compute_all',

    # Sincronización
    'SnapshotSync',

    # Importación / exportación
    'IdRemapper',
    'RestoreService',
    'parse_dataset',
    'read_workbook',
    'rekey_dataset',
    'resolve_field',
    'BackupService',
    'export_bytes',
    'export_workbook',
]
