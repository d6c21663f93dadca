# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un registro plano del negocio (un evento).
# Ninguna guarda estado derivado: stock, costos y deudas se calculan en los
# servicios a partir de estas listas.
#
# Formato de persistencia/exportación: diccionarios con nombres de campo
# canónicos en camelCase (simTypeId, totalImportPrice, ...).
# ==============================================================================

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class SaleType(str, Enum):
    """Canal de venta / tipo de cliente."""
    WHOLESALE = "WHOLESALE"  # Mayorista (agente registrado)
    RETAIL = "RETAIL"        # Minorista (cliente de paso)


class TransactionType(str, Enum):
    """Dirección del movimiento de caja."""
    IN = "IN"    # Cobro (puede saldar una orden)
    OUT = "OUT"  # Pago (puede saldar un lote)


class TransactionMethod(str, Enum):
    """Medio de pago."""
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    COD = "COD"


class PurchaseMethod(str, Enum):
    """Forma de pago al comprar un lote."""
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    CREDIT = "CREDIT"  # A crédito: no genera egreso, queda deuda con proveedor


class EntityKind(str, Enum):
    """Colecciones del store (una por tipo de entidad)."""
    SIM_TYPES = "sim_types"
    PACKAGES = "packages"
    ORDERS = "orders"
    TRANSACTIONS = "transactions"
    CUSTOMERS = "customers"
    DUE_DATE_LOGS = "due_date_logs"


E = TypeVar('E', bound=Enum)


def coerce_enum(enum_cls: Type[E], value: Any, default: E) -> E:
    """Convierte un valor (str, enum o None) al enum indicado, con fallback."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except (ValueError, AttributeError):
        return default


def _opt_str(value: Any) -> Optional[str]:
    """None o '' → None; cualquier otro valor → str."""
    if value is None:
        return None
    value = str(value)
    return value if value != '' else None


# ==============================================================================
# CATÁLOGO E INVENTARIO
# ==============================================================================

@dataclass
class SimType:
    """
    Tipo de producto (categoría de SIM).
    Es la unidad de promedio de costo y de control de stock.
    """
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimType':
        return cls(id=str(data.get('id', '')), name=str(data.get('name', '')))


@dataclass
class SimPackage:
    """
    Lote de compra: `quantity` unidades a un precio total fijo.

    El costo unitario NO se guarda: se deriva (totalImportPrice / quantity).

    Attributes:
        id: Identificador global del lote
        code: Código legible (SIM-...)
        name: Nombre del producto al momento de la compra
        sim_type_id: Tipo de SIM al que pertenece
        import_date: Fecha de compra (YYYY-MM-DD)
        quantity: Unidades compradas
        total_import_price: Precio total pagado/adeudado por el lote
        due_date: Fecha límite de pago al proveedor (compras a crédito)
    """
    id: str
    code: str
    name: str
    sim_type_id: Optional[str]
    import_date: str
    quantity: int = 0
    total_import_price: float = 0.0
    due_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'simTypeId': self.sim_type_id,
            'importDate': self.import_date,
            'quantity': self.quantity,
            'totalImportPrice': self.total_import_price,
            'dueDate': self.due_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimPackage':
        return cls(
            id=str(data.get('id', '')),
            code=str(data.get('code', '')),
            name=str(data.get('name', '')),
            sim_type_id=_opt_str(data.get('simTypeId')),
            import_date=str(data.get('importDate', '')),
            quantity=int(data.get('quantity', 0) or 0),
            total_import_price=float(data.get('totalImportPrice', 0) or 0),
            due_date=_opt_str(data.get('dueDate')),
        )


# ==============================================================================
# VENTAS
# ==============================================================================

@dataclass
class SaleOrder:
    """
    Orden de venta: `quantity` unidades a precio unitario `sale_price`.

    No necesita referenciar un lote: el costo se atribuye a nivel de tipo de
    producto (costo promedio ponderado).

    Attributes:
        due_date: Fecha prometida de pago total (None = sin fecha)
        due_date_changes: Veces que se extendió el vencimiento (solo crece)
        is_finished: Marcada como pagada al momento de crearse
    """
    id: str
    code: str
    date: str
    agent_name: str
    sale_type: SaleType
    sim_type_id: str
    quantity: int
    sale_price: float
    customer_id: Optional[str] = None
    sim_package_id: Optional[str] = None
    due_date: Optional[str] = None
    due_date_changes: int = 0
    note: str = ''
    is_finished: bool = False

    @property
    def total_amount(self) -> float:
        return self.quantity * self.sale_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'code': self.code,
            'date': self.date,
            'customerId': self.customer_id,
            'agentName': self.agent_name,
            'saleType': self.sale_type.value,
            'simTypeId': self.sim_type_id,
            'simPackageId': self.sim_package_id,
            'quantity': self.quantity,
            'salePrice': self.sale_price,
            'dueDate': self.due_date,
            'dueDateChanges': self.due_date_changes,
            'note': self.note,
            'isFinished': self.is_finished,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SaleOrder':
        return cls(
            id=str(data.get('id', '')),
            code=str(data.get('code', '')),
            date=str(data.get('date', '')),
            customer_id=_opt_str(data.get('customerId')),
            agent_name=str(data.get('agentName', '')),
            sale_type=coerce_enum(SaleType, data.get('saleType'), SaleType.RETAIL),
            sim_type_id=str(data.get('simTypeId', '') or ''),
            sim_package_id=_opt_str(data.get('simPackageId')),
            quantity=int(data.get('quantity', 0) or 0),
            sale_price=float(data.get('salePrice', 0) or 0),
            due_date=_opt_str(data.get('dueDate')),
            due_date_changes=int(data.get('dueDateChanges', 0) or 0),
            note=str(data.get('note', '') or ''),
            is_finished=bool(data.get('isFinished', False)),
        )


@dataclass
class DueDateLog:
    """
    Registro de auditoría de una extensión de vencimiento.
    Solo se agrega; nunca se modifica ni se elimina.
    """
    id: str
    order_id: str
    old_date: Optional[str]
    new_date: Optional[str]
    reason: str = ''
    updated_at: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'orderId': self.order_id,
            'oldDate': self.old_date,
            'newDate': self.new_date,
            'reason': self.reason,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DueDateLog':
        return cls(
            id=str(data.get('id', '')),
            order_id=str(data.get('orderId', '')),
            old_date=_opt_str(data.get('oldDate')),
            new_date=_opt_str(data.get('newDate')),
            reason=str(data.get('reason', '') or ''),
            updated_at=str(data.get('updatedAt', '') or ''),
        )


# ==============================================================================
# CAJA
# ==============================================================================

@dataclass
class Transaction:
    """
    Movimiento de caja. `amount` siempre es >= 0; la dirección la da `type`.

    Un IN puede saldar una orden (sale_order_id); un OUT puede saldar un
    lote (sim_package_id).
    """
    id: str
    code: str
    date: str
    type: TransactionType
    amount: float
    category: str = ''
    method: TransactionMethod = TransactionMethod.TRANSFER
    sale_order_id: Optional[str] = None
    sim_package_id: Optional[str] = None
    note: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'code': self.code,
            'date': self.date,
            'type': self.type.value,
            'category': self.category,
            'amount': self.amount,
            'method': self.method.value,
            'saleOrderId': self.sale_order_id,
            'simPackageId': self.sim_package_id,
            'note': self.note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=str(data.get('id', '')),
            code=str(data.get('code', '')),
            date=str(data.get('date', '')),
            type=coerce_enum(TransactionType, data.get('type'), TransactionType.IN),
            category=str(data.get('category', '') or ''),
            amount=float(data.get('amount', 0) or 0),
            method=coerce_enum(TransactionMethod, data.get('method'), TransactionMethod.TRANSFER),
            sale_order_id=_opt_str(data.get('saleOrderId')),
            sim_package_id=_opt_str(data.get('simPackageId')),
            note=str(data.get('note', '') or ''),
        )


# ==============================================================================
# CLIENTES
# ==============================================================================

@dataclass
class Customer:
    """
    Cliente / agente.

    `cid` es un código legible generado UNA vez al crear (nombre + teléfono +
    email) y nunca se recalcula.
    """
    id: str
    cid: str
    name: str
    phone: str = ''
    email: str = ''
    address: str = ''
    type: SaleType = SaleType.RETAIL
    note: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'cid': self.cid,
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'type': self.type.value,
            'note': self.note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        return cls(
            id=str(data.get('id', '')),
            cid=str(data.get('cid', '')),
            name=str(data.get('name', '')),
            phone=str(data.get('phone', '') or ''),
            email=str(data.get('email', '') or ''),
            address=str(data.get('address', '') or ''),
            type=coerce_enum(SaleType, data.get('type'), SaleType.RETAIL),
            note=str(data.get('note', '') or ''),
        )


# ==============================================================================
# CONJUNTO DE DATOS DE UNA CUENTA
# ==============================================================================

ENTITY_CLASSES = {
    EntityKind.SIM_TYPES: SimType,
    EntityKind.PACKAGES: SimPackage,
    EntityKind.ORDERS: SaleOrder,
    EntityKind.TRANSACTIONS: Transaction,
    EntityKind.CUSTOMERS: Customer,
    EntityKind.DUE_DATE_LOGS: DueDateLog,
}


@dataclass
class DataSet:
    """
    Foto completa de los datos de una cuenta.

    Es el objeto de contexto explícito que reciben los agregadores.
    """
    sim_types: List[SimType] = field(default_factory=list)
    packages: List[SimPackage] = field(default_factory=list)
    orders: List[SaleOrder] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    customers: List[Customer] = field(default_factory=list)
    due_date_logs: List[DueDateLog] = field(default_factory=list)

    def get(self, kind: EntityKind) -> list:
        """Lista de la colección indicada."""
        return getattr(self, EntityKind(kind).value)

    def counts(self) -> Dict[str, int]:
        return {kind.value: len(self.get(kind)) for kind in EntityKind}

    def is_empty(self) -> bool:
        return not any(self.counts().values())

    def copy(self) -> 'DataSet':
        """Copia con listas propias; los registros se comparten (nunca se mutan en sitio)."""
        return DataSet(**{kind.value: list(self.get(kind)) for kind in EntityKind})

    def to_collections(self) -> Dict[EntityKind, List[Dict[str, Any]]]:
        """Serializa a diccionarios canónicos (formato del store)."""
        return {kind: [record.to_dict() for record in self.get(kind)] for kind in EntityKind}

    @classmethod
    def from_collections(cls, collections: Dict[Any, Iterable[Dict[str, Any]]]) -> 'DataSet':
        """Crea una instancia desde {EntityKind|str: [dict, ...]}."""
        values = {}
        for kind in EntityKind:
            rows = collections.get(kind)
            if rows is None:
                rows = collections.get(kind.value, [])
            entity_cls = ENTITY_CLASSES[kind]
            values[kind.value] = [entity_cls.from_dict(row) for row in rows]
        return cls(**values)
