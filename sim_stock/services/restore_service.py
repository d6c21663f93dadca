# ==============================================================================
# SERVICIO DE RESTAURACIÓN (IMPORTACIÓN DESDE EXCEL)
# ==============================================================================
# Convierte un libro .xlsx (backup propio, versión antigua o editado a mano)
# en las seis colecciones y reemplaza TODOS los datos de la cuenta.
#
# FLUJO:
#   1. read_workbook()  → {hoja: [fila como dict]}
#   2. parse_dataset()  → DataSet (hojas y columnas por alias ES/VI)
#   3. Validación       → sin productos, órdenes ni clientes = archivo ajeno
#   4. rekey_dataset()  → ids legados → UUID (un mapeo compartido)
#   5. replace_all()    → atómico con rollback (ver entity_store.py)
#
# Las tablas de alias son declarativas: agregar un alias nuevo NO requiere
# tocar la lógica.
# ==============================================================================

import dataclasses
import io
import logging
import os
import zipfile
from collections import namedtuple
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from sim_stock.exceptions import ImportParseError
from sim_stock.models.entities import ENTITY_CLASSES, DataSet, EntityKind
from sim_stock.models.identifiers import generate_id, is_valid_id
from sim_stock.repositories.interfaces import IEntityStore

logger = logging.getLogger(__name__)


# ==============================================================================
# HOJAS (coincidencia por subcadena, sin mayúsculas; gana la primera hoja)
# ==============================================================================

SHEET_ALIASES = {
    EntityKind.SIM_TYPES: ('SimTypes', 'LoaiSim', 'Sản phẩm'),
    EntityKind.PACKAGES: ('Inventory', 'Packages', 'Kho', 'Nhập hàng'),
    EntityKind.ORDERS: ('Orders', 'SaleOrders', 'Đơn hàng', 'Bán hàng'),
    EntityKind.TRANSACTIONS: ('Transactions', 'CashFlow', 'Sổ quỹ', 'Giao dịch'),
    EntityKind.CUSTOMERS: ('Customers', 'CRM', 'Khách hàng', 'Đại lý'),
    EntityKind.DUE_DATE_LOGS: ('HistoryLogs', 'Logs', 'Lịch sử gia hạn'),
}


def find_sheet(sheet_names: List[str], aliases) -> Optional[str]:
    """Primera hoja cuyo nombre contiene alguno de los alias."""
    for name in sheet_names:
        lowered = name.lower()
        if any(alias.lower() in lowered for alias in aliases):
            return name
    return None


# ==============================================================================
# COERCIONES DE CELDAS
# ==============================================================================

def _today() -> str:
    return date.today().strftime('%Y-%m-%d')


def _text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        # Teléfonos/códigos guardados como número
        return str(int(value))
    return str(value).strip()


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _integer(value: Any) -> int:
    return int(_number(value))


def _iso_date(value: Any) -> str:
    """Celdas fecha de Excel → 'YYYY-MM-DD'; texto se conserva."""
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d')
    if isinstance(value, date):
        return value.isoformat()
    return _text(value)


def _timestamp(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return _text(value)


def _flag(value: Any) -> bool:
    """True, 'true' o 1 → True; cualquier otra cosa → False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    return _text(value).lower() == 'true'


def _direction(value: Any) -> str:
    return 'OUT' if _text(value).upper() == 'OUT' else 'IN'


def _upper(value: Any) -> str:
    return _text(value).upper()


# ==============================================================================
# COLUMNAS (campo canónico → alias aceptados, coerción, valor por defecto)
# ==============================================================================
# Un default callable se evalúa por fila (ids y fechas frescos).

Field = namedtuple('Field', ['aliases', 'coerce', 'default'])

FIELD_ALIASES = {
    EntityKind.SIM_TYPES: {
        'id': Field(('id', 'ID', 'id_loai'), _text, generate_id),
        'name': Field(('name', 'Name', 'tên', 'Tên Loại'), _text, 'Không tên'),
    },
    EntityKind.PACKAGES: {
        'id': Field(('id', 'ID'), _text, generate_id),
        'code': Field(('code', 'Code', 'Mã Lô'), _text, lambda: 'BATCH-' + generate_id()),
        'name': Field(('name', 'Name', 'Tên sản phẩm'), _text, ''),
        'simTypeId': Field(('simTypeId', 'SimTypeID', 'loai_id'), _text, None),
        'quantity': Field(('quantity', 'Quantity', 'số lượng', 'SL'), _integer, 0),
        'totalImportPrice': Field(('totalImportPrice', 'TotalImportPrice', 'tổng tiền', 'Giá nhập'), _number, 0),
        'importDate': Field(('importDate', 'ImportDate', 'ngày nhập'), _iso_date, _today),
        'dueDate': Field(('dueDate', 'DueDate', 'Hạn trả'), _iso_date, None),
    },
    EntityKind.ORDERS: {
        'id': Field(('id', 'ID'), _text, generate_id),
        'code': Field(('code', 'Code', 'Mã đơn'), _text, lambda: 'SO-' + generate_id()),
        'date': Field(('date', 'Date', 'ngày bán'), _iso_date, _today),
        'customerId': Field(('customerId',), _text, None),
        'agentName': Field(('agentName', 'AgentName', 'Khách hàng', 'tên khách'), _text, 'Khách lẻ'),
        'saleType': Field(('saleType', 'SaleType'), _upper, 'RETAIL'),
        'simTypeId': Field(('simTypeId', 'SimTypeID', 'Sản phẩm ID'), _text, ''),
        'simPackageId': Field(('simPackageId',), _text, None),
        'quantity': Field(('quantity', 'Quantity', 'SL'), _integer, 1),
        'salePrice': Field(('salePrice', 'SalePrice', 'Giá bán'), _number, 0),
        'dueDate': Field(('dueDate', 'DueDate', 'Hạn trả'), _iso_date, None),
        'dueDateChanges': Field(('dueDateChanges', 'Số lần gia hạn'), _integer, 0),
        'note': Field(('note', 'Ghi chú'), _text, ''),
        'isFinished': Field(('isFinished', 'Đã thanh toán', 'Trạng thái'), _flag, False),
    },
    EntityKind.TRANSACTIONS: {
        'id': Field(('id', 'ID'), _text, generate_id),
        'code': Field(('code', 'Code', 'Mã GD'), _text, lambda: 'TX-' + generate_id()),
        'date': Field(('date', 'Date', 'Ngày'), _iso_date, _today),
        'type': Field(('type', 'Type'), _direction, 'IN'),
        'category': Field(('category', 'Category', 'Danh mục'), _text, ''),
        'amount': Field(('amount', 'Amount', 'Số tiền'), _number, 0),
        'method': Field(('method', 'Method'), _upper, 'TRANSFER'),
        'saleOrderId': Field(('saleOrderId',), _text, None),
        'simPackageId': Field(('simPackageId',), _text, None),
        'note': Field(('note', 'Ghi chú'), _text, ''),
    },
    EntityKind.CUSTOMERS: {
        'id': Field(('id', 'ID'), _text, generate_id),
        'cid': Field(('cid', 'CID', 'Mã KH'), _text, lambda: 'KH-' + generate_id()),
        'name': Field(('name', 'Name', 'Họ tên'), _text, 'Khách chưa tên'),
        'phone': Field(('phone', 'Phone', 'SĐT'), _text, ''),
        'email': Field(('email', 'Email'), _text, ''),
        'address': Field(('address', 'Địa chỉ'), _text, ''),
        'type': Field(('type', 'Type'), _upper, 'RETAIL'),
        'note': Field(('note', 'Ghi chú'), _text, ''),
    },
    EntityKind.DUE_DATE_LOGS: {
        'id': Field(('id', 'ID'), _text, generate_id),
        'orderId': Field(('orderId', 'Mã đơn'), _text, ''),
        'oldDate': Field(('oldDate', 'Hạn cũ'), _iso_date, None),
        'newDate': Field(('newDate', 'Hạn mới'), _iso_date, None),
        'reason': Field(('reason', 'Lý do'), _text, ''),
        'updatedAt': Field(('updatedAt', 'Ngày tạo'), _timestamp, ''),
    },
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def resolve_field(row: Dict[str, Any], field: Field) -> Any:
    """
    Valor de un campo probando cada alias (tal cual y en minúsculas).

    Celdas vacías cuentan como ausentes; si ningún alias tiene valor se usa
    el default (evaluado si es callable).
    """
    for alias in field.aliases:
        for key in (alias, alias.lower()):
            value = row.get(key)
            if not _is_blank(value):
                return field.coerce(value)
    return field.default() if callable(field.default) else field.default


def parse_record(kind: EntityKind, row: Dict[str, Any]):
    fields = FIELD_ALIASES[kind]
    canonical = {name: resolve_field(row, field) for name, field in fields.items()}
    return ENTITY_CLASSES[kind].from_dict(canonical)


def parse_dataset(sheets: Dict[str, List[Dict[str, Any]]]) -> DataSet:
    """Arma el DataSet desde {nombre de hoja: filas}."""
    names = list(sheets)
    collections = {}
    for kind in EntityKind:
        sheet = find_sheet(names, SHEET_ALIASES[kind])
        rows = sheets.get(sheet, []) if sheet else []
        collections[kind] = [parse_record(kind, row) for row in rows]
        if sheet:
            logger.debug("[IMPORT] Hoja '%s' → %s (%d filas)", sheet, kind.value, len(rows))
    return DataSet(**{kind.value: records for kind, records in collections.items()})


# ==============================================================================
# LECTURA DEL LIBRO
# ==============================================================================

def read_workbook(source) -> Dict[str, List[Dict[str, Any]]]:
    """
    Lee todas las hojas de un .xlsx.

    Args:
        source: Ruta, bytes u objeto archivo

    Returns:
        {nombre de hoja: [fila como dict encabezado → valor]}; filas vacías
        se omiten

    Raises:
        ImportParseError: Si no es un libro legible
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        wb = load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise ImportParseError(f"El archivo no es un libro Excel válido: {e}") from e

    sheets = {}
    try:
        for ws in wb.worksheets:
            rows = ws.iter_rows(values_only=True)
            header = next(rows, None)
            if header is None:
                sheets[ws.title] = []
                continue
            keys = [_text(h) if h is not None else None for h in header]
            records = []
            for values in rows:
                if all(_is_blank(v) for v in values):
                    continue
                records.append({
                    key: value for key, value in zip(keys, values) if key
                })
            sheets[ws.title] = records
    finally:
        wb.close()
    return sheets


# ==============================================================================
# RE-IDENTIFICACIÓN
# ==============================================================================

class IdRemapper:
    """
    UUID válidos pasan intactos; cualquier otro id recibe un UUID nuevo
    una sola vez y se reutiliza en todas las referencias.

    La tabla es ÚNICA para todas las colecciones, indexada por el id
    original como string.
    """

    def __init__(self):
        self.mapping: Dict[str, str] = {}

    def __call__(self, old_id: Any) -> Optional[str]:
        if _is_blank(old_id):
            return None
        old_id = str(old_id).strip()
        if is_valid_id(old_id):
            return old_id
        if old_id not in self.mapping:
            self.mapping[old_id] = generate_id()
        return self.mapping[old_id]


def rekey_dataset(dataset: DataSet, remap: Callable[[Any], Optional[str]] = None) -> DataSet:
    """Nuevo DataSet con ids y referencias re-identificados."""
    remap = remap or IdRemapper()
    return DataSet(
        sim_types=[
            dataclasses.replace(t, id=remap(t.id)) for t in dataset.sim_types
        ],
        packages=[
            dataclasses.replace(p, id=remap(p.id), sim_type_id=remap(p.sim_type_id))
            for p in dataset.packages
        ],
        orders=[
            dataclasses.replace(
                o,
                id=remap(o.id),
                customer_id=remap(o.customer_id),
                sim_type_id=remap(o.sim_type_id) or '',
                sim_package_id=remap(o.sim_package_id),
            )
            for o in dataset.orders
        ],
        transactions=[
            dataclasses.replace(
                t,
                id=remap(t.id),
                sale_order_id=remap(t.sale_order_id),
                sim_package_id=remap(t.sim_package_id),
            )
            for t in dataset.transactions
        ],
        customers=[
            dataclasses.replace(c, id=remap(c.id)) for c in dataset.customers
        ],
        due_date_logs=[
            dataclasses.replace(log, id=remap(log.id), order_id=remap(log.order_id) or '')
            for log in dataset.due_date_logs
        ],
    )


def has_recognizable_data(dataset: DataSet) -> bool:
    """Al menos productos, órdenes o clientes."""
    return bool(dataset.sim_types or dataset.orders or dataset.customers)


# ==============================================================================
# SERVICIO
# ==============================================================================

class RestoreService:
    """
    Restauración completa de una cuenta desde un libro Excel.

    Uso:
        service = RestoreService(store)
        counts = service.preview(file_bytes)     # sin escribir
        counts = service.restore('tienda1', file_bytes)
    """

    def __init__(self, store: IEntityStore):
        self.store = store

    def load(self, source) -> DataSet:
        """
        Lee, valida y re-identifica el libro.

        Raises:
            ImportParseError: Archivo ilegible o sin datos reconocibles
        """
        dataset = parse_dataset(read_workbook(source))
        if not has_recognizable_data(dataset):
            raise ImportParseError(
                "No se encontraron datos válidos en el archivo. Verifique los nombres de las hojas."
            )
        return rekey_dataset(dataset)

    def preview(self, source) -> Dict[str, int]:
        """Cantidad de registros por colección, sin modificar nada."""
        return self.load(source).counts()

    def restore(self, account_id: str, source) -> Dict[str, int]:
        """
        Reemplaza todos los datos de la cuenta con el contenido del libro.

        Raises:
            ImportParseError: Validación fallida (store intacto)
            ImportCommitError: Fallo al escribir (store restaurado)
        """
        name = os.path.basename(source) if isinstance(source, str) else 'upload'
        logger.info("[IMPORT] Restaurando cuenta '%s' desde %s", account_id, name)

        dataset = self.load(source)
        self.store.replace_all(account_id, dataset.to_collections())

        counts = dataset.counts()
        logger.info("[IMPORT] Restauración completa: %s", counts)
        return counts
