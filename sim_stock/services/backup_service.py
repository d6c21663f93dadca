# ==============================================================================
# SERVICIO DE EXPORTACIÓN Y BACKUPS
# ==============================================================================
# Exporta TODOS los datos de una cuenta a un libro .xlsx (una hoja por
# colección, columnas = nombres canónicos). Es el formato preferido para
# restaurar (ver restore_service.py).
#
# FORMATO DE BACKUP: SIM_PRO_BACKUP_<cuenta>_YYYY-MM-DD.xlsx
# Se mantienen solo los últimos N backups por cuenta (rotación).
# ==============================================================================

import io
import logging
import os
from datetime import date, datetime
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from werkzeug.utils import secure_filename

from sim_stock.models.entities import DataSet, EntityKind
from sim_stock.services.restore_service import FIELD_ALIASES

logger = logging.getLogger(__name__)

# Hoja de exportación por colección (en este orden)
EXPORT_SHEETS = (
    (EntityKind.SIM_TYPES, 'SimTypes'),
    (EntityKind.PACKAGES, 'Inventory'),
    (EntityKind.ORDERS, 'Orders'),
    (EntityKind.TRANSACTIONS, 'Transactions'),
    (EntityKind.CUSTOMERS, 'Customers'),
    (EntityKind.DUE_DATE_LOGS, 'HistoryLogs'),
)

BACKUP_PREFIX = 'SIM_PRO_BACKUP_'
XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

_HEADER_FILL = PatternFill(start_color='4F46E5', end_color='4F46E5', fill_type='solid')
_HEADER_FONT = Font(color='FFFFFF', bold=True)


def export_columns(kind: EntityKind) -> List[str]:
    """Columnas canónicas de una colección (las mismas que acepta la importación)."""
    return list(FIELD_ALIASES[kind].keys())


def export_workbook(dataset: DataSet) -> Workbook:
    """Libro con una hoja por colección; la fila 1 son los encabezados."""
    wb = Workbook()
    wb.remove(wb.active)

    collections = dataset.to_collections()
    for kind, title in EXPORT_SHEETS:
        ws = wb.create_sheet(title)
        columns = export_columns(kind)
        ws.append(columns)
        for record in collections[kind]:
            ws.append([record.get(column) for column in columns])
            # texto siempre literal: '=...' no debe escribirse como fórmula
            for cell in ws[ws.max_row]:
                if isinstance(cell.value, str):
                    cell.data_type = 's'

        for cell in ws[1]:
            cell.fill = _HEADER_FILL
            cell.font = _HEADER_FONT
            cell.alignment = Alignment(horizontal='center')

        for column_cells in ws.columns:
            width = max(len(str(c.value)) if c.value is not None else 0 for c in column_cells)
            ws.column_dimensions[column_cells[0].column_letter].width = min(width + 2, 50)

    return wb


def export_bytes(dataset: DataSet) -> bytes:
    """Contenido .xlsx listo para descargar."""
    buffer = io.BytesIO()
    export_workbook(dataset).save(buffer)
    return buffer.getvalue()


def export_filename(account_id: str, day: date = None) -> str:
    day = day or date.today()
    return f"{BACKUP_PREFIX}{secure_filename(account_id)}_{day.strftime('%Y-%m-%d')}.xlsx"


class BackupService:
    """
    Servicio de backups .xlsx con rotación.

    Uso:
        backup_service = BackupService('/app/data/backups', max_backups=7)
        backup_service.create_backup('tienda1', dataset)
    """

    def __init__(self, backup_root: str, max_backups: int = 7):
        """
        Args:
            backup_root: Carpeta de backups
            max_backups: Backups a conservar por cuenta
        """
        self.backup_root = backup_root
        self.max_backups = max_backups
        os.makedirs(self.backup_root, exist_ok=True)

    def _backup_path(self, account_id: str, day: date = None) -> str:
        return os.path.join(self.backup_root, export_filename(account_id, day))

    def _get_existing_backups(self, account_id: str) -> List[str]:
        """
        Backups de la cuenta, más reciente primero.

        Solo se consideran archivos con fecha válida en el nombre.
        """
        prefix = f"{BACKUP_PREFIX}{secure_filename(account_id)}_"
        backups = []
        for item in os.listdir(self.backup_root):
            if not (item.startswith(prefix) and item.endswith('.xlsx')):
                continue
            try:
                datetime.strptime(item[len(prefix):-5], '%Y-%m-%d')
            except ValueError:
                continue
            backups.append(item)
        backups.sort(reverse=True)
        return backups

    def rotate_backups(self, account_id: str) -> int:
        """
        Elimina los backups que exceden max_backups.

        Returns:
            Cantidad eliminada
        """
        deleted = 0
        for name in self._get_existing_backups(account_id)[self.max_backups:]:
            try:
                os.remove(os.path.join(self.backup_root, name))
                deleted += 1
                logger.info("[BACKUP] Eliminado backup antiguo: %s", name)
            except OSError as e:
                logger.error("[BACKUP] No se pudo eliminar %s: %s", name, e)
        return deleted

    def create_backup(
        self,
        account_id: str,
        dataset: DataSet,
        force: bool = False,
        today: date = None,
    ) -> Dict[str, Any]:
        """
        Guarda el backup del día y rota los antiguos.

        Args:
            force: Si True, sobrescribe el backup de hoy si ya existe

        Returns:
            {success, message, backup_path, records, deleted}
        """
        path = self._backup_path(account_id, today)
        result = {
            'success': False,
            'message': '',
            'backup_path': path,
            'records': dataset.counts(),
            'deleted': 0,
        }

        if not force and os.path.exists(path) and os.path.getsize(path) > 0:
            result['success'] = True
            result['message'] = 'Backup del día ya existe'
            logger.info("[BACKUP] Backup ya existe hoy: %s", os.path.basename(path))
            return result

        temp_path = path + '.tmp'
        try:
            export_workbook(dataset).save(temp_path)
            os.replace(temp_path, path)
        except OSError as e:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            logger.error("[BACKUP] Error al crear backup: %s", e)
            result['message'] = f'Error al crear backup: {e}'
            return result

        size_kb = round(os.path.getsize(path) / 1024, 2)
        result['success'] = True
        result['message'] = f'Backup creado ({size_kb} KB)'
        result['deleted'] = self.rotate_backups(account_id)
        logger.info("[BACKUP] Backup creado: %s (%s KB)", os.path.basename(path), size_kb)
        return result

    def get_backup_status(self, account_id: str, today: date = None) -> Dict[str, Any]:
        backups = self._get_existing_backups(account_id)
        info = []
        for name in backups:
            size_bytes = os.path.getsize(os.path.join(self.backup_root, name))
            info.append({
                'filename': name,
                'date': name[-15:-5],
                'size_bytes': size_bytes,
                'size_kb': round(size_bytes / 1024, 2),
            })
        today_path = self._backup_path(account_id, today)
        return {
            'total_backups': len(backups),
            'max_backups': self.max_backups,
            'backup_root': self.backup_root,
            'backups': info,
            'today_exists': os.path.exists(today_path),
        }
