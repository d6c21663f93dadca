# ==============================================================================
# ENTITY STORE (JSON) - Seis colecciones por cuenta
# ==============================================================================
# Estructura en disco:
#   <data_dir>/<cuenta>/sim_types.json
#   <data_dir>/<cuenta>/packages.json
#   <data_dir>/<cuenta>/orders.json
#   <data_dir>/<cuenta>/transactions.json
#   <data_dir>/<cuenta>/customers.json
#   <data_dir>/<cuenta>/due_date_logs.json
#
# Cada escritura confirmada se publica en el ChangeFeed.
#
# REEMPLAZO TOTAL (restauración):
#   1. Se preparan y validan TODAS las colecciones antes de tocar nada
#   2. Se toma una foto de los datos actuales
#   3. Borrado hijos → padres, inserción padres → hijos
#   4. Si algo falla, se restaura la foto (rollback compensatorio)
# ==============================================================================

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional, Tuple

from werkzeug.utils import secure_filename

from sim_stock.exceptions import ImportCommitError, StoreWriteError
from sim_stock.models.entities import EntityKind
from sim_stock.repositories.base import ListRepository
from sim_stock.repositories.change_feed import (
    OP_DELETE,
    OP_INSERT,
    OP_REPLACE,
    OP_UPDATE,
    ChangeEvent,
    ChangeFeed,
)
from sim_stock.repositories.interfaces import IListRepository

logger = logging.getLogger(__name__)

# Orden de dependencias (claves foráneas)
DELETE_ORDER = (
    EntityKind.DUE_DATE_LOGS,
    EntityKind.TRANSACTIONS,
    EntityKind.ORDERS,
    EntityKind.PACKAGES,
    EntityKind.CUSTOMERS,
    EntityKind.SIM_TYPES,
)
INSERT_ORDER = (
    EntityKind.SIM_TYPES,
    EntityKind.CUSTOMERS,
    EntityKind.PACKAGES,
    EntityKind.ORDERS,
    EntityKind.TRANSACTIONS,
    EntityKind.DUE_DATE_LOGS,
)


class EntityRepository(ListRepository):
    """
    Repositorio de una colección de una cuenta.

    Formato: [{"id": "...", ...}, ...] (más reciente primero)
    """

    def __init__(self, account_dir: str, entity: EntityKind):
        self.entity = EntityKind(entity)
        super().__init__(os.path.join(account_dir, f'{self.entity.value}.json'))


class JsonEntityStore:
    """
    Implementación de IEntityStore sobre archivos JSON.

    Uso:
        store = JsonEntityStore('/app/data')
        store.create('tienda1', EntityKind.SIM_TYPES, {'id': ..., 'name': 'Viettel'})
    """

    def __init__(self, base_path: str, feed: Optional[ChangeFeed] = None):
        """
        Args:
            base_path: Carpeta raíz de datos
            feed: Feed de cambios (se crea uno si no se indica)
        """
        self.base_path = base_path
        self.feed = feed or ChangeFeed()
        self._repos: Dict[Tuple[str, EntityKind], IListRepository] = {}
        self._lock = threading.RLock()

    # =========================================================================
    # ACCESO A REPOSITORIOS
    # =========================================================================

    def _account_dir(self, account_id: str) -> str:
        safe = secure_filename(str(account_id or ''))
        if not safe:
            raise StoreWriteError(f"Cuenta inválida: '{account_id}'")
        return os.path.join(self.base_path, safe)

    def repository(self, account_id: str, entity: EntityKind) -> IListRepository:
        """Repositorio (cacheado) de una colección de la cuenta."""
        key = (account_id, EntityKind(entity))
        with self._lock:
            if key not in self._repos:
                self._repos[key] = EntityRepository(self._account_dir(account_id), key[1])
            return self._repos[key]

    # =========================================================================
    # LECTURA
    # =========================================================================

    def list(self, account_id: str, entity: EntityKind) -> List[Dict[str, Any]]:
        return self.repository(account_id, entity).get_all()

    def get(self, account_id: str, entity: EntityKind, record_id: str) -> Optional[Dict[str, Any]]:
        return self.repository(account_id, entity).get_by_id(record_id)

    def load_all(self, account_id: str) -> Dict[EntityKind, List[Dict[str, Any]]]:
        """Las seis colecciones de la cuenta."""
        return {kind: self.list(account_id, kind) for kind in EntityKind}

    # =========================================================================
    # ESCRITURA POR REGISTRO
    # =========================================================================

    def create(self, account_id: str, entity: EntityKind, record: Dict[str, Any]) -> Dict[str, Any]:
        entity = EntityKind(entity)
        if not record.get('id'):
            raise StoreWriteError(f"{entity.value}: registro sin id", entity.value, OP_INSERT)
        try:
            inserted = self.repository(account_id, entity).insert(record)
        except (OSError, TypeError, ValueError) as e:
            logger.error("[STORE] Error insertando en %s: %s", entity.value, e)
            raise StoreWriteError(f"{entity.value}: {e}", entity.value, OP_INSERT) from e
        if not inserted:
            raise StoreWriteError(
                f"{entity.value}: id duplicado '{record.get('id')}'", entity.value, OP_INSERT
            )
        self.feed.publish(ChangeEvent(account_id, entity, OP_INSERT, record))
        return record

    def update(self, account_id: str, entity: EntityKind, record: Dict[str, Any]) -> Dict[str, Any]:
        entity = EntityKind(entity)
        try:
            replaced = self.repository(account_id, entity).replace(record)
        except (OSError, TypeError, ValueError) as e:
            logger.error("[STORE] Error actualizando %s: %s", entity.value, e)
            raise StoreWriteError(f"{entity.value}: {e}", entity.value, OP_UPDATE) from e
        if not replaced:
            raise StoreWriteError(
                f"{entity.value}: '{record.get('id')}' no existe", entity.value, OP_UPDATE
            )
        self.feed.publish(ChangeEvent(account_id, entity, OP_UPDATE, record))
        return record

    def delete(self, account_id: str, entity: EntityKind, record_id: str) -> Dict[str, Any]:
        entity = EntityKind(entity)
        try:
            removed = self.repository(account_id, entity).remove(record_id)
        except OSError as e:
            logger.error("[STORE] Error eliminando de %s: %s", entity.value, e)
            raise StoreWriteError(f"{entity.value}: {e}", entity.value, OP_DELETE) from e
        if removed is None:
            raise StoreWriteError(f"{entity.value}: '{record_id}' no existe", entity.value, OP_DELETE)
        self.feed.publish(ChangeEvent(account_id, entity, OP_DELETE, removed))
        return removed

    # =========================================================================
    # REEMPLAZO TOTAL
    # =========================================================================

    def _stage(self, collections: Dict[Any, List[Dict[str, Any]]]) -> Dict[EntityKind, List[Dict[str, Any]]]:
        """
        Valida y prepara todas las colecciones antes de escribir.

        Raises:
            ImportCommitError: Si alguna colección no es serializable o
                tiene ids vacíos/duplicados
        """
        staged = {}
        errors = {}
        for kind in EntityKind:
            rows = collections.get(kind)
            if rows is None:
                rows = collections.get(kind.value, [])
            rows = list(rows)
            ids = [row.get('id') for row in rows]
            if any(not record_id for record_id in ids):
                errors[kind.value] = 'registro sin id'
            elif len(set(ids)) != len(ids):
                errors[kind.value] = 'ids duplicados'
            else:
                try:
                    json.dumps(rows, ensure_ascii=False)
                except (TypeError, ValueError) as e:
                    errors[kind.value] = f'no serializable: {e}'
            staged[kind] = rows
        if errors:
            raise ImportCommitError("Datos inválidos para restaurar; no se modificó nada", errors)
        return staged

    def replace_all(self, account_id: str, collections: Dict[Any, List[Dict[str, Any]]]) -> None:
        """
        Reemplaza todos los datos de la cuenta.

        Raises:
            ImportCommitError: Si falla la preparación (store intacto) o la
                escritura (store restaurado a su estado previo)
        """
        staged = self._stage(collections)

        with self._lock:
            snapshot = self.load_all(account_id)
            errors: Dict[str, str] = {}
            current = None
            try:
                for kind in DELETE_ORDER:
                    current = kind
                    self.repository(account_id, kind).save_all([])
                for kind in INSERT_ORDER:
                    current = kind
                    self.repository(account_id, kind).save_all(staged[kind])
            except Exception as e:
                errors[current.value] = str(e)
                logger.error("[IMPORT] Falló la escritura de %s: %s", current.value, e)
                self._rollback(account_id, snapshot)
                raise ImportCommitError(
                    f"Error restaurando '{current.value}'; se restauraron los datos previos",
                    errors,
                ) from e

        logger.info("[IMPORT] Datos de la cuenta '%s' reemplazados", account_id)
        self.feed.publish(ChangeEvent(account_id, None, OP_REPLACE))

    def _rollback(self, account_id: str, snapshot: Dict[EntityKind, List[Dict[str, Any]]]) -> None:
        """Restaura la foto previa (padres primero)."""
        for kind in INSERT_ORDER:
            try:
                self.repository(account_id, kind).save_all(snapshot[kind])
            except Exception:
                logger.critical("[IMPORT] No se pudo restaurar %s tras el fallo", kind.value, exc_info=True)
