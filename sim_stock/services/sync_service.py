# ==============================================================================
# SINCRONIZACIÓN DE LA FOTO EN MEMORIA
# ==============================================================================
# Mantiene el DataSet de la cuenta activa al día con el store:
#
#   start(cuenta)  → carga las seis colecciones y se suscribe al feed (login)
#   stop()         → cancela la suscripción y limpia la foto (logout)
#
# Fusión de eventos:
#   insert  → como máximo una vez (si el id ya está, se ignora)
#   update  → reemplaza por id
#   delete  → quita por id
#   replace → recarga todo (restauración)
# ==============================================================================

import logging
import threading
from typing import Callable, Optional

from sim_stock.models.entities import ENTITY_CLASSES, DataSet, EntityKind
from sim_stock.repositories.change_feed import (
    OP_DELETE,
    OP_INSERT,
    OP_REPLACE,
    OP_UPDATE,
    ChangeEvent,
    ChangeFeed,
)
from sim_stock.repositories.interfaces import IEntityStore

logger = logging.getLogger(__name__)


class SnapshotSync:
    """Dueño del ciclo suscribir/fusionar de una cuenta."""

    def __init__(self, store: IEntityStore, feed: ChangeFeed):
        self.store = store
        self.feed = feed
        self.account_id: Optional[str] = None
        self._dataset: Optional[DataSet] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._lock = threading.RLock()

    @property
    def active(self) -> bool:
        return self.account_id is not None

    def start(self, account_id: str) -> DataSet:
        """Carga la cuenta y empieza a escuchar cambios."""
        with self._lock:
            if self.active:
                self.stop()
            self.account_id = account_id
            self._dataset = DataSet.from_collections(self.store.load_all(account_id))
            self._unsubscribe = self.feed.subscribe(self.handle_event)
            logger.info("[SYNC] Cuenta '%s' cargada: %s", account_id, self._dataset.counts())
            return self._dataset.copy()

    def stop(self) -> None:
        with self._lock:
            if self._unsubscribe is not None:
                self._unsubscribe()
            self._unsubscribe = None
            if self.account_id is not None:
                logger.info("[SYNC] Cuenta '%s' liberada", self.account_id)
            self.account_id = None
            self._dataset = None

    def snapshot(self) -> DataSet:
        """
        Foto actual (DataSet vacío si no hay cuenta activa).

        Devuelve una copia: los eventos posteriores no alteran una foto ya
        entregada.
        """
        with self._lock:
            return self._dataset.copy() if self._dataset is not None else DataSet()

    def handle_event(self, event: ChangeEvent) -> None:
        with self._lock:
            if not self.active or event.account_id != self.account_id:
                return

            if event.op == OP_REPLACE:
                self._dataset = DataSet.from_collections(self.store.load_all(self.account_id))
                logger.info("[SYNC] Foto recargada tras restauración")
                return

            kind = EntityKind(event.entity)
            record = ENTITY_CLASSES[kind].from_dict(event.record or {})
            items = self._dataset.get(kind)
            index = next((i for i, r in enumerate(items) if r.id == record.id), None)

            if event.op == OP_INSERT:
                if index is None:
                    items.insert(0, record)
            elif event.op == OP_UPDATE:
                if index is not None:
                    items[index] = record
            elif event.op == OP_DELETE:
                if index is not None:
                    items.pop(index)
            else:
                logger.warning("[SYNC] Operación desconocida: %s", event.op)
