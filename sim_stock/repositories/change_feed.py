# ==============================================================================
# FEED DE CAMBIOS - Notificaciones del store
# ==============================================================================
# Cada escritura confirmada en el store publica un ChangeEvent. Los
# suscriptores (SnapshotSync) lo fusionan en su copia en memoria.
#
# Operaciones: insert, update, delete, replace (restauración completa).
# ==============================================================================

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sim_stock.models.entities import EntityKind

logger = logging.getLogger(__name__)

OP_INSERT = 'insert'
OP_UPDATE = 'update'
OP_DELETE = 'delete'
OP_REPLACE = 'replace'


@dataclass(frozen=True)
class ChangeEvent:
    """
    Notificación de cambio.

    Attributes:
        account_id: Cuenta afectada
        entity: Colección afectada (None en OP_REPLACE)
        op: insert | update | delete | replace
        record: Registro afectado (dict canónico); None en OP_REPLACE
    """
    account_id: str
    entity: Optional[EntityKind]
    op: str
    record: Optional[Dict[str, Any]] = None


Subscriber = Callable[[ChangeEvent], None]


class ChangeFeed:
    """Publicación/suscripción en proceso."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.RLock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Registra un suscriptor.

        Returns:
            Función que cancela la suscripción
        """
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: ChangeEvent) -> None:
        """Entrega el evento a todos los suscriptores."""
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                # el resto de los suscriptores recibe el evento igual
                logger.exception("[SYNC] Error entregando %s/%s", event.entity, event.op)
