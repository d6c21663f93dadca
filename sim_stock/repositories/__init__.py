# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (actualmente JSON).
#
# ESTRUCTURA:
# ├── interfaces.py    → Protocolos (IEntityStore, IListRepository)
# ├── base.py          → Clases base JSON (BaseRepository, ListRepository)
# ├── entity_store.py  → JsonEntityStore: seis colecciones por cuenta
# └── change_feed.py   → Notificaciones de cambios (ChangeFeed/ChangeEvent)
# ==============================================================================

from sim_stock.repositories.interfaces import IEntityStore, IListRepository
from sim_stock.repositories.base import BaseRepository, ListRepository
from sim_stock.repositories.change_feed import (
    ChangeEvent,
    ChangeFeed,
    OP_DELETE,
    OP_INSERT,
    OP_REPLACE,
    OP_UPDATE,
)
from sim_stock.repositories.entity_store import (
    DELETE_ORDER,
    INSERT_ORDER,
    EntityRepository,
    JsonEntityStore,
)

__all__ = [
    # Interfaces
    'IEntityStore',
    'IListRepository',

    # Clases base
    'BaseRepository',
    'ListRepository',

    # Feed de cambios
    'ChangeEvent',
    'ChangeFeed',
    'OP_DELETE',
    'OP_INSERT',
    'OP_REPLACE',
    'OP_UPDATE',

    # Implementación JSON
    'DELETE_ORDER',
    'INSERT_ORDER',
    'EntityRepository',
    'JsonEntityStore',
]
