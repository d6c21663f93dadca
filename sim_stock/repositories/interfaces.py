# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contrato del "Entity Store": almacenamiento durable de las seis colecciones
# por cuenta. Los servicios dependen de esta interfaz, NO de la
# implementación JSON. Para migrar a una base de datos remota basta con
# escribir otra clase que cumpla IEntityStore y cambiarla en app_container.py.
#
# Los registros cruzan la interfaz como diccionarios canónicos (camelCase),
# es decir, el resultado de `to_dict()` de cada entidad.
#
# ==============================================================================

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from sim_stock.models.entities import EntityKind


@runtime_checkable
class IListRepository(Protocol):
    """Interfaz para repositorios basados en listas con campo 'id'."""

    def get_all(self) -> List[Dict[str, Any]]:
        ...

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        ...

    def get_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        ...

    def insert(self, record: Dict[str, Any]) -> bool:
        ...

    def replace(self, record: Dict[str, Any]) -> bool:
        ...

    def remove(self, record_id: str) -> Optional[Dict[str, Any]]:
        ...


@runtime_checkable
class IEntityStore(Protocol):
    """
    Store de entidades por cuenta.

    Cada operación individual es atómica a nivel de registro; no hay
    transacciones entre colecciones salvo replace_all.
    Toda falla se reporta con StoreWriteError.
    """

    def list(self, account_id: str, entity: EntityKind) -> List[Dict[str, Any]]:
        """Todos los registros de una colección."""
        ...

    def get(self, account_id: str, entity: EntityKind, record_id: str) -> Optional[Dict[str, Any]]:
        """Un registro por id, o None."""
        ...

    def load_all(self, account_id: str) -> Dict[EntityKind, List[Dict[str, Any]]]:
        """Las seis colecciones de la cuenta."""
        ...

    def create(self, account_id: str, entity: EntityKind, record: Dict[str, Any]) -> Dict[str, Any]:
        """Inserta un registro nuevo (id duplicado → StoreWriteError)."""
        ...

    def update(self, account_id: str, entity: EntityKind, record: Dict[str, Any]) -> Dict[str, Any]:
        """Reemplaza un registro existente (inexistente → StoreWriteError)."""
        ...

    def delete(self, account_id: str, entity: EntityKind, record_id: str) -> Dict[str, Any]:
        """Elimina un registro existente (inexistente → StoreWriteError)."""
        ...

    def replace_all(self, account_id: str, collections: Dict[EntityKind, List[Dict[str, Any]]]) -> None:
        """Reemplaza TODOS los datos de la cuenta (restauración)."""
        ...
