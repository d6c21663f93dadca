# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Este módulo proporciona una forma centralizada de obtener instancias
# del store y de los servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (Settings apuntando a una carpeta temporal)
#   - Cambiar el store sin tocar los servicios
#
# ═══════════════════════════════════════════════════════════════════════════════
# CAMBIO DE STORE (JSON → base de datos remota)
# ═══════════════════════════════════════════════════════════════════════════════
#
# 1. Crear una clase que implemente IEntityStore (incluido replace_all, que
#    debe ser atómico o con rollback) y publique en el ChangeFeed
# 2. Instanciarla en la propiedad `store` de este archivo
# 3. Los servicios NO requieren cambios
# ==============================================================================

import logging
import threading
from typing import Dict, Optional

from sim_stock.config import Settings
from sim_stock.models.entities import DataSet
from sim_stock.repositories import ChangeFeed, JsonEntityStore
from sim_stock.services import (
    BackupService,
    CustomerService,
    InventoryService,
    PaymentService,
    RestoreService,
    SalesService,
    SnapshotSync,
    StatsService,
)

logger = logging.getLogger(__name__)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Implementa el patrón Singleton para asegurar una única instancia
    del store y de cada servicio.

    Uso:
        container = AppContainer(Settings.from_env())
        container.open_session('tienda1')
        dataset = container.snapshot('tienda1')
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, settings: Settings = None):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, settings: Settings = None):
        """
        Args:
            settings: Configuración (por defecto, desde variables de entorno)
        """
        if self._initialized:
            return

        self.settings = settings or Settings.from_env()

        # Lazy loading
        self._feed: Optional[ChangeFeed] = None
        self._store: Optional[JsonEntityStore] = None
        self._inventory_service: Optional[InventoryService] = None
        self._sales_service: Optional[SalesService] = None
        self._customer_service: Optional[CustomerService] = None
        self._payment_service: Optional[PaymentService] = None
        self._stats_service: Optional[StatsService] = None
        self._restore_service: Optional[RestoreService] = None
        self._backup_service: Optional[BackupService] = None

        # Una foto sincronizada por cuenta con sesión abierta
        self._syncs: Dict[str, SnapshotSync] = {}
        self._sessions_lock = threading.Lock()

        self._initialized = True

    # =========================================================================
    # PERSISTENCIA
    # =========================================================================

    @property
    def feed(self) -> ChangeFeed:
        if self._feed is None:
            self._feed = ChangeFeed()
        return self._feed

    @property
    def store(self) -> JsonEntityStore:
        """Store de entidades (singleton)."""
        if self._store is None:
            self._store = JsonEntityStore(self.settings.data_dir, self.feed)
        return self._store

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def inventory_service(self) -> InventoryService:
        if self._inventory_service is None:
            self._inventory_service = InventoryService(self.store, self.settings.strict_deletes)
        return self._inventory_service

    @property
    def sales_service(self) -> SalesService:
        if self._sales_service is None:
            self._sales_service = SalesService(self.store)
        return self._sales_service

    @property
    def customer_service(self) -> CustomerService:
        if self._customer_service is None:
            self._customer_service = CustomerService(self.store)
        return self._customer_service

    @property
    def payment_service(self) -> PaymentService:
        if self._payment_service is None:
            self._payment_service = PaymentService(self.store)
        return self._payment_service

    @property
    def stats_service(self) -> StatsService:
        """Servicio de reportes; lee la foto sincronizada de la cuenta."""
        if self._stats_service is None:
            self._stats_service = StatsService(self.snapshot)
        return self._stats_service

    @property
    def restore_service(self) -> RestoreService:
        if self._restore_service is None:
            self._restore_service = RestoreService(self.store)
        return self._restore_service

    @property
    def backup_service(self) -> BackupService:
        if self._backup_service is None:
            self._backup_service = BackupService(
                self.settings.backup_dir,
                self.settings.max_backups,
            )
        return self._backup_service

    # =========================================================================
    # SESIONES (login / logout)
    # =========================================================================

    def open_session(self, account_id: str) -> SnapshotSync:
        """Carga la cuenta y la mantiene sincronizada (idempotente)."""
        with self._sessions_lock:
            sync = self._syncs.get(account_id)
            if sync is None:
                sync = SnapshotSync(self.store, self.feed)
                sync.start(account_id)
                self._syncs[account_id] = sync
            return sync

    def close_session(self, account_id: str) -> None:
        with self._sessions_lock:
            sync = self._syncs.pop(account_id, None)
        if sync is not None:
            sync.stop()

    def snapshot(self, account_id: str) -> DataSet:
        """Foto actual de la cuenta (abre la sesión si hace falta)."""
        return self.open_session(account_id).snapshot()

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para testing o para recargar datos.
        """
        for account_id in list(self._syncs):
            self.close_session(account_id)
        self._feed = None
        self._store = None
        self._inventory_service = None
        self._sales_service = None
        self._customer_service = None
        self._payment_service = None
        self._stats_service = None
        self._restore_service = None
        self._backup_service = None

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None