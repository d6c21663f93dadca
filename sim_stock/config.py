# ==============================================================================
# CONFIGURACIÓN DEL SISTEMA
# ==============================================================================
# Todas las rutas y banderas se leen de variables de entorno, con valores por
# defecto que permiten arrancar sin configurar nada (modo desarrollo).
#
# Comando de ejemplo:
#   export SIM_STOCK_DATA_DIR="/srv/sim_stock/data"
#   export SIM_STOCK_SECRET_KEY="tu_clave_secreta_muy_larga_y_aleatoria"
#   export SIM_STOCK_PRODUCTION=1
# ==============================================================================

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional


# ═══════════════════════════════════════════════════════════════════════════
# UMBRALES DE NEGOCIO (no configurables por entorno)
# ═══════════════════════════════════════════════════════════════════════════

# Stock de un lote individual por debajo del cual se marca LOW_STOCK (estricto <)
BATCH_LOW_STOCK_THRESHOLD = 10

# Stock total de un producto igual o menor al cual se marca LOW_STOCK (<=)
PRODUCT_LOW_STOCK_THRESHOLD = 50

# Deuda: escalamiento a RECOVERY
RECOVERY_MAX_DUE_DATE_CHANGES = 3
RECOVERY_OVERDUE_DAYS = 30

# Deuda: ventana de advertencia previa al vencimiento (días)
WARNING_WINDOW_DAYS = 3

# Scoring: cantidad de órdenes que hay que SUPERAR para obtener "A"
CREDIT_A_MIN_ORDERS = 5

# Panel de control
DEBT_DUE_SOON_DAYS = 7
DEBT_DUE_SOON_ALERT_AMOUNT = 30_000_000
SUPPLIER_PAYABLE_ALERT_AMOUNT = 50_000_000
AGING_INVENTORY_DAYS = 30
DASHBOARD_LOW_STOCK_THRESHOLD = 50
SLOW_INVENTORY_STOCK = 100
TOP_DEBTORS_LIMIT = 5


_DEFAULT_SECRET = 'sim_stock_dev_secret_key_change_in_production'

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _env_flag(value: Optional[str]) -> bool:
    """Interpreta '1', 'true', 'yes', 'on' como verdadero."""
    return str(value or '').strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value not in (None, '') else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """
    Configuración de la aplicación.

    Attributes:
        data_dir: Carpeta raíz de datos (un subdirectorio por cuenta)
        backup_dir: Carpeta de backups .xlsx
        max_backups: Cantidad de backups a mantener por rotación
        secret_key: Clave de sesión de Flask
        production_mode: True = sin datos demo, advertencias activas
        log_level: Nivel de logging (INFO, DEBUG, ...)
        strict_deletes: True = bloquear borrado de productos/lotes referenciados
        default_account: Cuenta usada cuando la petición no indica una
    """
    data_dir: str
    backup_dir: str
    max_backups: int = 7
    secret_key: str = _DEFAULT_SECRET
    production_mode: bool = False
    log_level: str = 'INFO'
    strict_deletes: bool = False
    default_account: str = 'default'

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'Settings':
        """Construye la configuración desde variables de entorno."""
        env = os.environ if environ is None else environ
        data_dir = env.get('SIM_STOCK_DATA_DIR') or os.path.join(os.getcwd(), 'data')
        return cls(
            data_dir=data_dir,
            backup_dir=env.get('SIM_STOCK_BACKUP_DIR') or os.path.join(data_dir, 'backups'),
            max_backups=_env_int(env.get('SIM_STOCK_MAX_BACKUPS'), 7),
            secret_key=env.get('SIM_STOCK_SECRET_KEY') or _DEFAULT_SECRET,
            production_mode=_env_flag(env.get('SIM_STOCK_PRODUCTION')),
            log_level=(env.get('SIM_STOCK_LOG_LEVEL') or 'INFO').upper(),
            strict_deletes=_env_flag(env.get('SIM_STOCK_STRICT_DELETES')),
            default_account=env.get('SIM_STOCK_DEFAULT_ACCOUNT') or 'default',
        )

    @classmethod
    def for_path(cls, base_path: str, **overrides) -> 'Settings':
        """Configuración con todo bajo base_path (útil para tests)."""
        values = {
            'data_dir': base_path,
            'backup_dir': os.path.join(base_path, 'backups'),
        }
        values.update(overrides)
        return cls(**values)

    @property
    def uses_default_secret(self) -> bool:
        return self.secret_key == _DEFAULT_SECRET


def configure_logging(level: str = 'INFO') -> None:
    """
    Configura el logging raíz una sola vez.

    Formato: "2024-01-01 10:00:00 [INFO] sim_stock.services.restore_service: ..."
    """
    root = logging.getLogger()
    if getattr(configure_logging, '_configured', False):
        root.setLevel(level)
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    configure_logging._configured = True
