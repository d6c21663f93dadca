# ==============================================================================
# EXCEPCIONES DEL DOMINIO
# ==============================================================================
# Taxonomía de errores:
#   - BusinessRuleViolation → guardas de negocio, ANTES de tocar el store
#   - StoreWriteError       → fallo de escritura en el store (se propaga)
#   - ImportParseError      → archivo sin datos reconocibles (store intacto)
#   - ImportCommitError     → fallo al confirmar la restauración (con rollback)
#
# Los agregadores NUNCA lanzan excepciones: búsquedas fallidas y divisiones
# por cero se resuelven con valores por defecto.
# ==============================================================================

from typing import Dict, Optional


class SimStockError(Exception):
    """Excepción base de la aplicación."""
    pass


class BusinessRuleViolation(SimStockError):
    """Se intentó una operación que viola una regla de negocio."""
    pass


class RecordNotFoundError(BusinessRuleViolation):
    """El registro referenciado no existe."""

    def __init__(self, entity: str, record_id: str):
        super().__init__(f"{entity}: registro '{record_id}' no encontrado")
        self.entity = entity
        self.record_id = record_id


class StoreWriteError(SimStockError):
    """Una operación create/update/delete/replace falló en el store."""

    def __init__(self, message: str, entity: str = '', operation: str = ''):
        super().__init__(message)
        self.entity = entity
        self.operation = operation


class ImportParseError(SimStockError):
    """El archivo no contiene datos reconocibles o no es un libro válido."""
    pass


class ImportCommitError(StoreWriteError):
    """
    Falló la escritura de la restauración.

    El store fue devuelto a su estado previo; `errors` contiene el mensaje
    de cada colección que falló.
    """

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message, entity='*', operation='replace_all')
        self.errors = errors or {}
