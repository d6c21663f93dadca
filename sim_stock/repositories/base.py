# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común para acceso a archivos JSON
# ==============================================================================

import json
import os
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class BaseRepository(ABC):
    """
    Clase base abstracta para todos los repositorios.
    Proporciona lectura/escritura de un archivo JSON con manejo de
    concurrencia básico mediante locks.

    Al migrar a una base de datos:
    - Esta clase se reemplaza por una conexión
    - Los métodos _read_raw/_write_raw se convierten en queries
    - Los locks se reemplazan por transacciones
    """

    # Lock global para evitar escrituras concurrentes a archivos
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Inicializa el repositorio con la ruta al archivo JSON.

        Args:
            file_path: Ruta absoluta al archivo JSON de datos
        """
        self.file_path = file_path

    @abstractmethod
    def _empty_data(self) -> Any:
        """Estructura de datos vacía para este repositorio."""
        pass

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.

        Returns:
            Datos parseados; la estructura vacía si el archivo está
            corrupto o no existe
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except (json.JSONDecodeError, FileNotFoundError):
                return self._empty_data()

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON.

        Escribe primero a un temporal y luego reemplaza (atómico en la
        mayoría de sistemas). La carpeta se crea con la primera
        escritura; las lecturas no crean archivos.

        Raises:
            OSError: Si hay error de escritura
        """
        with self._file_lock:
            os.makedirs(os.path.dirname(self.file_path) or '.', exist_ok=True)
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except Exception:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise


class ListRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como lista de registros con
    campo 'id'.

    Ejemplo: orders.json -> [{"id": "...", ...}, {...}]
    """

    def _empty_data(self) -> List:
        return []

    def get_all(self) -> List[Dict[str, Any]]:
        """Todos los registros (lista vacía si el archivo no es una lista)."""
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        """Guarda todos los registros (reemplazo completo)."""
        self._write_raw(data)

    def find_by(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        """Primer registro cuyo campo coincide, o None."""
        for record in self.get_all():
            if record.get(field) == value:
                return record
        return None

    def get_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        return self.find_by('id', record_id)

    def insert(self, record: Dict[str, Any]) -> bool:
        """
        Agrega un registro al inicio (más reciente primero).

        Returns:
            False si ya existe un registro con el mismo id
        """
        with self._file_lock:
            data = self.get_all()
            if any(r.get('id') == record.get('id') for r in data):
                return False
            data.insert(0, record)
            self._write_raw(data)
            return True

    def replace(self, record: Dict[str, Any]) -> bool:
        """
        Reemplaza el registro con el mismo id.

        Returns:
            True si se encontró y reemplazó
        """
        with self._file_lock:
            data = self.get_all()
            for index, current in enumerate(data):
                if current.get('id') == record.get('id'):
                    data[index] = record
                    self._write_raw(data)
                    return True
            return False

    def remove(self, record_id: str) -> Optional[Dict[str, Any]]:
        """
        Elimina un registro.

        Returns:
            Registro eliminado o None si no existía
        """
        with self._file_lock:
            data = self.get_all()
            for index, current in enumerate(data):
                if current.get('id') == record_id:
                    removed = data.pop(index)
                    self._write_raw(data)
                    return removed
            return None
