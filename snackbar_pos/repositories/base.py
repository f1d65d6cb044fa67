# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común para acceso a archivos JSON
# ==============================================================================

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List
from abc import ABC, abstractmethod
import threading


logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """
    Error de la capa de persistencia: escritura fallida, documento
    inexistente/duplicado o precondición no cumplida en una escritura atómica.
    """


class BaseRepository(ABC):
    """
    Clase base abstracta para todos los repositorios.
    Proporciona funcionalidad común para lectura/escritura de archivos JSON
    con manejo de concurrencia básico mediante locks.
    """

    def __init__(self, file_path: str):
        """
        Inicializa el repositorio con la ruta al archivo JSON.

        Args:
            file_path: Ruta absoluta al archivo JSON de datos
        """
        self.file_path = file_path
        # Lock por instancia: cada archivo tiene un solo dueño en el proceso
        self._file_lock = threading.RLock()
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Crea el archivo (y su carpeta) con datos vacíos si no existe."""
        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not os.path.exists(self.file_path):
            self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """
        Retorna la estructura de datos vacía para este repositorio.

        Returns:
            Estructura vacía (dict, list, etc.) según el repositorio
        """
        pass

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.

        Un archivo corrupto se renombra a <archivo>.corrupt-<fecha> antes
        de seguir con datos vacíos, así la próxima escritura no lo pisa.

        Returns:
            Datos parseados del JSON (estructura vacía si está corrupto)
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except FileNotFoundError:
                return self._empty_data()
            except json.JSONDecodeError as e:
                self._set_aside_corrupt_file(e)
                return self._empty_data()

    def _set_aside_corrupt_file(self, error: Exception) -> None:
        stamp = datetime.now().strftime('%Y%m%d%H%M%S')
        backup_path = f"{self.file_path}.corrupt-{stamp}"
        try:
            os.replace(self.file_path, backup_path)
        except OSError as e:
            raise PersistenceError(
                f"{self.file_path} está corrupto y no se pudo apartar: {e}"
            ) from e
        logger.error(
            "Archivo corrupto %s (%s); copia guardada en %s, se inicia vacío",
            self.file_path, error, backup_path
        )

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON.

        Args:
            data: Datos a serializar y escribir

        Raises:
            PersistenceError: Si hay error de escritura o serialización
        """
        with self._file_lock:
            # Escribir a archivo temporal primero para atomicidad
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                # Reemplazar archivo original (operación atómica en la mayoría de sistemas)
                os.replace(temp_path, self.file_path)
            except (OSError, TypeError, ValueError) as e:
                # Limpiar archivo temporal si algo falla
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise PersistenceError(f"No se pudo escribir {self.file_path}: {e}") from e


class ListRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como lista.

    Ejemplo: audit.json -> [{...}, {...}]
    """

    def _empty_data(self) -> List:
        """Retorna lista vacía."""
        return []

    def get_all(self) -> List[Dict[str, Any]]:
        """
        Obtiene todos los registros.

        Returns:
            Lista con todos los datos
        """
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        """
        Guarda todos los registros (reemplazo completo).

        Args:
            data: Lista completa de datos
        """
        self._write_raw(data)
