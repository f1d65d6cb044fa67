# ==============================================================================
# REPOSITORIO DE AUDITORÍA
# ==============================================================================
# Encapsula todo el acceso a audit.json
# La auditoría se almacena como lista: [{log1}, {log2}, ...] (más reciente primero)
# Vive fuera del almacén de documentos: no participa de escrituras atómicas.
# ==============================================================================

import os
from typing import Any, Dict, List

from snackbar_pos.models import AuditLog
from snackbar_pos.repositories.base import ListRepository


class AuditRepository(ListRepository):
    """
    Repositorio del registro de actividad.

    Formato de datos en audit.json:
    [
        {
            "type": "PEDIDO",
            "user": "caixa",
            "message": "Pedido #a1b2 creado por caixa - Total: R$ 37.00 - 2 itens",
            "timestamp": "2026-01-10 18:32:11",
            "related_id": "9f1c...a1b2",
            "details": {...}
        }
    ]
    """

    # Límite de registros para evitar archivos muy grandes
    MAX_LOGS = 10000

    def __init__(self, base_path: str):
        """
        Args:
            base_path: Carpeta de datos
        """
        file_path = os.path.join(base_path, 'audit.json')
        super().__init__(file_path)

    def load(self) -> List[Dict[str, Any]]:
        """
        Carga todos los logs de auditoría.

        Returns:
            Lista de logs (más recientes primero)
        """
        logs = self.get_all()
        return sorted(logs, key=lambda x: x.get('timestamp', ''), reverse=True)

    def save(self, logs: List[Dict[str, Any]]) -> None:
        """
        Guarda todos los logs, manteniendo solo los MAX_LOGS más recientes.
        """
        if len(logs) > self.MAX_LOGS:
            logs = logs[:self.MAX_LOGS]
        self.save_all(logs)

    def log(self, entry: AuditLog) -> None:
        """
        Registra un nuevo evento de auditoría.

        Args:
            entry: Evento a registrar
        """
        with self._file_lock:
            logs = self.get_all()  # Sin ordenar para inserción eficiente
            logs.insert(0, entry.to_dict())
            self.save(logs)

    def search_logs(
        self,
        query: str = '',
        log_type: str = None,
        related_id: str = None,
        limit: int = None
    ) -> List[Dict[str, Any]]:
        """
        Búsqueda de logs con filtros.

        Args:
            query: Texto de búsqueda global
            log_type: Filtrar por tipo
            related_id: Filtrar por ID relacionado
            limit: Máximo de resultados

        Returns:
            Lista de logs que coinciden
        """
        logs = self.load()

        if log_type:
            logs = [log for log in logs if log.get('type') == log_type]

        if related_id:
            logs = [log for log in logs if log.get('related_id') == related_id]

        if query:
            query_lower = query.lower()
            logs = [
                log for log in logs
                if any(
                    query_lower in str(s).lower()
                    for s in (log.get('type'), log.get('user'), log.get('message'), log.get('related_id'))
                    if s
                )
            ]

        if limit:
            logs = logs[:limit]
        return logs
