# ==============================================================================
# REPOSITORIO DEL HISTORIAL DE STOCK
# ==============================================================================
# Colección "stock_log": solo se agregan entradas, nunca se modifican.
# ==============================================================================

from typing import List

from snackbar_pos.models import StockLogEntry
from snackbar_pos.repositories.document_store import CollectionRepository, WriteOp


class StockLogRepository(CollectionRepository):
    """Repositorio del historial de reposiciones."""

    COLLECTION = 'stock_log'

    def load(self, item_id: str = None) -> List[StockLogEntry]:
        """
        Carga el historial, más recientes primero.

        Args:
            item_id: Filtrar por ítem (opcional)
        """
        where = {'item_id': item_id} if item_id else None
        return [StockLogEntry.from_dict(d) for d in self.get_all(where, order_by='-created_at')]

    def append_op(self, entry: StockLogEntry) -> WriteOp:
        return self.create_op(entry.id, entry.to_dict())
