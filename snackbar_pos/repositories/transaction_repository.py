# ==============================================================================
# REPOSITORIO DEL FLUJO DE CAJA
# ==============================================================================
# Colección "transactions": movimientos manuales de entrada y salida.
# ==============================================================================

from typing import List, Optional

from snackbar_pos.models import Transaction
from snackbar_pos.repositories.document_store import CollectionRepository


class TransactionRepository(CollectionRepository):
    """Repositorio de movimientos de caja."""

    COLLECTION = 'transactions'

    def load(self) -> List[Transaction]:
        """Carga todos los movimientos, más recientes primero."""
        return [Transaction.from_dict(d) for d in self.get_all(order_by='-created_at')]

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        doc = self.get_by_id(transaction_id)
        return Transaction.from_dict(doc) if doc else None
