# ==============================================================================
# REPOSITORIO DE PEDIDOS
# ==============================================================================
# Encapsula el acceso a la colección "orders" del almacén.
# Los pedidos nunca se eliminan.
# ==============================================================================

from typing import List, Optional

from snackbar_pos.models import Order, OrderStatus
from snackbar_pos.repositories.document_store import CollectionRepository, WriteOp


class OrderRepository(CollectionRepository):
    """
    Repositorio de pedidos.

    Formato del documento:
    {
        "id": "4b2e...",
        "items": [{"menu_item": {...snapshot...}, "quantity": 2}],
        "total": 37.0,
        "status": "pending",
        "created_at": "2026-01-10T18:32:11+00:00",
        "observation": "sem cebola",
        "is_paid": false,
        "payment_method": "pix"
    }
    """

    COLLECTION = 'orders'

    def load(self) -> List[Order]:
        """Carga todos los pedidos, más antiguos primero."""
        return [Order.from_dict(d) for d in self.get_all(order_by='created_at')]

    def get_order(self, order_id: str) -> Optional[Order]:
        """
        Obtiene un pedido por su ID.

        Args:
            order_id: ID del pedido

        Returns:
            Pedido o None si no existe
        """
        doc = self.get_by_id(order_id)
        return Order.from_dict(doc) if doc else None

    def get_by_status(self, status: OrderStatus) -> List[Order]:
        docs = self.get_all(where={'status': status.value}, order_by='created_at')
        return [Order.from_dict(d) for d in docs]

    def status_op(self, order: Order, new_status: OrderStatus) -> WriteOp:
        """Cambio de estado; falla si otro proceso ya lo cambió."""
        return self.update_op(
            order.id,
            {'status': new_status.value},
            expect={'status': order.status.value}
        )
