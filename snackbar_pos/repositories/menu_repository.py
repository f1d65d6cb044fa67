# ==============================================================================
# REPOSITORIO DEL CARDÁPIO
# ==============================================================================
# Encapsula el acceso a la colección "menu_items" del almacén.
# ==============================================================================

from typing import Any, Dict, List, Optional

from snackbar_pos.models import MenuItem
from snackbar_pos.repositories.document_store import CollectionRepository, WriteOp


class MenuRepository(CollectionRepository):
    """
    Repositorio de ítems del menú.

    Formato del documento:
    {
        "id": "9f1c...",
        "name": "X-Bacon",
        "description": "Hambúrguer, bacon, queijo...",
        "price": 22.0,
        "cost_price": 9.5,
        "stock": 40,
        "visible": true
    }
    """

    COLLECTION = 'menu_items'

    def load(self) -> List[MenuItem]:
        """Carga todos los ítems ordenados por nombre."""
        return [MenuItem.from_dict(d) for d in self.get_all(order_by='name')]

    def get_item(self, item_id: str) -> Optional[MenuItem]:
        """
        Obtiene un ítem por su ID.

        Args:
            item_id: ID del ítem

        Returns:
            Ítem o None si no existe
        """
        doc = self.get_by_id(item_id)
        return MenuItem.from_dict(doc) if doc else None

    def get_visible(self) -> List[MenuItem]:
        """Ítems con visible=True (consulta puntual con filtro)."""
        return [MenuItem.from_dict(d) for d in self.get_all(where={'visible': True})]

    def stock_decrement_op(self, item_id: str, quantity: int) -> WriteOp:
        """
        Operación que descuenta stock sin permitir que quede negativo.

        Args:
            item_id: ID del ítem
            quantity: Cantidad a descontar
        """
        return WriteOp.increment(self.COLLECTION, item_id, {'stock': -quantity}, floor=0)

    def replenish_op(
        self,
        item: MenuItem,
        new_stock: int,
        new_cost: float
    ) -> WriteOp:
        """
        Operación de reposición: nuevo stock y costo promedio.
        Exige que stock y costo no hayan cambiado desde la lectura.
        """
        return self.update_op(
            item.id,
            {'stock': new_stock, 'cost_price': new_cost},
            expect={'stock': item.stock, 'cost_price': item.cost_price}
        )

    def save_op(self, item: MenuItem, is_new: bool = False) -> WriteOp:
        """Operación de creación o reemplazo completo de un ítem."""
        data: Dict[str, Any] = item.to_dict()
        if is_new:
            return self.create_op(item.id, data)
        return self.update_op(item.id, data)
