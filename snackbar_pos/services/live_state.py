# ==============================================================================
# ESTADO EN VIVO - Cachés alimentadas por suscripciones
# ==============================================================================
# Mantiene en memoria el cardápio y los pedidos. Cada notificación del
# almacén trae el snapshot completo de la colección y REEMPLAZA la caché
# (nunca se aplican diferencias). Las dos suscripciones son independientes.
#
# Solo lectura: las escrituras siempre pasan por los servicios.
# ==============================================================================

import threading
from typing import Any, Dict, List

from snackbar_pos.models import MenuItem, Order
from snackbar_pos.repositories.interfaces import IMenuRepository, IOrderRepository


class LiveState:
    """Cachés de menú y pedidos para el tablero de cocina y el dashboard."""

    def __init__(self, menu_repo: IMenuRepository, order_repo: IOrderRepository):
        self._lock = threading.Lock()
        self._menu_items: List[MenuItem] = []
        self._orders: List[Order] = []
        self._subscriptions = [
            menu_repo.subscribe(self._on_menu, order_by='name'),
            order_repo.subscribe(self._on_orders, order_by='created_at'),
        ]

    def _on_menu(self, docs: List[Dict[str, Any]]) -> None:
        items = [MenuItem.from_dict(d) for d in docs]
        with self._lock:
            self._menu_items = items

    def _on_orders(self, docs: List[Dict[str, Any]]) -> None:
        orders = [Order.from_dict(d) for d in docs]
        with self._lock:
            self._orders = orders

    @property
    def menu_items(self) -> List[MenuItem]:
        with self._lock:
            return list(self._menu_items)

    @property
    def orders(self) -> List[Order]:
        with self._lock:
            return list(self._orders)

    def close(self) -> None:
        """Termina las suscripciones; las cachés quedan con el último snapshot."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
