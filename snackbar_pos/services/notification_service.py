# ==============================================================================
# SERVICIO DE NOTIFICACIONES
# ==============================================================================
# Registro de oyentes para eventos del negocio (pedido nuevo, cambio de
# estado, reposición). La entrega es síncrona y de mejor esfuerzo: un oyente
# que falla se loguea y se salta, nunca afecta a la operación que publicó.
# ==============================================================================

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List


logger = logging.getLogger(__name__)

EVENT_ORDER_CREATED = 'order_created'
EVENT_ORDER_STATUS_CHANGED = 'order_status_changed'
EVENT_STOCK_REPLENISHED = 'stock_replenished'

EVENTS = frozenset([
    EVENT_ORDER_CREATED,
    EVENT_ORDER_STATUS_CHANGED,
    EVENT_STOCK_REPLENISHED,
])


class NotificationService:
    """Publica eventos a los oyentes registrados."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable[[Dict[str, Any]], None]]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: str, callback: Callable[[Dict[str, Any]], None]) -> Callable[[], None]:
        """
        Registra un oyente.

        Args:
            event: Nombre del evento (ver EVENTS)
            callback: Función que recibe el payload

        Returns:
            Función que cancela la suscripción
        """
        if event not in EVENTS:
            raise ValueError(f"Evento desconocido: {event}")

        with self._lock:
            self._listeners[event].append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners[event]:
                    self._listeners[event].remove(callback)

        return unsubscribe

    def publish(self, event: str, payload: Dict[str, Any]) -> int:
        """
        Entrega un evento a todos sus oyentes.

        Returns:
            Cantidad de oyentes que lo recibieron sin error
        """
        with self._lock:
            listeners = list(self._listeners.get(event, []))

        delivered = 0
        for callback in listeners:
            try:
                callback(payload)
                delivered += 1
            except Exception:
                logger.exception("Oyente de '%s' falló; se ignora", event)
        return delivered
