# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos (protocolos) que los servicios esperan de la persistencia.
# Los servicios dependen de estas interfaces, NO de implementaciones:
#
#   - El almacén JSON (DocumentStore) puede reemplazarse por otro motor
#     siempre que ofrezca query / atomic_write / subscribe con la misma
#     garantía: todas las operaciones o ninguna.
#   - En tests se pueden usar dobles que implementen estos protocolos.
#
# ==============================================================================

from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from snackbar_pos.models import MenuItem, Order, OrderStatus, StockLogEntry, Transaction, AuditLog


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Almacén de documentos con escritura atómica y suscripciones.
    """

    def query(
        self,
        collection: str,
        where: Dict[str, Any] = None,
        order_by: str = None
    ) -> List[Dict[str, Any]]:
        """Snapshot puntual de una colección."""
        ...

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene un documento por ID."""
        ...

    def atomic_write(self, ops: Iterable[Any]) -> None:
        """Aplica todas las operaciones o ninguna (PersistenceError)."""
        ...

    def subscribe(
        self,
        collection: str,
        callback: Callable[[List[Dict[str, Any]]], None],
        where: Dict[str, Any] = None,
        order_by: str = None
    ) -> Any:
        """Entrega el snapshot completo en cada cambio."""
        ...


@runtime_checkable
class IMenuRepository(Protocol):
    """Interfaz del repositorio del cardápio."""

    def load(self) -> List[MenuItem]:
        ...

    def get_item(self, item_id: str) -> Optional[MenuItem]:
        ...

    def get_visible(self) -> List[MenuItem]:
        ...


@runtime_checkable
class IOrderRepository(Protocol):
    """Interfaz del repositorio de pedidos."""

    def load(self) -> List[Order]:
        ...

    def get_order(self, order_id: str) -> Optional[Order]:
        ...

    def get_by_status(self, status: OrderStatus) -> List[Order]:
        ...


@runtime_checkable
class IStockLogRepository(Protocol):
    """Interfaz del historial de stock."""

    def load(self, item_id: str = None) -> List[StockLogEntry]:
        ...


@runtime_checkable
class ITransactionRepository(Protocol):
    """Interfaz del flujo de caja."""

    def load(self) -> List[Transaction]:
        ...

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        ...


@runtime_checkable
class IAuditRepository(Protocol):
    """Interfaz del repositorio de auditoría."""

    def load(self) -> List[Dict[str, Any]]:
        ...

    def log(self, entry: AuditLog) -> None:
        ...

    def search_logs(
        self,
        query: str = '',
        log_type: str = None,
        related_id: str = None,
        limit: int = None
    ) -> List[Dict[str, Any]]:
        ...
