# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Este módulo proporciona una forma centralizada de obtener instancias
# de repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (cada test puede apuntar a una carpeta temporal)
#   - Cambiar el almacén sin tocar servicios
#
# Un solo DocumentStore (store.json) es compartido por todos los repositorios
# de colecciones: así una escritura atómica puede tocar pedidos y cardápio
# a la vez. La auditoría vive aparte (audit.json).
# ==============================================================================

import os
from typing import Optional

from snackbar_pos.repositories import (
    AuditRepository,
    DocumentStore,
    MenuRepository,
    OrderRepository,
    StockLogRepository,
    TransactionRepository,
)
from snackbar_pos.services import (
    AuditService,
    FinanceService,
    InventoryService,
    LiveState,
    NotificationService,
    OrderService,
    StatsService,
)


STORE_FILENAME = 'store.json'


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Implementa el patrón Singleton para asegurar una única instancia
    de cada repositorio y servicio.

    Uso:
        container = AppContainer(base_path='/path/to/data')
        order_service = container.order_service
        inventory_service = container.inventory_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, base_path: str = None):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, base_path: str = None):
        """
        Inicializa el contenedor.

        Args:
            base_path: Carpeta de datos (donde están store.json y audit.json)
        """
        if self._initialized:
            return

        self._base_path = base_path or os.path.join(
            os.path.dirname(os.path.abspath(__file__)), 'data'
        )

        self._init_slots()
        self._initialized = True

    def _init_slots(self) -> None:
        # Repositorios (lazy loading)
        self._store: Optional[DocumentStore] = None
        self._menu_repo: Optional[MenuRepository] = None
        self._order_repo: Optional[OrderRepository] = None
        self._stock_log_repo: Optional[StockLogRepository] = None
        self._transaction_repo: Optional[TransactionRepository] = None
        self._audit_repo: Optional[AuditRepository] = None

        # Servicios (lazy loading)
        self._audit_service: Optional[AuditService] = None
        self._notifications: Optional[NotificationService] = None
        self._inventory_service: Optional[InventoryService] = None
        self._order_service: Optional[OrderService] = None
        self._stats_service: Optional[StatsService] = None
        self._finance_service: Optional[FinanceService] = None
        self._live_state: Optional[LiveState] = None

    @property
    def base_path(self) -> str:
        return self._base_path

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def store(self) -> DocumentStore:
        """Almacén de documentos compartido (singleton)."""
        if self._store is None:
            self._store = DocumentStore(os.path.join(self._base_path, STORE_FILENAME))
        return self._store

    @property
    def menu_repo(self) -> MenuRepository:
        """Repositorio del cardápio (singleton)."""
        if self._menu_repo is None:
            self._menu_repo = MenuRepository(self.store)
        return self._menu_repo

    @property
    def order_repo(self) -> OrderRepository:
        """Repositorio de pedidos (singleton)."""
        if self._order_repo is None:
            self._order_repo = OrderRepository(self.store)
        return self._order_repo

    @property
    def stock_log_repo(self) -> StockLogRepository:
        """Repositorio del historial de stock (singleton)."""
        if self._stock_log_repo is None:
            self._stock_log_repo = StockLogRepository(self.store)
        return self._stock_log_repo

    @property
    def transaction_repo(self) -> TransactionRepository:
        """Repositorio de caja (singleton)."""
        if self._transaction_repo is None:
            self._transaction_repo = TransactionRepository(self.store)
        return self._transaction_repo

    @property
    def audit_repo(self) -> AuditRepository:
        """Repositorio de auditoría (singleton)."""
        if self._audit_repo is None:
            self._audit_repo = AuditRepository(self._base_path)
        return self._audit_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        """Servicio de auditoría (singleton)."""
        if self._audit_service is None:
            self._audit_service = AuditService(self.audit_repo)
        return self._audit_service

    @property
    def notifications(self) -> NotificationService:
        """Publicador de eventos (singleton)."""
        if self._notifications is None:
            self._notifications = NotificationService()
        return self._notifications

    @property
    def inventory_service(self) -> InventoryService:
        """Servicio de inventario (singleton)."""
        if self._inventory_service is None:
            self._inventory_service = InventoryService(
                self.store,
                self.menu_repo,
                self.stock_log_repo,
                self.audit_service,
                self.notifications
            )
        return self._inventory_service

    @property
    def order_service(self) -> OrderService:
        """Servicio de pedidos (singleton)."""
        if self._order_service is None:
            self._order_service = OrderService(
                self.store,
                self.order_repo,
                self.menu_repo,
                self.audit_service,
                self.notifications
            )
        return self._order_service

    @property
    def stats_service(self) -> StatsService:
        """Servicio del dashboard (singleton); lee de la caché en vivo."""
        if self._stats_service is None:
            self._stats_service = StatsService(lambda: self.live_state.orders)
        return self._stats_service

    @property
    def finance_service(self) -> FinanceService:
        """Servicio de flujo de caja (singleton)."""
        if self._finance_service is None:
            self._finance_service = FinanceService(
                self.store,
                self.transaction_repo,
                self.audit_service
            )
        return self._finance_service

    @property
    def live_state(self) -> LiveState:
        """Cachés en vivo de cardápio y pedidos (singleton)."""
        if self._live_state is None:
            self._live_state = LiveState(self.menu_repo, self.order_repo)
        return self._live_state

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para testing o para recargar datos.
        """
        if self._live_state is not None:
            self._live_state.close()
        if self._store is not None:
            self._store.close()
        self._init_slots()

    @classmethod
    def get_instance(cls, base_path: str = None) -> 'AppContainer':
        """
        Obtiene la instancia singleton del contenedor.

        Args:
            base_path: Carpeta de datos (solo se usa en primera llamada)
        """
        if cls._instance is None:
            return cls(base_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(base_path: str = None) -> AppContainer:
    """
    Obtiene el contenedor de dependencias global.

    Args:
        base_path: Carpeta de datos

    Returns:
        Instancia del contenedor
    """
    return AppContainer.get_instance(base_path)
