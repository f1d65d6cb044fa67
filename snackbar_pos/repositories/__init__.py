# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia.
#
# ESTRUCTURA:
# ├── interfaces.py              → Protocolos (contratos)
# ├── base.py                    → Base JSON (BaseRepository, ListRepository)
# ├── document_store.py          → Almacén de colecciones con escritura atómica
# ├── menu_repository.py         → Colección menu_items
# ├── order_repository.py        → Colección orders
# ├── stock_log_repository.py    → Colección stock_log
# ├── transaction_repository.py  → Colección transactions
# └── audit_repository.py        → Acceso a audit.json
# ==============================================================================

# Interfaces
from .interfaces import (
    IDocumentStore,
    IMenuRepository,
    IOrderRepository,
    IStockLogRepository,
    ITransactionRepository,
    IAuditRepository,
)

# Implementaciones concretas (JSON)
from .base import BaseRepository, ListRepository, PersistenceError
from .document_store import (
    COLLECTIONS,
    CollectionRepository,
    DocumentStore,
    Subscription,
    WriteOp,
)
from .menu_repository import MenuRepository
from .order_repository import OrderRepository
from .stock_log_repository import StockLogRepository
from .transaction_repository import TransactionRepository
from .audit_repository import AuditRepository

__all__ = [
    # Interfaces
    'IDocumentStore',
    'IMenuRepository',
    'IOrderRepository',
    'IStockLogRepository',
    'ITransactionRepository',
    'IAuditRepository',

    # Clases base
    'BaseRepository',
    'ListRepository',
    'PersistenceError',
    'CollectionRepository',

    # Almacén
    'COLLECTIONS',
    'DocumentStore',
    'Subscription',
    'WriteOp',

    # Implementaciones JSON
    'MenuRepository',
    'OrderRepository',
    'StockLogRepository',
    'TransactionRepository',
    'AuditRepository',
]
