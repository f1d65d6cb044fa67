# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Este módulo define todas las entidades del dominio usando dataclasses.
# Beneficios:
#   - Type hints para mejor documentación y autocompletado
#   - Fácil serialización/deserialización para el almacén de documentos
#   - Independiente del mecanismo de persistencia
# ==============================================================================

from .entities import (
    # Cardápio
    MenuItem,

    # Pedidos
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    ALLOWED_TRANSITIONS,
    DEFAULT_PAYMENT_METHOD,

    # Inventario
    StockLogEntry,
    StockLogType,

    # Caja
    Transaction,
    TransactionType,

    # Auditoría
    AuditLog,
    AuditType,

    # Errores
    ErrorCode,

    # Fechas
    utcnow,
    parse_timestamp,
)

__all__ = [
    'MenuItem',
    'Order',
    'OrderItem',
    'OrderStatus',
    'PaymentMethod',
    'ALLOWED_TRANSITIONS',
    'DEFAULT_PAYMENT_METHOD',
    'StockLogEntry',
    'StockLogType',
    'Transaction',
    'TransactionType',
    'AuditLog',
    'AuditType',
    'ErrorCode',
    'utcnow',
    'parse_timestamp',
]
