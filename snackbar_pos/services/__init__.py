# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de la aplicación.
#
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y validaciones
# 3. Las rutas (controllers) solo llaman a servicios
# 4. Cada operación de negocio escribe con UNA escritura atómica del almacén
# 5. Los errores de negocio vuelven como {'ok': False, 'error', 'error_code'}
#
# ESTRUCTURA:
# ├── order_service.py        → Pedidos, estados de cocina, pagos
# ├── inventory_service.py    → Cardápio, reposición, costo promedio, menú público
# ├── stats_service.py        → Dashboard de gestión
# ├── finance_service.py      → Flujo de caja
# ├── notification_service.py → Eventos de mejor esfuerzo
# ├── audit_service.py        → Registro de actividad
# ├── live_state.py           → Cachés en vivo (suscripciones)
# └── common.py               → Resultados de error y validaciones
# ==============================================================================

from snackbar_pos.services.audit_service import AuditService
from snackbar_pos.services.notification_service import NotificationService
from snackbar_pos.services.inventory_service import InventoryService, weighted_average_cost
from snackbar_pos.services.order_service import OrderService
from snackbar_pos.services.stats_service import StatsService
from snackbar_pos.services.finance_service import FinanceService
from snackbar_pos.services.live_state import LiveState

__all__ = [
    'AuditService',
    'NotificationService',
    'InventoryService',
    'weighted_average_cost',
    'OrderService',
    'StatsService',
    'FinanceService',
    'LiveState',
]
