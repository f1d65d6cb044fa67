# ==============================================================================
# SERVICIO DE INVENTARIO
# ==============================================================================
# Centraliza la lógica de negocio del cardápio y del stock:
#   - CRUD de ítems del menú y visibilidad
#   - Reposición de stock con costo promedio ponderado
#   - Menú público (solo ítems visibles)
# ==============================================================================

import logging
import unicodedata
import uuid
from typing import Any, Dict, List, Optional

from snackbar_pos.models import ErrorCode, MenuItem, StockLogEntry
from snackbar_pos.performance_logger import profile_function
from snackbar_pos.repositories.base import PersistenceError
from snackbar_pos.repositories.interfaces import (
    IDocumentStore,
    IMenuRepository,
    IStockLogRepository,
)
from snackbar_pos.services.audit_service import AuditService
from snackbar_pos.services.common import (
    error_result,
    parse_amount,
    parse_non_negative_int,
    parse_quantity,
)
from snackbar_pos.services.notification_service import (
    EVENT_STOCK_REPLENISHED,
    NotificationService,
)


logger = logging.getLogger(__name__)

# Decimales del costo promedio guardado
AVERAGE_COST_DECIMALS = 4


def weighted_average_cost(
    current_stock: int,
    current_cost: float,
    quantity_added: int,
    batch_cost: float
) -> float:
    """
    Costo unitario promedio ponderado después de una compra.

        (stock × costo_actual + cantidad × costo_lote) / (stock + cantidad)

    Si el denominador es 0 el resultado es el costo del lote.

    Ejemplo:
        >>> weighted_average_cost(10, 2.0, 10, 4.0)
        3.0
    """
    total_units = current_stock + quantity_added
    if total_units == 0:
        return round(batch_cost, AVERAGE_COST_DECIMALS)
    total_value = current_stock * current_cost + quantity_added * batch_cost
    return round(total_value / total_units, AVERAGE_COST_DECIMALS)


def name_sort_key(name: str) -> str:
    """Clave de orden sin mayúsculas ni acentos ("Água" junto a "agua")."""
    decomposed = unicodedata.normalize('NFKD', name or '')
    stripped = ''.join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


class InventoryService:
    """
    Servicio para gestión del cardápio e inventario.

    Responsabilidades:
    - CRUD de ítems del menú
    - Mostrar/ocultar ítems
    - Entradas de stock con costo promedio ponderado
    - Historial de reposiciones
    - Vista pública del menú

    Cada operación que escribe lo hace con UNA escritura atómica del almacén.
    """

    def __init__(
        self,
        store: IDocumentStore,
        menu_repo: IMenuRepository,
        stock_log_repo: IStockLogRepository,
        audit_service: AuditService = None,
        notifications: NotificationService = None
    ):
        """
        Inicializa el servicio de inventario.

        Args:
            store: Almacén de documentos (escrituras atómicas)
            menu_repo: Repositorio del cardápio
            stock_log_repo: Repositorio del historial de stock
            audit_service: Servicio de auditoría (opcional)
            notifications: Publicador de eventos (opcional)
        """
        self.store = store
        self.menu_repo = menu_repo
        self.stock_log_repo = stock_log_repo
        self.audit_service = audit_service
        self.notifications = notifications

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_item(self, item_id: str) -> Optional[MenuItem]:
        return self.menu_repo.get_item(item_id)

    def list_items(self) -> List[MenuItem]:
        """Todos los ítems ordenados por nombre."""
        return sorted(self.menu_repo.load(), key=lambda i: name_sort_key(i.name))

    def get_public_menu(self) -> List[MenuItem]:
        """
        Menú público: solo ítems visibles, por nombre ascendente
        (sin distinguir mayúsculas ni acentos). No modifica nada.
        """
        return sorted(self.menu_repo.get_visible(), key=lambda i: name_sort_key(i.name))

    @staticmethod
    def available_items(items: List[MenuItem]) -> List[MenuItem]:
        """
        Ítems que se pueden agregar a un pedido: visibles y con stock.

        Args:
            items: Lista de ítems (normalmente la caché en vivo)
        """
        available = [i for i in items if i.visible and i.stock > 0]
        return sorted(available, key=lambda i: name_sort_key(i.name))

    def get_stock_log(self, item_id: str = None) -> List[StockLogEntry]:
        """Historial de reposiciones, más recientes primero."""
        return self.stock_log_repo.load(item_id)

    # =========================================================================
    # CRUD DEL CARDÁPIO
    # =========================================================================

    def _build_item(self, item_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Valida los campos de un ítem y construye la entidad.

        Los campos ausentes toman los valores por defecto de creación.

        Returns:
            {'ok': True, 'item': MenuItem} o resultado de error
        """
        name = data.get('name')
        if not isinstance(name, str) or not name.strip():
            return error_result(ErrorCode.VALIDATION_ERROR, 'El nombre es obligatorio')

        description = data.get('description') or ''
        if not isinstance(description, str):
            return error_result(ErrorCode.VALIDATION_ERROR, 'Descripción inválida')

        price = parse_amount(data.get('price', 0))
        if price is None or price < 0:
            return error_result(ErrorCode.VALIDATION_ERROR, 'El precio debe ser un número ≥ 0')

        cost_price = parse_amount(data.get('cost_price', 0))
        if cost_price is None or cost_price < 0:
            return error_result(ErrorCode.VALIDATION_ERROR, 'El costo debe ser un número ≥ 0')

        stock = parse_non_negative_int(data.get('stock', 0))
        if stock is None:
            return error_result(ErrorCode.VALIDATION_ERROR, 'El stock debe ser un entero ≥ 0')

        visible = data.get('visible', True)
        if not isinstance(visible, bool):
            return error_result(ErrorCode.VALIDATION_ERROR, 'visible debe ser true o false')

        item = MenuItem(
            id=item_id,
            name=name.strip(),
            description=description.strip(),
            price=round(price, 2),
            cost_price=round(cost_price, AVERAGE_COST_DECIMALS),
            stock=stock,
            visible=visible,
        )
        return {'ok': True, 'item': item}

    def _commit(self, ops, action: str) -> Optional[Dict[str, Any]]:
        """Ejecuta la escritura atómica; devuelve resultado de error si falla."""
        try:
            self.store.atomic_write(ops)
        except PersistenceError as e:
            logger.warning("%s no se guardó: %s", action, e)
            return error_result(
                ErrorCode.PERSISTENCE_FAILURE,
                f'No se pudo guardar ({action}). Intente nuevamente.'
            )
        return None

    def create_item(
        self,
        name: str,
        description: str = '',
        price: float = 0.0,
        stock: int = 0,
        cost_price: float = 0.0,
        visible: bool = True,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Crea un ítem del menú.

        Returns:
            {'ok': True, 'item': {...}} o error VALIDATION_ERROR / PERSISTENCE_FAILURE
        """
        built = self._build_item(uuid.uuid4().hex, {
            'name': name,
            'description': description,
            'price': price,
            'stock': stock,
            'cost_price': cost_price,
            'visible': visible,
        })
        if not built['ok']:
            return built
        item = built['item']

        failure = self._commit([self.menu_repo.save_op(item, is_new=True)], 'crear ítem')
        if failure:
            return failure

        if self.audit_service:
            self.audit_service.log_item_created(user, item.id, item.name, item.price)

        return {'ok': True, 'item': item.to_dict()}

    def update_item(self, item_id: str, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Reemplaza todos los campos editables de un ítem (el ID no cambia).

        Args:
            item_id: ID del ítem
            data: Nuevos valores (name, description, price, cost_price, stock, visible)
            user: Usuario que edita

        Returns:
            {'ok': True, 'item': {...}} o error NOT_FOUND / VALIDATION_ERROR
        """
        current = self.menu_repo.get_item(item_id)
        if not current:
            return error_result(ErrorCode.NOT_FOUND, 'Ítem no encontrado')

        built = self._build_item(item_id, data or {})
        if not built['ok']:
            return built
        item = built['item']

        failure = self._commit([self.menu_repo.save_op(item)], 'editar ítem')
        if failure:
            return failure

        if self.audit_service:
            old, new = current.to_dict(), item.to_dict()
            changes = {
                key: {'old': old[key], 'new': new[key]}
                for key in new
                if key != 'id' and old.get(key) != new[key]
            }
            self.audit_service.log_item_updated(user, item.id, item.name, changes)

        return {'ok': True, 'item': item.to_dict()}

    def set_visibility(self, item_id: str, visible: bool, user: str = None) -> Dict[str, Any]:
        """Muestra u oculta un ítem en pedidos y en el menú público."""
        if not isinstance(visible, bool):
            return error_result(ErrorCode.VALIDATION_ERROR, 'visible debe ser true o false')

        item = self.menu_repo.get_item(item_id)
        if not item:
            return error_result(ErrorCode.NOT_FOUND, 'Ítem no encontrado')

        failure = self._commit(
            [self.menu_repo.update_op(item_id, {'visible': visible})],
            'cambiar visibilidad'
        )
        if failure:
            return failure

        item.visible = visible
        if self.audit_service:
            self.audit_service.log_item_visibility(user, item_id, item.name, visible)

        return {'ok': True, 'item': item.to_dict()}

    def delete_item(self, item_id: str, user: str = None) -> Dict[str, Any]:
        """
        Elimina un ítem. Los pedidos históricos conservan su copia.
        """
        item = self.menu_repo.get_item(item_id)
        if not item:
            return error_result(ErrorCode.NOT_FOUND, 'Ítem no encontrado')

        failure = self._commit([self.menu_repo.delete_op(item_id)], 'eliminar ítem')
        if failure:
            return failure

        if self.audit_service:
            self.audit_service.log_item_deleted(user, item_id, item.name)

        return {'ok': True, 'id': item_id}

    # =========================================================================
    # REPOSICIÓN DE STOCK
    # =========================================================================

    @profile_function(name="Reponer stock")
    def replenish_stock(
        self,
        item_id: str,
        quantity: int,
        batch_cost: float = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Registra una entrada de stock y recalcula el costo promedio.

        Una sola escritura atómica:
          - ítem: stock += cantidad, cost_price = nuevo promedio
          - historial: una entrada 'entry'

        Args:
            item_id: ID del ítem
            quantity: Unidades compradas (entero > 0)
            batch_cost: Costo unitario del lote (por defecto el costo actual)
            user: Usuario que registra

        Returns:
            Dict con:
            - ok: True/False
            - item: ítem actualizado
            - entry: registro del historial
            - error / error_code si falló
        """
        qty = parse_quantity(quantity)
        if qty is None:
            return error_result(
                ErrorCode.INVALID_QUANTITY,
                'La cantidad debe ser un entero mayor a 0'
            )

        item = self.menu_repo.get_item(item_id)
        if not item:
            return error_result(ErrorCode.NOT_FOUND, 'Ítem no encontrado')

        if batch_cost is None:
            cost = item.cost_price
        else:
            cost = parse_amount(batch_cost)
            if cost is None or cost < 0:
                return error_result(ErrorCode.VALIDATION_ERROR, 'El costo debe ser un número ≥ 0')

        new_average = weighted_average_cost(item.stock, item.cost_price, qty, cost)
        new_stock = item.stock + qty

        entry = StockLogEntry(
            id=uuid.uuid4().hex,
            item_id=item.id,
            item_name=item.name,
            quantity=qty,
            cost_price=cost,
            new_average_cost=new_average,
        )

        failure = self._commit(
            [
                self.menu_repo.replenish_op(item, new_stock, new_average),
                self.stock_log_repo.append_op(entry),
            ],
            'reponer stock'
        )
        if failure:
            return failure

        item.stock = new_stock
        item.cost_price = new_average

        logger.info(
            "Entrada de stock: %s +%d (costo promedio %.4f)",
            item.name, qty, new_average
        )

        if self.audit_service:
            self.audit_service.log_stock_replenished(
                user, item.id, item.name, qty, cost, new_stock, new_average
            )
        if self.notifications:
            self.notifications.publish(EVENT_STOCK_REPLENISHED, {
                'item': item.to_dict(),
                'entry': entry.to_dict(),
            })

        return {'ok': True, 'item': item.to_dict(), 'entry': entry.to_dict()}
