# ==============================================================================
# SERVICIO DE PEDIDOS
# ==============================================================================
# Centraliza toda la lógica de negocio del ciclo de vida de un pedido:
#   - Creación atómica (pedido + descuento de stock en UNA escritura)
#   - Transiciones de estado de cocina
#   - Registro de pago
#
# FLUJO DE ESTADOS:
#
#   pending ──► preparing ──► completed
#      ▲            │  ▲          │
#      └────────────┘  └──────────┘
#        (corrección)   (corrección)
#
# No hay estado terminal ni cancelación. Los pedidos nunca se eliminan.
# ==============================================================================

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from snackbar_pos.models import (
    ALLOWED_TRANSITIONS,
    ErrorCode,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
)
from snackbar_pos.performance_logger import profile_function
from snackbar_pos.repositories.base import PersistenceError
from snackbar_pos.repositories.interfaces import (
    IDocumentStore,
    IMenuRepository,
    IOrderRepository,
)
from snackbar_pos.services.audit_service import AuditService
from snackbar_pos.services.common import error_result, parse_quantity
from snackbar_pos.services.notification_service import (
    EVENT_ORDER_CREATED,
    EVENT_ORDER_STATUS_CHANGED,
    NotificationService,
)


logger = logging.getLogger(__name__)


def parse_payment_method(value: Any) -> Optional[PaymentMethod]:
    """
    Convierte texto a PaymentMethod.

    Raises:
        ValueError: Si el método no existe
    """
    if value is None or value == '':
        return None
    return PaymentMethod(value)


class OrderService:
    """
    Servicio para gestión de pedidos.

    Responsabilidades:
    - Validar y crear pedidos (snapshots de los ítems + total)
    - Descontar stock en la misma escritura atómica del pedido
    - Aplicar la tabla de transiciones de estado
    - Registrar pago y método
    - Armar el tablero de cocina
    """

    def __init__(
        self,
        store: IDocumentStore,
        order_repo: IOrderRepository,
        menu_repo: IMenuRepository,
        audit_service: AuditService = None,
        notifications: NotificationService = None
    ):
        """
        Inicializa el servicio de pedidos.

        Args:
            store: Almacén de documentos (escrituras atómicas)
            order_repo: Repositorio de pedidos
            menu_repo: Repositorio del cardápio
            audit_service: Servicio de auditoría (opcional)
            notifications: Publicador de eventos (opcional)
        """
        self.store = store
        self.order_repo = order_repo
        self.menu_repo = menu_repo
        self.audit_service = audit_service
        self.notifications = notifications

    # =========================================================================
    # CREACIÓN DE PEDIDOS
    # =========================================================================

    @staticmethod
    def _normalize_lines(lines: Sequence[Any]) -> Dict[str, Any]:
        """
        Valida las líneas y une las repetidas (se mantiene la primera posición).

        Returns:
            {'ok': True, 'lines': [(item_id, qty), ...]} o resultado de error
        """
        merged: Dict[str, int] = {}
        for line in lines:
            if isinstance(line, dict):
                item_id, raw_qty = line.get('item_id'), line.get('quantity')
            elif isinstance(line, (list, tuple)) and len(line) == 2:
                item_id, raw_qty = line
            else:
                return error_result(ErrorCode.VALIDATION_ERROR, 'Línea de pedido inválida')

            if not isinstance(item_id, str) or not item_id:
                return error_result(ErrorCode.VALIDATION_ERROR, 'Línea de pedido sin ítem')

            qty = parse_quantity(raw_qty)
            if qty is None:
                return error_result(
                    ErrorCode.INVALID_QUANTITY,
                    'La cantidad de cada ítem debe ser un entero mayor a 0',
                    item_id=item_id
                )
            merged[item_id] = merged.get(item_id, 0) + qty

        return {'ok': True, 'lines': list(merged.items())}

    @profile_function(name="Crear pedido")
    def create_order(
        self,
        lines: Sequence[Any],
        observation: str = None,
        is_paid: bool = False,
        payment_method: str = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Crea un pedido y descuenta el stock de sus ítems.
        Esta es la ÚNICA función que crea pedidos.

        Args:
            lines: [{'item_id': ..., 'quantity': ...}] o [(item_id, quantity)]
            observation: Nota para la cocina
            is_paid: Si el cliente ya pagó
            payment_method: pix, money, credit o debit (opcional)
            user: Usuario que crea el pedido

        Returns:
            Dict con resultado:
            - ok: True/False
            - order: pedido creado
            - error / error_code: si falló
            - items: ítems sin stock suficiente (INSUFFICIENT_STOCK)
        """
        if not lines:
            return error_result(ErrorCode.EMPTY_ORDER, 'El pedido no tiene ítems')

        normalized = self._normalize_lines(lines)
        if not normalized['ok']:
            return normalized

        if not isinstance(is_paid, bool):
            return error_result(ErrorCode.VALIDATION_ERROR, 'is_paid debe ser true o false')

        try:
            method = parse_payment_method(payment_method)
        except ValueError:
            return error_result(ErrorCode.VALIDATION_ERROR, f'Método de pago inválido: {payment_method}')

        # Snapshots de los ítems tal como están ahora
        order_items: List[OrderItem] = []
        shortages = []
        for item_id, qty in normalized['lines']:
            item = self.menu_repo.get_item(item_id)
            if item is None:
                return error_result(ErrorCode.NOT_FOUND, f'Ítem {item_id} no encontrado', item_id=item_id)
            if qty > item.stock:
                shortages.append({
                    'item_id': item.id,
                    'name': item.name,
                    'requested': qty,
                    'available': item.stock,
                })
            order_items.append(OrderItem(menu_item=item, quantity=qty))

        if shortages:
            names = ', '.join(
                f"{s['name']} (pedido: {s['requested']}, disponible: {s['available']})"
                for s in shortages
            )
            logger.info("Pedido rechazado por stock insuficiente: %s", names)
            return error_result(
                ErrorCode.INSUFFICIENT_STOCK,
                f'Stock insuficiente: {names}',
                items=shortages
            )

        note = observation.strip() if isinstance(observation, str) else None
        order = Order(
            id=uuid.uuid4().hex,
            items=order_items,
            total=round(sum(i.line_total for i in order_items), 2),
            status=OrderStatus.PENDING,
            observation=note or None,
            is_paid=is_paid,
            payment_method=method,
        )

        ops = [self.order_repo.create_op(order.id, order.to_dict())]
        ops.extend(
            self.menu_repo.stock_decrement_op(line.menu_item.id, line.quantity)
            for line in order_items
        )

        try:
            self.store.atomic_write(ops)
        except PersistenceError as e:
            logger.warning("Pedido no guardado: %s", e)
            return error_result(
                ErrorCode.PERSISTENCE_FAILURE,
                'No se pudo guardar el pedido. Intente nuevamente.'
            )

        order_dict = order.to_dict()
        logger.info("Pedido %s creado: R$ %.2f", order.short_id, order.total)

        # Efectos secundarios de mejor esfuerzo (el pedido ya está guardado)
        if self.notifications:
            self.notifications.publish(EVENT_ORDER_CREATED, {'order': order_dict})
        if self.audit_service:
            self.audit_service.log_order_created(
                user or 'sistema',
                order.id,
                order.total,
                sum(i.quantity for i in order_items),
                order.is_paid
            )

        return {'ok': True, 'order': order_dict}

    # =========================================================================
    # ESTADOS
    # =========================================================================

    @staticmethod
    def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
        """Verifica si la transición está en la tabla permitida."""
        return (current, new) in ALLOWED_TRANSITIONS

    def change_status(self, order_id: str, new_status: str, user: str = None) -> Dict[str, Any]:
        """
        Cambia el estado de cocina de un pedido.

        Permitido:
            pending → preparing, preparing → completed  (avance)
            preparing → pending, completed → preparing  (corrección)

        Args:
            order_id: ID del pedido
            new_status: Estado destino
            user: Usuario que cambia el estado

        Returns:
            {'ok': True, 'order': {...}} o error NOT_FOUND / INVALID_TRANSITION
        """
        order = self.order_repo.get_order(order_id)
        if not order:
            return error_result(ErrorCode.NOT_FOUND, 'Pedido no encontrado')

        try:
            target = OrderStatus(new_status)
        except ValueError:
            return error_result(ErrorCode.INVALID_TRANSITION, f'Estado desconocido: {new_status}')

        if not self.can_transition(order.status, target):
            return error_result(
                ErrorCode.INVALID_TRANSITION,
                f'No se puede pasar de {order.status.value} a {target.value}'
            )

        old_status = order.status
        try:
            self.store.atomic_write([self.order_repo.status_op(order, target)])
        except PersistenceError as e:
            logger.warning("Cambio de estado de %s no guardado: %s", order.short_id, e)
            return error_result(
                ErrorCode.PERSISTENCE_FAILURE,
                'No se pudo cambiar el estado. Intente nuevamente.'
            )

        order.status = target
        order_dict = order.to_dict()

        if self.notifications:
            self.notifications.publish(EVENT_ORDER_STATUS_CHANGED, {
                'order': order_dict,
                'from': old_status.value,
                'to': target.value,
            })
        if self.audit_service:
            self.audit_service.log_order_status_change(
                user or 'sistema', order.id, old_status.value, target.value
            )

        return {'ok': True, 'order': order_dict}

    # =========================================================================
    # PAGOS
    # =========================================================================

    def record_payment(
        self,
        order_id: str,
        is_paid: bool,
        payment_method: str = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Marca un pedido como pagado / no pagado.
        Si se informa un método, se guarda aunque ya hubiera otro.

        Args:
            order_id: ID del pedido
            is_paid: Nuevo estado de pago
            payment_method: pix, money, credit o debit (opcional)
            user: Usuario que registra

        Returns:
            {'ok': True, 'order': {...}} o error NOT_FOUND / VALIDATION_ERROR
        """
        if not isinstance(is_paid, bool):
            return error_result(ErrorCode.VALIDATION_ERROR, 'is_paid debe ser true o false')

        try:
            method = parse_payment_method(payment_method)
        except ValueError:
            return error_result(ErrorCode.VALIDATION_ERROR, f'Método de pago inválido: {payment_method}')

        order = self.order_repo.get_order(order_id)
        if not order:
            return error_result(ErrorCode.NOT_FOUND, 'Pedido no encontrado')

        changes: Dict[str, Any] = {'is_paid': is_paid}
        if method is not None:
            changes['payment_method'] = method.value

        try:
            self.store.atomic_write([self.order_repo.update_op(order.id, changes)])
        except PersistenceError as e:
            logger.warning("Pago de %s no guardado: %s", order.short_id, e)
            return error_result(
                ErrorCode.PERSISTENCE_FAILURE,
                'No se pudo registrar el pago. Intente nuevamente.'
            )

        order.is_paid = is_paid
        if method is not None:
            order.payment_method = method

        if self.audit_service:
            self.audit_service.log_payment(
                user or 'sistema',
                order.id,
                is_paid,
                order.payment_method.value if order.payment_method else None,
                order.total
            )

        return {'ok': True, 'order': order.to_dict()}

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_order(self, order_id: str) -> Optional[Order]:
        return self.order_repo.get_order(order_id)

    def list_orders(self, status: str = None) -> List[Order]:
        """
        Lista pedidos, más antiguos primero.

        Args:
            status: Filtrar por estado (opcional; uno desconocido no trae nada)
        """
        if not status:
            return self.order_repo.load()
        try:
            return self.order_repo.get_by_status(OrderStatus(status))
        except ValueError:
            return []

    def kitchen_board(self, orders: List[Order] = None) -> Dict[str, List[Dict[str, Any]]]:
        """
        Tablero de cocina: pedidos agrupados por estado, más antiguos primero.

        Args:
            orders: Lista de pedidos (por defecto se cargan del repositorio)

        Returns:
            {'pending': [...], 'preparing': [...], 'completed': [...]}
        """
        if orders is None:
            orders = self.order_repo.load()

        board: Dict[str, List[Dict[str, Any]]] = {s.value: [] for s in OrderStatus}
        for order in sorted(orders, key=lambda o: o.created_at):
            entry = order.to_dict()
            entry['short_id'] = order.short_id
            board[order.status.value].append(entry)
        return board
