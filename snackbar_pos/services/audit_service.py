# ==============================================================================
# SERVICIO DE AUDITORÍA
# ==============================================================================
# Centraliza el registro de actividad de la lanchonete.
# Formatea mensajes humanizados y categoriza eventos.
# ==============================================================================

import logging
from typing import Any, Dict, List

from snackbar_pos.models import AuditLog, AuditType
from snackbar_pos.repositories.base import PersistenceError
from snackbar_pos.repositories.interfaces import IAuditRepository


logger = logging.getLogger(__name__)


# Nombres legibles para los mensajes
STATUS_LABELS = {
    'pending': 'Pendente',
    'preparing': 'Preparando',
    'completed': 'Concluído',
}

PAYMENT_LABELS = {
    'pix': 'Pix',
    'money': 'Dinheiro',
    'credit': 'Crédito',
    'debit': 'Débito',
}


class AuditService:
    """
    Servicio para registro y consulta de auditoría.

    Centraliza:
    - Registro de eventos con mensajes humanizados
    - Categorización de eventos (PEDIDO, PAGO, STOCK, PRODUCTO, CAJA)
    - Búsqueda y filtrado de logs

    El registro es complementario: un fallo al escribir audit.json se
    loguea y nunca revierte la operación de negocio ya confirmada.
    """

    def __init__(self, audit_repo: IAuditRepository):
        """
        Args:
            audit_repo: Repositorio de auditoría
        """
        self.audit_repo = audit_repo

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        log_type: AuditType,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """
        Registra un evento de auditoría genérico.

        Args:
            log_type: Tipo de evento
            user: Usuario que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (pedido, ítem, movimiento)
            details: Detalles adicionales
        """
        entry = AuditLog(
            type=log_type,
            user=user or 'sistema',
            message=message,
            related_id=related_id or '',
            details=details or {},
        )
        try:
            self.audit_repo.log(entry)
        except PersistenceError:
            logger.exception("No se pudo registrar auditoría: %s", message)

    def log_order_created(
        self,
        user: str,
        order_id: str,
        total: float,
        items_count: int,
        is_paid: bool
    ) -> None:
        """
        Registra la creación de un pedido.

        Args:
            user: Usuario que creó el pedido
            order_id: ID del pedido
            total: Total del pedido
            items_count: Cantidad de unidades
            is_paid: Si ya entró pagado
        """
        paid = ' - Pago' if is_paid else ''
        message = (
            f"Pedido #{order_id[-4:]} creado por {user} - Total: R$ {total:.2f} - "
            f"{items_count} itens{paid}"
        )
        self.log(
            AuditType.PEDIDO,
            user,
            message,
            order_id,
            {'total': total, 'items_count': items_count, 'is_paid': is_paid}
        )

    def log_order_status_change(
        self,
        user: str,
        order_id: str,
        old_status: str,
        new_status: str
    ) -> None:
        """Registra un cambio de estado de pedido."""
        old_label = STATUS_LABELS.get(old_status, old_status)
        new_label = STATUS_LABELS.get(new_status, new_status)
        message = f"Pedido #{order_id[-4:]}: {old_label} → {new_label} por {user}"
        self.log(
            AuditType.PEDIDO,
            user,
            message,
            order_id,
            {'from': old_status, 'to': new_status}
        )

    def log_payment(
        self,
        user: str,
        order_id: str,
        is_paid: bool,
        method: str = None,
        total: float = None
    ) -> None:
        """
        Registra un cambio de pago.

        Args:
            user: Usuario que registró
            order_id: ID del pedido
            is_paid: Nuevo estado de pago
            method: Método de pago (si se informó)
            total: Total del pedido
        """
        method_label = PAYMENT_LABELS.get(method, method) if method else 'sem método'
        if is_paid:
            total_str = f" - R$ {total:.2f}" if total is not None else ''
            message = f"Pagamento do pedido #{order_id[-4:]} ({method_label}){total_str} por {user}"
        else:
            message = f"Pedido #{order_id[-4:]} marcado como não pago ({method_label}) por {user}"
        self.log(
            AuditType.PAGO,
            user,
            message,
            order_id,
            {'is_paid': is_paid, 'method': method, 'total': total}
        )

    def log_stock_replenished(
        self,
        user: str,
        item_id: str,
        item_name: str,
        quantity: int,
        batch_cost: float,
        new_stock: int,
        new_average_cost: float
    ) -> None:
        """Registra una entrada de stock con el nuevo costo promedio."""
        message = (
            f"Entrada de {quantity} un. em {item_name} a R$ {batch_cost:.2f} "
            f"(estoque: {new_stock}, custo médio: R$ {new_average_cost:.2f}) por {user}"
        )
        self.log(
            AuditType.STOCK,
            user,
            message,
            item_id,
            {
                'quantity': quantity,
                'batch_cost': batch_cost,
                'new_stock': new_stock,
                'new_average_cost': new_average_cost,
            }
        )

    def log_item_created(self, user: str, item_id: str, name: str, price: float) -> None:
        message = f"Item '{name}' criado por {user} - Preço: R$ {price:.2f}"
        self.log(AuditType.PRODUCTO, user, message, item_id, {'name': name, 'price': price})

    def log_item_updated(self, user: str, item_id: str, name: str, changes: Dict[str, Any]) -> None:
        """
        Registra la edición de un ítem.

        Args:
            changes: {campo: {'old': valor, 'new': valor}}
        """
        if changes:
            fields = ', '.join(sorted(changes.keys()))
            message = f"Item '{name}' editado por {user} ({fields})"
        else:
            message = f"Item '{name}' salvo sem alterações por {user}"
        self.log(AuditType.PRODUCTO, user, message, item_id, {'changes': changes})

    def log_item_visibility(self, user: str, item_id: str, name: str, visible: bool) -> None:
        state = 'visível' if visible else 'oculto'
        message = f"Item '{name}' agora está {state} (por {user})"
        self.log(AuditType.PRODUCTO, user, message, item_id, {'visible': visible})

    def log_item_deleted(self, user: str, item_id: str, name: str) -> None:
        message = f"Item '{name}' excluído por {user}"
        self.log(AuditType.PRODUCTO, user, message, item_id, {'name': name})

    def log_transaction(
        self,
        user: str,
        transaction_id: str,
        description: str,
        amount: float,
        tx_type: str,
        deleted: bool = False
    ) -> None:
        """Registra el alta o baja de un movimiento de caja."""
        kind = 'Entrada' if tx_type == 'income' else 'Saída'
        action = 'excluída' if deleted else 'registrada'
        message = f"{kind} de caixa {action}: {description} - R$ {amount:.2f} por {user}"
        self.log(
            AuditType.CAJA,
            user,
            message,
            transaction_id,
            {'amount': amount, 'type': tx_type, 'deleted': deleted}
        )

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def search(
        self,
        query: str = '',
        log_type: str = None,
        related_id: str = None,
        limit: int = 200
    ) -> List[Dict[str, Any]]:
        """
        Busca en el registro de actividad.

        Args:
            query: Texto libre
            log_type: Filtrar por tipo
            related_id: Filtrar por ID relacionado
            limit: Máximo de resultados

        Returns:
            Lista de logs (más recientes primero)
        """
        return self.audit_repo.search_logs(query, log_type, related_id, limit)
