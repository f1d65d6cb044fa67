# ==============================================================================
# SERVICIO DE FLUJO DE CAJA
# ==============================================================================
# Movimientos manuales de entrada/salida (insumos, alquiler, aportes...)
# independientes de los pedidos, y el saldo de caja:
#
#   saldo = ventas concluidas + entradas extra - salidas
# ==============================================================================

import logging
import uuid
from typing import Any, Dict, List

from snackbar_pos.models import ErrorCode, Order, OrderStatus, Transaction, TransactionType
from snackbar_pos.repositories.base import PersistenceError
from snackbar_pos.repositories.interfaces import IDocumentStore, ITransactionRepository
from snackbar_pos.services.audit_service import AuditService
from snackbar_pos.services.common import error_result, parse_amount


logger = logging.getLogger(__name__)


class FinanceService:
    """
    Servicio del libro de caja.

    Responsabilidades:
    - Registrar y eliminar movimientos
    - Listar movimientos (más recientes primero)
    - Calcular el saldo
    """

    def __init__(
        self,
        store: IDocumentStore,
        transaction_repo: ITransactionRepository,
        audit_service: AuditService = None
    ):
        self.store = store
        self.transaction_repo = transaction_repo
        self.audit_service = audit_service

    def list_transactions(self) -> List[Transaction]:
        return self.transaction_repo.load()

    def add_transaction(
        self,
        description: str,
        amount: float,
        tx_type: str,
        category: str,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Registra un movimiento de caja.

        Args:
            description: Descripción (obligatoria)
            amount: Monto mayor a 0
            tx_type: 'income' o 'expense'
            category: Categoría (obligatoria)
            user: Usuario que registra

        Returns:
            {'ok': True, 'transaction': {...}} o error VALIDATION_ERROR
        """
        if not isinstance(description, str) or not description.strip():
            return error_result(ErrorCode.VALIDATION_ERROR, 'La descripción es obligatoria')

        value = parse_amount(amount)
        if value is None or value <= 0:
            return error_result(ErrorCode.VALIDATION_ERROR, 'El monto debe ser mayor a 0')

        try:
            kind = TransactionType(tx_type)
        except ValueError:
            return error_result(ErrorCode.VALIDATION_ERROR, f'Tipo inválido: {tx_type}')

        if not isinstance(category, str) or not category.strip():
            return error_result(ErrorCode.VALIDATION_ERROR, 'La categoría es obligatoria')

        transaction = Transaction(
            id=uuid.uuid4().hex,
            description=description.strip(),
            amount=round(value, 2),
            type=kind,
            category=category.strip(),
        )

        try:
            self.store.atomic_write([
                self.transaction_repo.create_op(transaction.id, transaction.to_dict())
            ])
        except PersistenceError as e:
            logger.warning("Movimiento de caja no guardado: %s", e)
            return error_result(
                ErrorCode.PERSISTENCE_FAILURE,
                'No se pudo guardar el movimiento. Intente nuevamente.'
            )

        if self.audit_service:
            self.audit_service.log_transaction(
                user or 'sistema',
                transaction.id,
                transaction.description,
                transaction.amount,
                kind.value
            )

        return {'ok': True, 'transaction': transaction.to_dict()}

    def delete_transaction(self, transaction_id: str, user: str = None) -> Dict[str, Any]:
        """Elimina un movimiento de caja."""
        transaction = self.transaction_repo.get_transaction(transaction_id)
        if not transaction:
            return error_result(ErrorCode.NOT_FOUND, 'Movimiento no encontrado')

        try:
            self.store.atomic_write([self.transaction_repo.delete_op(transaction_id)])
        except PersistenceError as e:
            logger.warning("Movimiento %s no eliminado: %s", transaction_id, e)
            return error_result(
                ErrorCode.PERSISTENCE_FAILURE,
                'No se pudo eliminar el movimiento. Intente nuevamente.'
            )

        if self.audit_service:
            self.audit_service.log_transaction(
                user or 'sistema',
                transaction.id,
                transaction.description,
                transaction.amount,
                transaction.type.value,
                deleted=True
            )

        return {'ok': True, 'id': transaction_id}

    def cash_summary(
        self,
        orders: List[Order],
        transactions: List[Transaction] = None
    ) -> Dict[str, float]:
        """
        Saldo de caja.

        Args:
            orders: Pedidos (solo cuentan los concluidos)
            transactions: Movimientos (por defecto se cargan del repositorio)

        Returns:
            {'total_sales', 'extra_income', 'expenses', 'balance'}
        """
        if transactions is None:
            transactions = self.transaction_repo.load()

        total_sales = sum(o.total for o in orders if o.status == OrderStatus.COMPLETED)
        extra_income = sum(t.amount for t in transactions if t.type == TransactionType.INCOME)
        expenses = sum(t.amount for t in transactions if t.type == TransactionType.EXPENSE)

        return {
            'total_sales': round(total_sales, 2),
            'extra_income': round(extra_income, 2),
            'expenses': round(expenses, 2),
            'balance': round(total_sales + extra_income - expenses, 2),
        }
