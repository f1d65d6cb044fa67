# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio de la lanchonete.
# Diseñadas para ser independientes del mecanismo de persistencia:
# el almacén de documentos solo ve diccionarios (to_dict / from_dict).
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime, timezone


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class OrderStatus(str, Enum):
    """Estados posibles de un pedido (flujo de cocina de una sola vía)."""
    PENDING = "pending"          # Recién creado, esperando cocina
    PREPARING = "preparing"      # En preparación
    COMPLETED = "completed"      # Entregado al cliente


class PaymentMethod(str, Enum):
    """Métodos de pago aceptados."""
    PIX = "pix"
    MONEY = "money"
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionType(str, Enum):
    """Tipos de movimiento del flujo de caja."""
    INCOME = "income"
    EXPENSE = "expense"


class StockLogType(str, Enum):
    """Tipos de movimiento del historial de stock."""
    ENTRY = "entry"


class AuditType(str, Enum):
    """Tipos de eventos de auditoría."""
    PEDIDO = "PEDIDO"
    PAGO = "PAGO"
    STOCK = "STOCK"
    PRODUCTO = "PRODUCTO"
    CAJA = "CAJA"
    SISTEMA = "SISTEMA"


class ErrorCode(str, Enum):
    """Tipos de error que los servicios reportan en sus resultados."""
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    EMPTY_ORDER = "EMPTY_ORDER"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"


# Transiciones de estado permitidas: avance + un paso atrás de corrección
ALLOWED_TRANSITIONS = frozenset([
    (OrderStatus.PENDING, OrderStatus.PREPARING),
    (OrderStatus.PREPARING, OrderStatus.COMPLETED),
    (OrderStatus.PREPARING, OrderStatus.PENDING),
    (OrderStatus.COMPLETED, OrderStatus.PREPARING),
])

# Método asumido cuando un pedido no tiene método registrado
DEFAULT_PAYMENT_METHOD = PaymentMethod.PIX


# ==============================================================================
# UTILIDADES DE FECHA
# ==============================================================================

def utcnow() -> datetime:
    """Fecha/hora actual con zona UTC."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Convierte un timestamp ISO (o datetime) a datetime con zona horaria.
    Las fechas sin zona se asumen UTC. Retorna None si no puede parsear.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(value: datetime) -> str:
    return value.isoformat()


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


# ==============================================================================
# ENTIDADES DEL CARDÁPIO (MENÚ)
# ==============================================================================

@dataclass
class MenuItem:
    """
    Ítem vendible del cardápio.

    Attributes:
        id: Identificador único (inmutable)
        name: Nombre visible
        description: Descripción corta
        price: Precio de venta
        cost_price: Costo unitario promedio ponderado
        stock: Cantidad disponible
        visible: Si aparece en pedidos y en el menú público
    """
    id: str
    name: str
    description: str = ''
    price: float = 0.0
    cost_price: float = 0.0
    stock: int = 0
    visible: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'price': self.price,
            'cost_price': self.cost_price,
            'stock': self.stock,
            'visible': self.visible,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MenuItem':
        """Crea instancia desde diccionario."""
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            description=data.get('description', '') or '',
            price=float(data.get('price', 0.0) or 0.0),
            cost_price=float(data.get('cost_price', 0.0) or 0.0),
            stock=int(data.get('stock', 0) or 0),
            visible=bool(data.get('visible', True)),
        )


# ==============================================================================
# ENTIDADES DE PEDIDO
# ==============================================================================

@dataclass
class OrderItem:
    """
    Línea de un pedido.
    Guarda una COPIA del ítem del menú al momento del pedido: ediciones
    posteriores del cardápio no cambian pedidos históricos.

    Attributes:
        menu_item: Snapshot del ítem del menú
        quantity: Cantidad pedida (> 0)
    """
    menu_item: MenuItem
    quantity: int

    @property
    def line_total(self) -> float:
        return self.menu_item.price * self.quantity

    @property
    def line_profit(self) -> float:
        return (self.menu_item.price - self.menu_item.cost_price) * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'menu_item': self.menu_item.to_dict(),
            'quantity': self.quantity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrderItem':
        return cls(
            menu_item=MenuItem.from_dict(data.get('menu_item', {})),
            quantity=int(data.get('quantity', 0) or 0),
        )


@dataclass
class Order:
    """
    Pedido de un cliente.

    Attributes:
        id: Identificador único (inmutable)
        items: Líneas del pedido (snapshots)
        total: Total calculado al crear; nunca se recalcula
        status: Estado en el flujo de cocina
        created_at: Momento de creación
        observation: Nota libre ("sin cebolla", etc.)
        is_paid: Si ya fue pagado
        payment_method: Método de pago (puede preseleccionarse)
    """
    id: str
    items: List[OrderItem] = field(default_factory=list)
    total: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    observation: Optional[str] = None
    is_paid: bool = False
    payment_method: Optional[PaymentMethod] = None

    @property
    def short_id(self) -> str:
        """Número corto mostrado en la cocina."""
        return self.id[-4:]

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        d = {
            'id': self.id,
            'items': [item.to_dict() for item in self.items],
            'total': self.total,
            'status': _enum_value(self.status),
            'created_at': format_timestamp(self.created_at),
            'is_paid': self.is_paid,
        }
        if self.observation:
            d['observation'] = self.observation
        if self.payment_method is not None:
            d['payment_method'] = _enum_value(self.payment_method)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Order':
        """Crea instancia desde diccionario."""
        try:
            status = OrderStatus(data.get('status', 'pending'))
        except ValueError:
            status = OrderStatus.PENDING
        method = data.get('payment_method')
        try:
            payment_method = PaymentMethod(method) if method else None
        except ValueError:
            payment_method = None
        return cls(
            id=str(data.get('id', '')),
            items=[OrderItem.from_dict(i) for i in data.get('items', [])],
            total=float(data.get('total', 0.0) or 0.0),
            status=status,
            created_at=parse_timestamp(data.get('created_at')) or utcnow(),
            observation=data.get('observation') or None,
            is_paid=bool(data.get('is_paid', False)),
            payment_method=payment_method,
        )


# ==============================================================================
# ENTIDADES DE INVENTARIO
# ==============================================================================

@dataclass
class StockLogEntry:
    """
    Entrada del historial de reposición de stock (solo se agrega).

    Attributes:
        id: Identificador del registro
        item_id: ID del ítem repuesto
        item_name: Nombre del ítem al momento de la entrada
        type: Tipo de movimiento (siempre 'entry')
        quantity: Cantidad agregada
        cost_price: Costo unitario de este lote
        new_average_cost: Costo promedio resultante
        created_at: Momento del registro
    """
    id: str
    item_id: str
    item_name: str
    quantity: int
    cost_price: float
    new_average_cost: float
    type: StockLogType = StockLogType.ENTRY
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'item_id': self.item_id,
            'item_name': self.item_name,
            'type': _enum_value(self.type),
            'quantity': self.quantity,
            'cost_price': self.cost_price,
            'new_average_cost': self.new_average_cost,
            'created_at': format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StockLogEntry':
        return cls(
            id=str(data.get('id', '')),
            item_id=str(data.get('item_id', '')),
            item_name=data.get('item_name', ''),
            quantity=int(data.get('quantity', 0) or 0),
            cost_price=float(data.get('cost_price', 0.0) or 0.0),
            new_average_cost=float(data.get('new_average_cost', 0.0) or 0.0),
            created_at=parse_timestamp(data.get('created_at')) or utcnow(),
        )


# ==============================================================================
# ENTIDADES DE CAJA
# ==============================================================================

@dataclass
class Transaction:
    """
    Movimiento manual del flujo de caja, independiente de los pedidos.

    Attributes:
        id: Identificador único
        description: Descripción del movimiento
        amount: Monto (> 0)
        type: Entrada o salida
        category: Categoría libre ("Insumos", "Aluguel", ...)
        created_at: Momento del registro
    """
    id: str
    description: str
    amount: float
    type: TransactionType
    category: str
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'description': self.description,
            'amount': self.amount,
            'type': _enum_value(self.type),
            'category': self.category,
            'created_at': format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        try:
            tx_type = TransactionType(data.get('type', 'expense'))
        except ValueError:
            tx_type = TransactionType.EXPENSE
        return cls(
            id=str(data.get('id', '')),
            description=data.get('description', ''),
            amount=float(data.get('amount', 0.0) or 0.0),
            type=tx_type,
            category=data.get('category', ''),
            created_at=parse_timestamp(data.get('created_at')) or utcnow(),
        )


# ==============================================================================
# AUDITORÍA
# ==============================================================================

@dataclass
class AuditLog:
    """
    Registro de auditoría.

    Attributes:
        type: Tipo de evento
        user: Usuario que realizó la acción
        message: Mensaje humanizado
        timestamp: Fecha/hora local del evento
        related_id: ID relacionado (pedido, ítem, movimiento)
        details: Datos adicionales
    """
    type: AuditType
    user: str
    message: str
    timestamp: str = ''
    related_id: str = ''
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': _enum_value(self.type),
            'user': self.user,
            'message': self.message,
            'timestamp': self.timestamp,
            'related_id': self.related_id,
            'details': self.details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditLog':
        try:
            log_type = AuditType(data.get('type', 'SISTEMA'))
        except ValueError:
            log_type = AuditType.SISTEMA
        return cls(
            type=log_type,
            user=data.get('user', 'sistema'),
            message=data.get('message', ''),
            timestamp=data.get('timestamp', ''),
            related_id=data.get('related_id', ''),
            details=data.get('details', {}) or {},
        )
