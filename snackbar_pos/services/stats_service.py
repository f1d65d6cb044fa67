# ==============================================================================
# SERVICIO DE ESTADÍSTICAS (DASHBOARD)
# ==============================================================================
# Calcula los indicadores de gestión basados SOLO en pedidos CONCLUÍDOS.
#
# REGLA PRINCIPAL: Solo "completed" cuenta para estadísticas.
# - pending ❌
# - preparing ❌
#
# Nada se guarda: cada llamada recalcula desde la lista de pedidos.
# ==============================================================================

from collections import defaultdict
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Dict, List, Optional, Tuple

from snackbar_pos.models import DEFAULT_PAYMENT_METHOD, Order, OrderStatus
from snackbar_pos.performance_logger import profile_function


# Días de la semana, domingo primero
WEEKDAY_LABELS = ('Dom', 'Seg', 'Ter', 'Qua', 'Qui', 'Sex', 'Sáb')

PERIODS = frozenset(['today', 'week', 'month', 'custom', 'all'])

TOP_PRODUCTS_LIMIT = 5


class StatsService:
    """
    Servicio para cálculo del dashboard de gestión.

    Responsabilidades:
    - Filtrar pedidos concluidos por período
    - Facturación, ganancia, ticket promedio
    - Métodos de pago, ventas por día de la semana
    - Ranking de productos por cantidad y por ganancia
    """

    # Estado válido para estadísticas
    VALID_STATUS = OrderStatus.COMPLETED

    def __init__(self, orders_loader=None):
        """
        Inicializa el servicio.

        Args:
            orders_loader: Función que retorna la lista de pedidos.
                           Permite inyectar la caché en vivo o datos de prueba.
        """
        self._orders_loader = orders_loader

    def _load_orders(self) -> List[Order]:
        if self._orders_loader:
            return self._orders_loader()
        return []

    @staticmethod
    def _parse_day(value: Optional[str]) -> Optional[date]:
        """Parsea YYYY-MM-DD; None si está vacío o no es válido."""
        if not value:
            return None
        try:
            return datetime.strptime(value, '%Y-%m-%d').date()
        except (ValueError, TypeError):
            return None

    def _get_date_range(
        self,
        period: str,
        today: date,
        custom_start: str = None,
        custom_end: str = None
    ) -> Tuple[Optional[date], Optional[date]]:
        """
        Calcula el rango de días (inclusivo) según el período.

        Args:
            period: 'today', 'week' (últimos 7 días), 'month' (últimos 30 días),
                    'custom' o 'all'
            today: Día actual en la zona horaria del usuario
            custom_start: Inicio para período custom (YYYY-MM-DD, opcional)
            custom_end: Fin para período custom (YYYY-MM-DD, opcional)

        Returns:
            Tupla (inicio, fin); None significa sin límite
        """
        if period == 'today':
            return today, today
        if period == 'week':
            return today - timedelta(days=6), today
        if period == 'month':
            return today - timedelta(days=29), today
        if period == 'custom':
            return self._parse_day(custom_start), self._parse_day(custom_end)
        return None, None

    @staticmethod
    def _local(dt: datetime, tz: Optional[tzinfo]) -> datetime:
        # Sin tz: zona local del servidor
        return dt.astimezone(tz) if tz else dt.astimezone()

    def filter_completed_orders(
        self,
        orders: List[Order],
        start: Optional[date],
        end: Optional[date],
        tz: Optional[tzinfo] = None
    ) -> List[Order]:
        """
        Pedidos concluidos cuyo día local cae en [start, end].
        """
        result = []
        for order in orders:
            if order.status != self.VALID_STATUS:
                continue
            day = self._local(order.created_at, tz).date()
            if start and day < start:
                continue
            if end and day > end:
                continue
            result.append(order)
        return result

    @profile_function(name="Calcular dashboard")
    def calculate_dashboard(
        self,
        orders: List[Any] = None,
        period: str = 'all',
        custom_start: str = None,
        custom_end: str = None,
        now: datetime = None,
        tz: tzinfo = None
    ) -> Dict[str, Any]:
        """
        Calcula todos los indicadores del dashboard.

        Args:
            orders: Pedidos (Order o dict); por defecto usa el loader
            period: 'today', 'week', 'month', 'custom' o 'all'
            custom_start: Inicio para 'custom' (YYYY-MM-DD)
            custom_end: Fin para 'custom' (YYYY-MM-DD)
            now: Momento de referencia (por defecto ahora)
            tz: Zona horaria del usuario (por defecto la del servidor)

        Returns:
            Dict con:
            - revenue, profit, order_count, average_ticket
            - payment_methods: {método: cantidad}
            - weekday_revenue: [{'day', 'revenue'}] domingo → sábado
            - top_products: [{'name', 'quantity'}] top 5
            - product_profit: [{'name', 'profit', 'bar'}]
        """
        if orders is None:
            orders = self._load_orders()
        orders = [o if isinstance(o, Order) else Order.from_dict(o) for o in orders]

        if period not in PERIODS:
            period = 'all'

        reference = self._local(now or datetime.now().astimezone(), tz)
        start, end = self._get_date_range(period, reference.date(), custom_start, custom_end)
        completed = self.filter_completed_orders(orders, start, end, tz)

        revenue = 0.0
        profit = 0.0
        payment_counts: Dict[str, int] = defaultdict(int)
        weekday_totals = [0.0] * 7
        product_qty: Dict[str, int] = {}
        product_profit: Dict[str, float] = {}

        for order in completed:
            revenue += order.total

            method = order.payment_method or DEFAULT_PAYMENT_METHOD
            payment_counts[method.value] += 1

            # weekday(): lunes=0 ... domingo=6  →  domingo=0 ... sábado=6
            weekday = (self._local(order.created_at, tz).weekday() + 1) % 7
            weekday_totals[weekday] += order.total

            for line in order.items:
                name = line.menu_item.name
                profit += line.line_profit
                product_qty[name] = product_qty.get(name, 0) + line.quantity
                product_profit[name] = product_profit.get(name, 0.0) + line.line_profit

        order_count = len(completed)
        average_ticket = revenue / order_count if order_count else 0.0

        # sorted() es estable: los empates quedan en orden de aparición
        top_products = sorted(product_qty.items(), key=lambda kv: kv[1], reverse=True)
        ranked_profit = sorted(product_profit.items(), key=lambda kv: kv[1], reverse=True)
        max_profit = ranked_profit[0][1] if ranked_profit else 0.0

        return {
            'period': period,
            'start': start.isoformat() if start else None,
            'end': end.isoformat() if end else None,
            'revenue': round(revenue, 2),
            'profit': round(profit, 2),
            'order_count': order_count,
            'average_ticket': round(average_ticket, 2),
            'payment_methods': dict(payment_counts),
            'weekday_revenue': [
                {'day': WEEKDAY_LABELS[i], 'revenue': round(weekday_totals[i], 2)}
                for i in range(7)
            ],
            'top_products': [
                {'name': name, 'quantity': qty}
                for name, qty in top_products[:TOP_PRODUCTS_LIMIT]
            ],
            'product_profit': [
                {
                    'name': name,
                    'profit': round(value, 2),
                    'bar': round(max(0.0, value / max_profit * 100), 2) if max_profit > 0 else 0,
                }
                for name, value in ranked_profit
            ],
        }
