from datetime import datetime, timedelta, timezone

import pytest

from snackbar_pos.models import MenuItem, Order, OrderItem, OrderStatus, PaymentMethod
from snackbar_pos.services import StatsService


NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


def _order(total, status=OrderStatus.COMPLETED, created_at=NOW, lines=None, method=None, order_id=None):
    items = [
        OrderItem(MenuItem(id=name, name=name, price=price, cost_price=cost), qty)
        for name, price, cost, qty in (lines or [])
    ]
    return Order(
        id=order_id or f'o{total}{created_at.isoformat()}',
        items=items,
        total=total,
        status=status,
        created_at=created_at,
        payment_method=method,
    )


def _dashboard(orders, **kwargs):
    kwargs.setdefault('now', NOW)
    kwargs.setdefault('tz', timezone.utc)
    return StatsService().calculate_dashboard(orders, **kwargs)


def test_only_completed_orders_count():
    orders = [
        _order(18.50),
        _order(22.00),
        _order(12.00, status=OrderStatus.PENDING),
        _order(30.00, status=OrderStatus.PREPARING),
    ]

    stats = _dashboard(orders)

    assert stats['revenue'] == pytest.approx(40.50)
    assert stats['order_count'] == 2
    assert stats['average_ticket'] == pytest.approx(20.25)


def test_empty_dashboard():
    stats = _dashboard([])
    assert stats['revenue'] == 0
    assert stats['order_count'] == 0
    assert stats['average_ticket'] == 0
    assert stats['top_products'] == []
    assert stats['product_profit'] == []
    assert [b['revenue'] for b in stats['weekday_revenue']] == [0] * 7


def test_profit_uses_order_snapshots():
    orders = [
        _order(40.0, lines=[('X-Burger', 20.0, 8.0, 2)]),
        _order(7.0, lines=[('Suco', 7.0, 2.5, 1)]),
        _order(99.0, status=OrderStatus.PENDING, lines=[('X-Burger', 20.0, 8.0, 5)]),
    ]
    stats = _dashboard(orders)
    assert stats['profit'] == pytest.approx(24.0 + 4.5)


def test_payment_methods_default_to_pix():
    orders = [
        _order(10.0, method=PaymentMethod.MONEY),
        _order(11.0),
        _order(12.0, method=PaymentMethod.PIX),
        _order(13.0, method=PaymentMethod.CREDIT),
    ]
    assert _dashboard(orders)['payment_methods'] == {'money': 1, 'pix': 2, 'credit': 1}


def test_weekday_buckets_start_on_sunday():
    sunday = datetime(2026, 1, 4, 15, 0, tzinfo=timezone.utc)
    saturday = datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc)
    orders = [_order(10.0, created_at=sunday), _order(5.0, created_at=saturday)]

    buckets = _dashboard(orders)['weekday_revenue']

    assert [b['day'] for b in buckets] == ['Dom', 'Seg', 'Ter', 'Qua', 'Qui', 'Sex', 'Sáb']
    assert buckets[0]['revenue'] == pytest.approx(10.0)
    assert buckets[6]['revenue'] == pytest.approx(5.0)
    assert sum(b['revenue'] for b in buckets[1:6]) == 0


def test_top_products_ties_keep_first_appearance():
    orders = [
        _order(1.0, lines=[('Pastel', 1, 0, 2), ('Coxinha', 1, 0, 2)]),
        _order(2.0, lines=[('Suco', 1, 0, 3), ('Empada', 1, 0, 2)]),
        _order(3.0, lines=[('Bolo', 1, 0, 1), ('Café', 1, 0, 1)]),
    ]

    top = _dashboard(orders)['top_products']

    assert [p['name'] for p in top] == ['Suco', 'Pastel', 'Coxinha', 'Empada', 'Bolo']
    assert top[0]['quantity'] == 3


def test_product_profit_bars_are_relative_to_max():
    orders = [_order(1.0, lines=[('A', 10.0, 5.0, 2), ('B', 10.0, 5.0, 1), ('C', 1.0, 2.0, 1)])]

    ranking = _dashboard(orders)['product_profit']

    assert [(p['name'], p['profit'], p['bar']) for p in ranking] == [
        ('A', 10.0, 100.0),
        ('B', 5.0, 50.0),
        ('C', -1.0, 0.0),
    ]


def test_product_profit_bars_zero_when_no_positive_profit():
    orders = [_order(1.0, lines=[('A', 1.0, 1.0, 1)])]
    assert _dashboard(orders)['product_profit'][0]['bar'] == 0


# ==============================================================================
# PERÍODOS
# ==============================================================================

@pytest.fixture
def dated_orders():
    return [
        _order(1.0, created_at=NOW),                                  # hoy
        _order(2.0, created_at=NOW - timedelta(days=5)),              # 2026-01-05
        _order(4.0, created_at=NOW - timedelta(days=21)),             # 2025-12-20
        _order(8.0, created_at=NOW - timedelta(days=70)),             # 2025-11-01
    ]


@pytest.mark.parametrize('period, revenue', [
    ('today', 1.0),
    ('week', 3.0),
    ('month', 7.0),
    ('all', 15.0),
    ('whatever', 15.0),
])
def test_period_filters(dated_orders, period, revenue):
    stats = _dashboard(dated_orders, period=period)
    assert stats['revenue'] == pytest.approx(revenue)


def test_week_includes_seventh_day_back(dated_orders):
    orders = [_order(16.0, created_at=NOW - timedelta(days=6)), _order(32.0, created_at=NOW - timedelta(days=7))]
    assert _dashboard(orders, period='week')['revenue'] == pytest.approx(16.0)


def test_custom_period_bounds_are_inclusive_and_optional(dated_orders):
    assert _dashboard(
        dated_orders, period='custom', custom_start='2026-01-05', custom_end='2026-01-05'
    )['revenue'] == pytest.approx(2.0)
    assert _dashboard(
        dated_orders, period='custom', custom_start='2025-12-20'
    )['revenue'] == pytest.approx(7.0)
    assert _dashboard(
        dated_orders, period='custom', custom_end='2025-12-31'
    )['revenue'] == pytest.approx(12.0)
    assert _dashboard(
        dated_orders, period='custom', custom_start='ontem', custom_end='2026-01-05'
    )['revenue'] == pytest.approx(14.0)


def test_day_boundaries_follow_caller_timezone():
    sao_paulo = timezone(timedelta(hours=-3))
    late_night = datetime(2026, 1, 10, 2, 0, tzinfo=timezone.utc)  # 09/01 23:00 em -03:00
    orders = [_order(5.0, created_at=late_night)]

    assert _dashboard(orders, period='today', tz=timezone.utc)['revenue'] == pytest.approx(5.0)
    assert _dashboard(orders, period='today', tz=sao_paulo)['revenue'] == 0
    assert _dashboard(orders, tz=sao_paulo)['weekday_revenue'][5]['revenue'] == pytest.approx(5.0)


def test_accepts_order_dicts_and_loader():
    orders = [_order(18.5), _order(3.0, status=OrderStatus.PENDING)]
    stats = StatsService(lambda: [o.to_dict() for o in orders]).calculate_dashboard(now=NOW)
    assert stats['revenue'] == pytest.approx(18.5)
    assert stats['order_count'] == 1
