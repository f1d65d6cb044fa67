# ==============================================================================
# PROFILING DE RUTAS Y FUNCIONES
# ==============================================================================
# Mide cuánto tarda cada request y cada función marcada con @profile_function.
# Escribe logs legibles (no JSON) pensados para que el dueño los lea:
#
#   logs/performance.log     → todas las rutas
#   logs/slow_routes.log     → rutas por encima del umbral
#   logs/slow_functions.log  → funciones por encima del umbral
#
# ACTIVAR/DESACTIVAR: ENABLE_PROFILING=0 en el entorno o
#                     app.config['ENABLE_PROFILING'] = False
# ==============================================================================

import os
import threading
import time
from collections import defaultdict
from datetime import datetime
from functools import wraps

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_PROFILING = os.environ.get('ENABLE_PROFILING', '1') != '0'

# Umbrales en milisegundos
SLOW_MS = 300
VERY_SLOW_MS = 700

LOGS_DIR = os.environ.get(
    'SNACKBAR_LOG_DIR',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')
)

PERFORMANCE_LOG = 'performance.log'
SLOW_ROUTES_LOG = 'slow_routes.log'
SLOW_FUNCTIONS_LOG = 'slow_functions.log'

SEPARATOR = '─' * 40

# Regla de Flask → acción legible
ROUTE_NAMES = {
    'GET /api/menu': 'Ver cardápio',
    'GET /api/menu/available': 'Ver ítems para pedido',
    'POST /api/menu': 'Crear ítem',
    'PUT /api/menu/<item_id>': 'Editar ítem',
    'DELETE /api/menu/<item_id>': 'Eliminar ítem',
    'POST /api/menu/<item_id>/visibility': 'Mostrar/ocultar ítem',
    'POST /api/menu/<item_id>/replenish': 'Reponer stock',
    'GET /api/menu/<item_id>/stock-log': 'Ver historial de stock',
    'GET /api/orders': 'Ver pedidos',
    'POST /api/orders': 'Crear pedido',
    'GET /api/orders/<order_id>': 'Ver pedido',
    'POST /api/orders/<order_id>/status': 'Cambiar estado de pedido',
    'POST /api/orders/<order_id>/payment': 'Registrar pago',
    'GET /api/kitchen': 'Ver cocina',
    'GET /api/dashboard': 'Ver dashboard',
    'GET /api/transactions': 'Ver flujo de caja',
    'POST /api/transactions': 'Registrar movimiento de caja',
    'DELETE /api/transactions/<transaction_id>': 'Eliminar movimiento de caja',
    'GET /api/finance/summary': 'Ver saldo de caja',
    'GET /api/audit': 'Ver registro de actividad',
    'GET /public/menu': 'Ver menú público',
}

# {función: {'calls', 'total_ms', 'max_ms'}}
_function_stats = defaultdict(lambda: {'calls': 0, 'total_ms': 0.0, 'max_ms': 0.0})
_stats_lock = threading.Lock()
_file_lock = threading.Lock()


# ═══════════════════════════════════════════════════════════════════════════
# ESCRITURA DE LOGS
# ═══════════════════════════════════════════════════════════════════════════

def configure_logs_dir(path):
    """Cambia la carpeta de los logs de rendimiento."""
    global LOGS_DIR
    LOGS_DIR = path


def _now():
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _append(filename, text):
    try:
        with _file_lock:
            os.makedirs(LOGS_DIR, exist_ok=True)
            with open(os.path.join(LOGS_DIR, filename), 'a', encoding='utf-8') as f:
                f.write(text)
    except OSError:
        pass  # Un disco lleno no debe tumbar un pedido


def action_name(method, rule):
    """'POST /api/orders' → 'Crear pedido' (o la ruta tal cual si no hay nombre)."""
    key = f"{method} {rule}"
    return ROUTE_NAMES.get(key, key)


def record_request(method, path, rule, elapsed_ms, user=None):
    """
    Registra un request en performance.log y, si fue lento, en slow_routes.log.

    Args:
        method: Método HTTP
        path: Ruta pedida (/api/orders/ab12/status)
        rule: Regla de Flask (/api/orders/<order_id>/status)
        elapsed_ms: Duración en milisegundos
        user: Valor del header X-User
    """
    action = action_name(method, rule)
    who = user or 'anónimo'

    _append(PERFORMANCE_LOG, (
        f"\n[{_now()}] {action}\n"
        f"  Usuario: {who}\n"
        f"  Ruta:    {method} {path}\n"
        f"  Tiempo:  {elapsed_ms:.0f} ms\n"
    ))

    if elapsed_ms < SLOW_MS:
        return

    level = 'CRITICAL' if elapsed_ms >= VERY_SLOW_MS else 'WARNING'
    limit = VERY_SLOW_MS if level == 'CRITICAL' else SLOW_MS
    _append(SLOW_ROUTES_LOG, (
        f"\n[{level}] {_now()}\n{SEPARATOR}\n"
        f"Ruta lenta: {action}\n"
        f"Usuario: {who}\n"
        f"Detalle: {method} {path}\n"
        f"Tiempo: {elapsed_ms:.0f} ms (umbral: {limit} ms)\n{SEPARATOR}\n"
    ))


# ═══════════════════════════════════════════════════════════════════════════
# HOOKS DE FLASK
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app):
    """
    Registra los hooks before/after request que miden cada ruta.

    Respeta app.config['ENABLE_PROFILING'] y app.config['LOG_DIR'].
    """
    if not app.config.get('ENABLE_PROFILING', ENABLE_PROFILING):
        return

    if app.config.get('LOG_DIR'):
        configure_logs_dir(app.config['LOG_DIR'])

    from flask import g, request

    @app.before_request
    def _start_timer():
        g.profiling_start = time.perf_counter()

    @app.after_request
    def _stop_timer(response):
        start = getattr(g, 'profiling_start', None)
        if start is None or request.path.startswith('/static'):
            return response

        rule = str(request.url_rule) if request.url_rule else request.path
        record_request(
            request.method,
            request.path,
            rule,
            (time.perf_counter() - start) * 1000,
            request.headers.get('X-User')
        )
        return response


# ═══════════════════════════════════════════════════════════════════════════
# DECORADOR PARA FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Mide las llamadas a una función de negocio.

    Uso:
        @profile_function
        def calcular():
            ...

        @profile_function(name="Crear pedido")
        def create_order(self, ...):
            ...
    """
    def decorator(fn):
        if not ENABLE_PROFILING:
            return fn

        label = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                _record_call(label, (time.perf_counter() - start) * 1000)

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def _record_call(label, elapsed_ms):
    with _stats_lock:
        stats = _function_stats[label]
        stats['calls'] += 1
        stats['total_ms'] += elapsed_ms
        stats['max_ms'] = max(stats['max_ms'], elapsed_ms)

    if elapsed_ms >= SLOW_MS:
        severity = 'CRÍTICO' if elapsed_ms >= VERY_SLOW_MS else 'LENTO'
        _append(SLOW_FUNCTIONS_LOG, (
            f"\n[{severity}] {_now()}\nFunción: {label}\n"
            f"Tiempo: {elapsed_ms:.0f} ms\n{SEPARATOR}\n"
        ))


def get_function_stats():
    """
    Returns:
        {nombre: {'calls', 'avg_ms', 'max_ms'}}
    """
    with _stats_lock:
        return {
            label: {
                'calls': s['calls'],
                'avg_ms': round(s['total_ms'] / s['calls'], 2) if s['calls'] else 0,
                'max_ms': round(s['max_ms'], 2),
            }
            for label, s in _function_stats.items()
        }


def reset_stats():
    with _stats_lock:
        _function_stats.clear()
