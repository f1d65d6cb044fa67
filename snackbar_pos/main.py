# ==============================================================================
# API HTTP DE LA LANCHONETE
# ==============================================================================
# Rutas JSON sobre los servicios. Las rutas NO tienen lógica de negocio:
# leen el request, llaman a un servicio y traducen el resultado a HTTP.
#
# Todas las respuestas tienen la forma {'ok': bool, ...}.
# ==============================================================================

import logging
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import Blueprint, Flask, current_app, request
from werkzeug.exceptions import HTTPException

# Sistema de profiling interno
from snackbar_pos.performance_logger import init_profiling

# Logging de la aplicación
from snackbar_pos.log_config import setup_logging

# ═══════════════════════════════════════════════════════════════════════════
# CONTENEDOR DE DEPENDENCIAS - Servicios y Repositorios
# ═══════════════════════════════════════════════════════════════════════════
# La lógica de negocio vive en services/, no en las rutas.
from snackbar_pos.app_container import AppContainer, get_container
from snackbar_pos.models import ErrorCode
from snackbar_pos.services import InventoryService
from snackbar_pos.services.common import error_result


logger = logging.getLogger(__name__)

BASE = os.path.dirname(os.path.abspath(__file__))

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════
# SECRET_KEY: En producción DEBE definirse via variable de entorno
# Comando: export SNACKBAR_SECRET_KEY="tu_clave_secreta_muy_larga_y_aleatoria"
_DEFAULT_SECRET = "snackbar_pos_dev_secret_key_change_in_production"

DEFAULT_USER = 'sistema'

# Código de error → status HTTP
ERROR_STATUS = {
    ErrorCode.NOT_FOUND.value: 404,
    ErrorCode.INSUFFICIENT_STOCK.value: 409,
    ErrorCode.INVALID_TRANSITION.value: 409,
    ErrorCode.EMPTY_ORDER.value: 400,
    ErrorCode.INVALID_QUANTITY.value: 400,
    ErrorCode.VALIDATION_ERROR.value: 400,
    ErrorCode.PERSISTENCE_FAILURE.value: 503,
}


def load_config():
    """Lee la configuración desde variables de entorno."""
    return {
        'DATA_DIR': os.environ.get('SNACKBAR_DATA_DIR', os.path.join(BASE, 'data')),
        'SECRET_KEY': os.environ.get('SNACKBAR_SECRET_KEY'),
        'TIMEZONE': os.environ.get('SNACKBAR_TIMEZONE') or None,
        'ENABLE_PROFILING': os.environ.get('ENABLE_PROFILING', '1') != '0',
        'LOG_DIR': os.environ.get('SNACKBAR_LOG_DIR', os.path.join(BASE, 'logs')),
        'LOG_LEVEL': os.environ.get('LOG_LEVEL', 'INFO'),
        'LOG_JSON': os.environ.get('LOG_JSON', '0') == '1',
        'PRODUCTION_MODE': os.environ.get('FLASK_DEBUG', '0') != '1',
    }


# ═══════════════════════════════════════════════════════════════════════════
# HELPERS DE RUTAS
# ═══════════════════════════════════════════════════════════════════════════

api = Blueprint('api', __name__)


def _container() -> AppContainer:
    return current_app.extensions['snackbar_pos']


def _current_user() -> str:
    """Usuario informado por el proxy de identidad (solo para auditoría)."""
    return (request.headers.get('X-User') or '').strip() or DEFAULT_USER


def _json_body() -> dict:
    """Cuerpo JSON del request; un cuerpo inválido cuenta como vacío."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _respond(result, success_status=200):
    """Traduce un resultado de servicio a respuesta HTTP."""
    if result.get('ok'):
        return result, success_status
    return result, ERROR_STATUS.get(result.get('error_code'), 400)


def _resolve_timezone(name):
    """
    Zona horaria para el dashboard.

    Returns:
        (tzinfo o None, error); None usa la hora local del servidor
    """
    if not name:
        return None, None
    try:
        return ZoneInfo(name), None
    except (ZoneInfoNotFoundError, ValueError):
        return None, f'Zona horaria inválida: {name}'


# ═══════════════════════════════════════════════════════════════════════════
# CARDÁPIO
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/api/menu', methods=['GET'])
def api_list_menu():
    items = _container().inventory_service.list_items()
    return {'ok': True, 'items': [i.to_dict() for i in items]}


@api.route('/api/menu/available', methods=['GET'])
def api_available_menu():
    """Ítems que se pueden pedir: visibles y con stock (desde la caché en vivo)."""
    items = InventoryService.available_items(_container().live_state.menu_items)
    return {'ok': True, 'items': [i.to_dict() for i in items]}


@api.route('/api/menu', methods=['POST'])
def api_create_item():
    data = _json_body()
    result = _container().inventory_service.create_item(
        name=data.get('name'),
        description=data.get('description', ''),
        price=data.get('price', 0),
        stock=data.get('stock', 0),
        cost_price=data.get('cost_price', 0),
        visible=data.get('visible', True),
        user=_current_user()
    )
    return _respond(result, 201)


@api.route('/api/menu/<item_id>', methods=['PUT'])
def api_update_item(item_id):
    result = _container().inventory_service.update_item(item_id, _json_body(), _current_user())
    return _respond(result)


@api.route('/api/menu/<item_id>', methods=['DELETE'])
def api_delete_item(item_id):
    result = _container().inventory_service.delete_item(item_id, _current_user())
    return _respond(result)


@api.route('/api/menu/<item_id>/visibility', methods=['POST'])
def api_set_visibility(item_id):
    data = _json_body()
    result = _container().inventory_service.set_visibility(
        item_id, data.get('visible'), _current_user()
    )
    return _respond(result)


@api.route('/api/menu/<item_id>/replenish', methods=['POST'])
def api_replenish(item_id):
    """Entrada de stock: {"quantity": 10, "batch_cost": 4.0}"""
    data = _json_body()
    result = _container().inventory_service.replenish_stock(
        item_id,
        data.get('quantity'),
        data.get('batch_cost'),
        _current_user()
    )
    return _respond(result)


@api.route('/api/menu/<item_id>/stock-log', methods=['GET'])
def api_stock_log(item_id):
    container = _container()
    if container.inventory_service.get_item(item_id) is None:
        return _respond(error_result(ErrorCode.NOT_FOUND, 'Ítem no encontrado'))
    entries = container.inventory_service.get_stock_log(item_id)
    return {'ok': True, 'entries': [e.to_dict() for e in entries]}


# ═══════════════════════════════════════════════════════════════════════════
# PEDIDOS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/api/orders', methods=['GET'])
def api_list_orders():
    orders = _container().order_service.list_orders(request.args.get('status'))
    return {'ok': True, 'orders': [o.to_dict() for o in orders]}


@api.route('/api/orders', methods=['POST'])
def api_create_order():
    """
    Crea un pedido.

    Body:
        {
            "items": [{"item_id": "...", "quantity": 2}],
            "observation": "sem cebola",
            "is_paid": false,
            "payment_method": "pix"
        }
    """
    data = _json_body()
    lines = data.get('items') or []
    if not isinstance(lines, list):
        return _respond(error_result(ErrorCode.VALIDATION_ERROR, 'items debe ser una lista'))

    result = _container().order_service.create_order(
        lines,
        observation=data.get('observation'),
        is_paid=data.get('is_paid', False),
        payment_method=data.get('payment_method'),
        user=_current_user()
    )
    return _respond(result, 201)


@api.route('/api/orders/<order_id>', methods=['GET'])
def api_get_order(order_id):
    order = _container().order_service.get_order(order_id)
    if order is None:
        return _respond(error_result(ErrorCode.NOT_FOUND, 'Pedido no encontrado'))
    return {'ok': True, 'order': order.to_dict()}


@api.route('/api/orders/<order_id>/status', methods=['POST'])
def api_change_status(order_id):
    data = _json_body()
    result = _container().order_service.change_status(
        order_id, data.get('status'), _current_user()
    )
    return _respond(result)


@api.route('/api/orders/<order_id>/payment', methods=['POST'])
def api_record_payment(order_id):
    data = _json_body()
    result = _container().order_service.record_payment(
        order_id,
        data.get('is_paid'),
        data.get('payment_method'),
        _current_user()
    )
    return _respond(result)


@api.route('/api/kitchen', methods=['GET'])
def api_kitchen():
    """Tablero de cocina desde la caché en vivo."""
    container = _container()
    board = container.order_service.kitchen_board(container.live_state.orders)
    return {'ok': True, 'board': board}


# ═══════════════════════════════════════════════════════════════════════════
# GESTIÓN
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/api/dashboard', methods=['GET'])
def api_dashboard():
    """
    Dashboard: ?period=today|week|month|custom|all&start=YYYY-MM-DD&end=YYYY-MM-DD&tz=...
    """
    tz, error = _resolve_timezone(request.args.get('tz') or current_app.config.get('TIMEZONE'))
    if error:
        return _respond(error_result(ErrorCode.VALIDATION_ERROR, error))

    stats = _container().stats_service.calculate_dashboard(
        period=request.args.get('period', 'all'),
        custom_start=request.args.get('start'),
        custom_end=request.args.get('end'),
        tz=tz
    )
    return {'ok': True, 'stats': stats}


@api.route('/api/transactions', methods=['GET'])
def api_list_transactions():
    transactions = _container().finance_service.list_transactions()
    return {'ok': True, 'transactions': [t.to_dict() for t in transactions]}


@api.route('/api/transactions', methods=['POST'])
def api_add_transaction():
    data = _json_body()
    result = _container().finance_service.add_transaction(
        data.get('description'),
        data.get('amount'),
        data.get('type'),
        data.get('category'),
        _current_user()
    )
    return _respond(result, 201)


@api.route('/api/transactions/<transaction_id>', methods=['DELETE'])
def api_delete_transaction(transaction_id):
    result = _container().finance_service.delete_transaction(transaction_id, _current_user())
    return _respond(result)


@api.route('/api/finance/summary', methods=['GET'])
def api_finance_summary():
    container = _container()
    summary = container.finance_service.cash_summary(container.live_state.orders)
    return {'ok': True, 'summary': summary}


@api.route('/api/audit', methods=['GET'])
def api_audit():
    """Registro de actividad: ?q=texto&type=PEDIDO&related_id=...&limit=200"""
    try:
        limit = int(request.args.get('limit', 200))
    except ValueError:
        limit = 200
    logs = _container().audit_service.search(
        query=request.args.get('q', ''),
        log_type=request.args.get('type') or None,
        related_id=request.args.get('related_id') or None,
        limit=max(1, limit)
    )
    return {'ok': True, 'logs': logs}


# ═══════════════════════════════════════════════════════════════════════════
# MENÚ PÚBLICO (sin autenticación)
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/public/menu', methods=['GET'])
def public_menu():
    items = _container().inventory_service.get_public_menu()
    return {
        'ok': True,
        'items': [
            {'id': i.id, 'name': i.name, 'description': i.description, 'price': i.price}
            for i in items
        ],
    }


# ═══════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APLICACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def _handle_http_exception(e: HTTPException):
    """404/405/... de Werkzeug también como JSON."""
    return {'ok': False, 'error': e.description, 'error_code': e.name.upper().replace(' ', '_')}, e.code


def create_app(base_path: str = None, config: dict = None) -> Flask:
    """
    Construye la aplicación Flask.

    Args:
        base_path: Carpeta de datos (por defecto SNACKBAR_DATA_DIR)
        config: Valores que sobrescriben la configuración del entorno

    Returns:
        App lista para servir
    """
    settings = load_config()
    settings.update(config or {})
    if base_path:
        settings['DATA_DIR'] = base_path

    setup_logging(settings['LOG_LEVEL'], settings['LOG_JSON'])

    app = Flask(__name__)
    app.config.update(settings)

    if settings['PRODUCTION_MODE'] and not settings['SECRET_KEY']:
        logger.warning("SNACKBAR_SECRET_KEY no definida; usando clave de desarrollo")
    app.secret_key = settings['SECRET_KEY'] or _DEFAULT_SECRET

    # Un contenedor por carpeta de datos
    container = get_container(settings['DATA_DIR'])
    if container.base_path != settings['DATA_DIR']:
        AppContainer.reset_instance()
        container = get_container(settings['DATA_DIR'])
    app.extensions['snackbar_pos'] = container

    # Arrancar las cachés en vivo antes del primer request
    container.live_state

    # ═══════════════════════════════════════════════════════════════════════
    # INICIALIZAR SISTEMA DE PROFILING
    # ═══════════════════════════════════════════════════════════════════════
    # Mide rendimiento de rutas y funciones. Para desactivar: ENABLE_PROFILING=0
    init_profiling(app)

    app.register_blueprint(api)
    app.register_error_handler(HTTPException, _handle_http_exception)

    logger.info("Lanchonete lista (datos en %s)", settings['DATA_DIR'])
    return app


if __name__ == "__main__":
    # Configuración para desarrollo local y acceso desde red WiFi
    # En producción usar WSGI (gunicorn wsgi:app)
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))

    if not DEBUG:
        print(f"\n{'='*50}")
        print(f"  Servidor iniciado en http://{HOST}:{PORT}")
        print(f"  Acceso local: http://localhost:{PORT}")
        print(f"{'='*50}\n")

    create_app().run(host=HOST, port=PORT, debug=DEBUG)
