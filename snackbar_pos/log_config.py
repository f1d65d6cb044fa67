# ==============================================================================
# CONFIGURACIÓN DE LOGGING DE LA APLICACIÓN
# ==============================================================================
# Logging estándar de Python para los módulos (logging.getLogger(__name__)).
# Formato texto por defecto; JSON con LOG_JSON=1 para agregadores de logs.
#
#   LOG_LEVEL  → DEBUG, INFO (defecto), WARNING, ERROR
#   LOG_JSON   → 1 para una línea JSON por evento
#
# Los tiempos de rutas y funciones van aparte (performance_logger.py).
# ==============================================================================

import json
import logging
import os

from flask import has_request_context, request


TEXT_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


class JsonFormatter(logging.Formatter):
    """Una línea JSON por registro, con la ruta HTTP cuando hay request."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'time': self.formatTime(record, '%Y-%m-%dT%H:%M:%S'),
        }
        if has_request_context():
            data['method'] = request.method
            data['path'] = request.path
            data['user'] = request.headers.get('X-User', 'sistema')
        if record.exc_info:
            data['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


def setup_logging(level: str = None, json_format: bool = None) -> logging.Logger:
    """
    Configura el logger del paquete snackbar_pos (una sola vez por handler)
    y corta la propagación al logger raíz para no duplicar líneas.

    Args:
        level: Nivel de log (por defecto LOG_LEVEL o INFO)
        json_format: Formato JSON (por defecto LOG_JSON == '1')

    Returns:
        Logger raíz del paquete
    """
    lvl = getattr(logging, (level or os.getenv('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    if json_format is None:
        json_format = os.getenv('LOG_JSON', '0') == '1'

    logger = logging.getLogger('snackbar_pos')
    for handler in list(logger.handlers):
        if getattr(handler, '_snackbar_handler', False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    handler._snackbar_handler = True
    logger.addHandler(handler)
    logger.setLevel(lvl)
    # Con handler propio no se reenvía al root (gunicorn ya tiene el suyo)
    logger.propagate = False
    return logger
