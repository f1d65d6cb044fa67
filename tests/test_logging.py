import json
import logging

from flask import Flask

from snackbar_pos.log_config import JsonFormatter, setup_logging


def test_setup_logging_does_not_duplicate_through_root():
    logger = setup_logging('DEBUG', json_format=False)
    setup_logging('INFO', json_format=False)

    own = [h for h in logger.handlers if getattr(h, '_snackbar_handler', False)]
    assert len(own) == 1
    assert logger.propagate is False
    assert logger.level == logging.INFO


def test_json_formatter_includes_request():
    app = Flask(__name__)
    record = logging.LogRecord('snackbar_pos.test', logging.WARNING, __file__, 1, 'sin stock', None, None)

    with app.test_request_context('/api/orders', method='POST', headers={'X-User': 'caixa'}):
        data = json.loads(JsonFormatter().format(record))

    assert data['level'] == 'WARNING'
    assert data['message'] == 'sin stock'
    assert data['path'] == '/api/orders'
    assert data['user'] == 'caixa'
