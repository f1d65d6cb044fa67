import pytest

from snackbar_pos.app_container import AppContainer
from snackbar_pos.main import create_app


@pytest.fixture(autouse=True)
def reset_container():
    AppContainer.reset_instance()
    yield
    AppContainer.reset_instance()


@pytest.fixture
def container(tmp_path):
    return AppContainer(str(tmp_path / 'data'))


@pytest.fixture
def app(container, tmp_path):
    app = create_app(container.base_path, {
        'TESTING': True,
        'ENABLE_PROFILING': False,
        'LOG_DIR': str(tmp_path / 'logs'),
        'TIMEZONE': None,
    })
    return app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def add_item(container):
    """Crea ítems del menú con valores por defecto razonables."""
    def _add(name='X-Burger', price=20.0, stock=10, cost_price=8.0, visible=True, description=''):
        result = container.inventory_service.create_item(
            name=name,
            description=description,
            price=price,
            stock=stock,
            cost_price=cost_price,
            visible=visible,
            user='tester'
        )
        assert result['ok'], result
        return result['item']
    return _add
