"""
Back office de la lanchonete: pedidos, cocina, cardápio con costo promedio,
flujo de caja, dashboard de gestión y menú público.

Uso:
    from snackbar_pos.main import create_app
    app = create_app()
"""

__version__ = '1.0.0'
