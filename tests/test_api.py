import pytest


def _create_item(client, **data):
    payload = {'name': 'X-Burger', 'price': 20.0, 'stock': 10, 'cost_price': 8.0}
    payload.update(data)
    r = client.post('/api/menu', json=payload, headers={'X-User': 'gerente'})
    assert r.status_code == 201, r.get_json()
    return r.get_json()['item']


def _create_order(client, lines, **extra):
    body = {'items': [{'item_id': i, 'quantity': q} for i, q in lines]}
    body.update(extra)
    return client.post('/api/orders', json=body, headers={'X-User': 'caixa'})


# ==============================================================================
# CARDÁPIO
# ==============================================================================

def test_menu_crud(client):
    item = _create_item(client, name='Pastel', price=9.0)

    r = client.get('/api/menu')
    assert [i['name'] for i in r.get_json()['items']] == ['Pastel']

    r = client.put(f"/api/menu/{item['id']}", json=dict(item, price=10.0))
    assert r.status_code == 200
    assert r.get_json()['item']['price'] == 10.0

    r = client.post(f"/api/menu/{item['id']}/visibility", json={'visible': False})
    assert r.get_json()['item']['visible'] is False

    r = client.delete(f"/api/menu/{item['id']}")
    assert r.status_code == 200
    assert client.get('/api/menu').get_json()['items'] == []


def test_menu_validation_and_not_found(client):
    r = client.post('/api/menu', json={'name': '', 'price': 1})
    assert r.status_code == 400
    assert r.get_json()['error_code'] == 'VALIDATION_ERROR'

    r = client.put('/api/menu/nope', json={'name': 'X'})
    assert r.status_code == 404


def test_replenish_and_stock_log(client):
    item = _create_item(client, stock=10, cost_price=2.0)

    r = client.post(f"/api/menu/{item['id']}/replenish", json={'quantity': 10, 'batch_cost': 4.0})
    assert r.status_code == 200
    assert r.get_json()['item']['stock'] == 20
    assert r.get_json()['item']['cost_price'] == pytest.approx(3.0)

    r = client.post(f"/api/menu/{item['id']}/replenish", json={'quantity': 0, 'batch_cost': 4.0})
    assert r.status_code == 400
    assert r.get_json()['error_code'] == 'INVALID_QUANTITY'

    r = client.get(f"/api/menu/{item['id']}/stock-log")
    entries = r.get_json()['entries']
    assert len(entries) == 1
    assert entries[0]['new_average_cost'] == pytest.approx(3.0)

    assert client.get('/api/menu/nope/stock-log').status_code == 404


def test_available_menu_reflects_live_stock(client):
    item = _create_item(client, name='Coxinha', stock=1)
    _create_item(client, name='Oculto', visible=False)

    names = [i['name'] for i in client.get('/api/menu/available').get_json()['items']]
    assert names == ['Coxinha']

    assert _create_order(client, [(item['id'], 1)]).status_code == 201
    assert client.get('/api/menu/available').get_json()['items'] == []


def test_public_menu(client):
    _create_item(client, name='Bauru', price=14.0)
    _create_item(client, name='Secreto', visible=False)

    r = client.get('/public/menu')
    assert r.status_code == 200
    items = r.get_json()['items']
    assert [i['name'] for i in items] == ['Bauru']
    assert set(items[0]) == {'id', 'name', 'description', 'price'}


# ==============================================================================
# PEDIDOS
# ==============================================================================

def test_order_flow(client):
    burger = _create_item(client, name='X-Burger', price=18.5, stock=5)
    juice = _create_item(client, name='Suco', price=22.0, stock=5)

    r = _create_order(client, [(burger['id'], 1)], payment_method='pix', is_paid=True)
    assert r.status_code == 201
    first = r.get_json()['order']

    second = _create_order(client, [(juice['id'], 1)]).get_json()['order']

    for status in ('preparing', 'completed'):
        for order in (first, second):
            r = client.post(f"/api/orders/{order['id']}/status", json={'status': status})
            assert r.status_code == 200, r.get_json()

    r = client.post(f"/api/orders/{second['id']}/payment", json={'is_paid': True, 'payment_method': 'money'})
    assert r.get_json()['order']['payment_method'] == 'money'

    stats = client.get('/api/dashboard?period=all').get_json()['stats']
    assert stats['revenue'] == pytest.approx(40.5)
    assert stats['order_count'] == 2
    assert stats['average_ticket'] == pytest.approx(20.25)
    assert stats['payment_methods'] == {'pix': 1, 'money': 1}

    r = client.get(f"/api/orders/{first['id']}")
    assert r.get_json()['order']['status'] == 'completed'


def test_order_errors_map_to_http_status(client):
    item = _create_item(client, stock=1)

    r = _create_order(client, [(item['id'], 2)])
    assert r.status_code == 409
    assert r.get_json()['error_code'] == 'INSUFFICIENT_STOCK'

    r = _create_order(client, [])
    assert r.status_code == 400
    assert r.get_json()['error_code'] == 'EMPTY_ORDER'

    r = _create_order(client, [(item['id'], 0)])
    assert r.status_code == 400
    assert r.get_json()['error_code'] == 'INVALID_QUANTITY'

    r = _create_order(client, [('nope', 1)])
    assert r.status_code == 404

    order = _create_order(client, [(item['id'], 1)]).get_json()['order']
    r = client.post(f"/api/orders/{order['id']}/status", json={'status': 'completed'})
    assert r.status_code == 409
    assert r.get_json()['error_code'] == 'INVALID_TRANSITION'

    assert client.get('/api/orders/nope').status_code == 404


@pytest.mark.parametrize('flag', ['false', '0', 1, None])
def test_is_paid_must_be_boolean(client, flag):
    item = _create_item(client, stock=3)

    r = _create_order(client, [(item['id'], 1)], is_paid=flag)
    assert r.status_code == 400
    assert r.get_json()['error_code'] == 'VALIDATION_ERROR'
    assert client.get('/api/orders').get_json()['orders'] == []

    r = client.get('/api/menu').get_json()['items'][0]
    assert r['stock'] == 3


def test_malformed_body_counts_as_empty(client):
    r = client.post('/api/orders', data='{nope', content_type='application/json')
    assert r.status_code == 400
    assert r.get_json()['error_code'] == 'EMPTY_ORDER'


def test_kitchen_board(client):
    item = _create_item(client, stock=10)
    a = _create_order(client, [(item['id'], 1)]).get_json()['order']
    b = _create_order(client, [(item['id'], 2)]).get_json()['order']
    client.post(f"/api/orders/{b['id']}/status", json={'status': 'preparing'})

    board = client.get('/api/kitchen').get_json()['board']
    assert [o['id'] for o in board['pending']] == [a['id']]
    assert [o['id'] for o in board['preparing']] == [b['id']]
    assert board['preparing'][0]['short_id'] == b['id'][-4:]


def test_list_orders_filter(client):
    item = _create_item(client, stock=10)
    order = _create_order(client, [(item['id'], 1)]).get_json()['order']
    _create_order(client, [(item['id'], 1)])
    client.post(f"/api/orders/{order['id']}/status", json={'status': 'preparing'})

    r = client.get('/api/orders?status=preparing')
    assert [o['id'] for o in r.get_json()['orders']] == [order['id']]
    assert len(client.get('/api/orders').get_json()['orders']) == 2


# ==============================================================================
# GESTIÓN
# ==============================================================================

def test_dashboard_periods_and_timezone(client):
    r = client.get('/api/dashboard?period=custom&start=2026-01-01&end=2026-01-31')
    stats = r.get_json()['stats']
    assert stats['start'] == '2026-01-01'
    assert stats['end'] == '2026-01-31'

    r = client.get('/api/dashboard?period=nonsense')
    assert r.get_json()['stats']['period'] == 'all'

    r = client.get('/api/dashboard?tz=Not/AZone')
    assert r.status_code == 400


def test_cash_flow(client):
    item = _create_item(client, price=50.0, stock=5)
    order = _create_order(client, [(item['id'], 1)]).get_json()['order']
    client.post(f"/api/orders/{order['id']}/status", json={'status': 'preparing'})
    client.post(f"/api/orders/{order['id']}/status", json={'status': 'completed'})

    r = client.post('/api/transactions', json={
        'description': 'Aporte', 'amount': 100, 'type': 'income', 'category': 'Sócios'
    })
    assert r.status_code == 201
    r = client.post('/api/transactions', json={
        'description': 'Gás', 'amount': 30, 'type': 'expense', 'category': 'Insumos'
    })
    expense_id = r.get_json()['transaction']['id']

    r = client.post('/api/transactions', json={'description': 'x', 'amount': -1, 'type': 'income', 'category': 'y'})
    assert r.status_code == 400

    summary = client.get('/api/finance/summary').get_json()['summary']
    assert summary['balance'] == pytest.approx(120.0)

    assert client.delete(f'/api/transactions/{expense_id}').status_code == 200
    assert client.delete(f'/api/transactions/{expense_id}').status_code == 404
    assert len(client.get('/api/transactions').get_json()['transactions']) == 1


def test_audit_records_acting_user(client):
    item = _create_item(client)
    _create_order(client, [(item['id'], 1)])

    logs = client.get('/api/audit?type=PEDIDO').get_json()['logs']
    assert logs[0]['user'] == 'caixa'

    logs = client.get('/api/audit?q=gerente').get_json()['logs']
    assert any(log['type'] == 'PRODUCTO' for log in logs)


def test_unknown_route_is_json(client):
    r = client.get('/api/nothing-here')
    assert r.status_code == 404
    assert r.get_json()['ok'] is False

    r = client.delete('/api/orders')
    assert r.status_code == 405
    assert r.get_json()['ok'] is False
