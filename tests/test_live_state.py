import threading

import pytest

from snackbar_pos.models import AuditLog, AuditType, Order
from snackbar_pos.repositories import AuditRepository
from snackbar_pos.services import LiveState, NotificationService


def test_live_state_replaces_caches_on_every_write(container, add_item):
    live = LiveState(container.menu_repo, container.order_repo)
    assert live.menu_items == [] and live.orders == []

    item = add_item('Bolo', stock=3)
    assert [i.name for i in live.menu_items] == ['Bolo']

    container.order_service.create_order([(item['id'], 2)])
    assert len(live.orders) == 1
    assert live.menu_items[0].stock == 1

    container.inventory_service.delete_item(item['id'])
    assert live.menu_items == []
    assert len(live.orders) == 1


def test_live_state_close_freezes_last_snapshot(container, add_item):
    live = LiveState(container.menu_repo, container.order_repo)
    add_item('Bolo')
    live.close()
    add_item('Torta')
    assert [i.name for i in live.menu_items] == ['Bolo']


def test_notifications_unsubscribe_and_unknown_event():
    notifications = NotificationService()
    received = []
    unsubscribe = notifications.subscribe('order_created', received.append)

    assert notifications.publish('order_created', {'n': 1}) == 1
    unsubscribe()
    assert notifications.publish('order_created', {'n': 2}) == 0
    assert received == [{'n': 1}]

    with pytest.raises(ValueError):
        notifications.subscribe('order_deleted', received.append)


def test_audit_repository_caps_and_searches(tmp_path, monkeypatch):
    repo = AuditRepository(str(tmp_path))
    monkeypatch.setattr(AuditRepository, 'MAX_LOGS', 3)

    for n in range(5):
        repo.log(AuditLog(AuditType.CAJA, 'caixa', f'mov {n}', related_id=f't{n}'))

    logs = repo.load()
    assert [log['message'] for log in logs] == ['mov 4', 'mov 3', 'mov 2']
    assert repo.search_logs(related_id='t3')[0]['message'] == 'mov 3'
    assert repo.search_logs(query='MOV 2')[0]['related_id'] == 't2'
    assert repo.search_logs(log_type='PEDIDO') == []


def test_live_state_keeps_newest_snapshot_when_deliveries_race(container, monkeypatch):
    store = container.store
    live = LiveState(container.menu_repo, container.order_repo)
    first_taken = threading.Event()
    release_first = threading.Event()
    original_snapshot = store._snapshot

    def held_snapshot(subscription):
        result = original_snapshot(subscription)
        if threading.current_thread().name == 'first-writer':
            first_taken.set()
            release_first.wait(5)
        return result

    monkeypatch.setattr(store, '_snapshot', held_snapshot)

    def write(order_id):
        order = Order(id=order_id, total=10.0)
        store.atomic_write([container.order_repo.create_op(order.id, order.to_dict())])

    writer = threading.Thread(target=write, args=('o1',), name='first-writer')
    writer.start()
    assert first_taken.wait(5)

    write('o2')
    assert len(live.orders) == 2

    release_first.set()
    writer.join(5)

    assert len(container.order_repo.load()) == 2
    assert sorted(o.id for o in live.orders) == ['o1', 'o2']
