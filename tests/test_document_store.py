import json
import logging

import pytest

from snackbar_pos.repositories import DocumentStore, PersistenceError, WriteOp


@pytest.fixture
def store(tmp_path):
    return DocumentStore(str(tmp_path / 'store.json'))


def _on_disk(store):
    with open(store.file_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def test_new_store_has_empty_collections(store):
    data = _on_disk(store)
    assert data == {'menu_items': {}, 'orders': {}, 'stock_log': {}, 'transactions': {}}


def test_create_and_query_with_filter_and_order(store):
    store.atomic_write([
        WriteOp.create('menu_items', 'a', {'name': 'Coxinha', 'visible': True}),
        WriteOp.create('menu_items', 'b', {'name': 'Bauru', 'visible': False}),
        WriteOp.create('menu_items', 'c', {'name': 'Pastel', 'visible': True}),
    ])

    visible = store.query('menu_items', where={'visible': True}, order_by='name')
    assert [d['name'] for d in visible] == ['Coxinha', 'Pastel']
    assert all('id' in d for d in visible)

    desc = store.query('menu_items', order_by='-name')
    assert [d['name'] for d in desc] == ['Pastel', 'Coxinha', 'Bauru']


def test_query_returns_copies(store):
    store.atomic_write([WriteOp.create('orders', 'o1', {'status': 'pending'})])
    doc = store.query('orders')[0]
    doc['status'] = 'completed'
    assert store.get('orders', 'o1')['status'] == 'pending'


def test_atomic_write_is_all_or_nothing(store):
    store.atomic_write([WriteOp.create('menu_items', 'a', {'name': 'Suco', 'stock': 5})])

    with pytest.raises(PersistenceError):
        store.atomic_write([
            WriteOp.increment('menu_items', 'a', {'stock': -2}, floor=0),
            WriteOp.update('menu_items', 'missing', {'stock': 1}),
        ])

    assert store.get('menu_items', 'a')['stock'] == 5
    assert _on_disk(store)['menu_items']['a']['stock'] == 5


def test_increment_floor_rejects_negative_stock(store):
    store.atomic_write([WriteOp.create('menu_items', 'a', {'stock': 2})])

    with pytest.raises(PersistenceError):
        store.atomic_write([WriteOp.increment('menu_items', 'a', {'stock': -3}, floor=0)])

    store.atomic_write([WriteOp.increment('menu_items', 'a', {'stock': -2}, floor=0)])
    assert store.get('menu_items', 'a')['stock'] == 0


def test_update_expect_detects_concurrent_change(store):
    store.atomic_write([WriteOp.create('orders', 'o1', {'status': 'pending'})])
    store.atomic_write([WriteOp.update('orders', 'o1', {'status': 'preparing'}, expect={'status': 'pending'})])

    with pytest.raises(PersistenceError):
        store.atomic_write([
            WriteOp.update('orders', 'o1', {'status': 'preparing'}, expect={'status': 'pending'})
        ])


def test_create_duplicate_and_delete_missing_fail(store):
    store.atomic_write([WriteOp.create('transactions', 't1', {'amount': 10})])
    with pytest.raises(PersistenceError):
        store.atomic_write([WriteOp.create('transactions', 't1', {'amount': 20})])
    with pytest.raises(PersistenceError):
        store.atomic_write([WriteOp.delete('transactions', 'nope')])

    store.atomic_write([WriteOp.delete('transactions', 't1')])
    assert store.get('transactions', 't1') is None


def test_disk_failure_leaves_memory_untouched(store, monkeypatch):
    store.atomic_write([WriteOp.create('menu_items', 'a', {'stock': 5})])

    def broken_write(data):
        raise PersistenceError('disco lleno')

    monkeypatch.setattr(store, '_write_raw', broken_write)
    with pytest.raises(PersistenceError):
        store.atomic_write([WriteOp.increment('menu_items', 'a', {'stock': -1})])

    assert store.get('menu_items', 'a')['stock'] == 5


def test_data_survives_reopen(tmp_path):
    path = str(tmp_path / 'store.json')
    DocumentStore(path).atomic_write([WriteOp.create('orders', 'o1', {'total': 12.5})])
    assert DocumentStore(path).get('orders', 'o1')['total'] == 12.5


def test_corrupt_file_is_set_aside_before_starting_empty(tmp_path, caplog, monkeypatch):
    # caplog escucha en el root; setup_logging pudo cortar la propagación
    monkeypatch.setattr(logging.getLogger('snackbar_pos'), 'propagate', True)
    path = tmp_path / 'store.json'
    path.write_text('{not json', encoding='utf-8')

    with caplog.at_level('ERROR'):
        store = DocumentStore(str(path))
    assert store.query('orders') == []

    backups = list(tmp_path.glob('store.json.corrupt-*'))
    assert len(backups) == 1
    assert backups[0].read_text(encoding='utf-8') == '{not json'
    assert 'corrupto' in caplog.text

    store.atomic_write([WriteOp.create('orders', 'o1', {'created_at': '1'})])
    assert backups[0].read_text(encoding='utf-8') == '{not json'
    assert list(_on_disk(store)['orders']) == ['o1']


def test_subscribe_delivers_initial_and_full_snapshots(store):
    store.atomic_write([WriteOp.create('orders', 'o1', {'created_at': '1'})])
    received = []
    sub = store.subscribe('orders', received.append, order_by='created_at')

    assert [d['id'] for d in received[-1]] == ['o1']

    store.atomic_write([WriteOp.create('orders', 'o2', {'created_at': '2'})])
    assert [d['id'] for d in received[-1]] == ['o1', 'o2']

    # Escrituras en otra colección no notifican
    count = len(received)
    store.atomic_write([WriteOp.create('menu_items', 'a', {'name': 'Suco'})])
    assert len(received) == count

    sub.unsubscribe()
    store.atomic_write([WriteOp.create('orders', 'o3', {'created_at': '3'})])
    assert len(received) == count


def test_failed_write_does_not_notify(store):
    received = []
    store.subscribe('orders', received.append)
    with pytest.raises(PersistenceError):
        store.atomic_write([WriteOp.delete('orders', 'missing')])
    assert len(received) == 1


def test_failing_subscriber_does_not_affect_others(store):
    def broken(snapshot):
        raise RuntimeError('boom')

    received = []
    store.subscribe('orders', broken)
    store.subscribe('orders', received.append)

    store.atomic_write([WriteOp.create('orders', 'o1', {})])
    assert [d['id'] for d in received[-1]] == ['o1']
    assert store.get('orders', 'o1') is not None


def test_close_stops_all_subscriptions(store):
    received = []
    store.subscribe('menu_items', received.append)
    store.close()
    store.atomic_write([WriteOp.create('menu_items', 'a', {})])
    assert len(received) == 1
