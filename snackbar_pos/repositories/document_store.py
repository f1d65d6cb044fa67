# ==============================================================================
# ALMACÉN DE DOCUMENTOS - Colecciones JSON con escritura atómica y suscripciones
# ==============================================================================
# Todas las colecciones del negocio viven en un solo archivo store.json:
#
#   {
#       "menu_items":   {"<id>": {...}, ...},
#       "orders":       {"<id>": {...}, ...},
#       "stock_log":    {"<id>": {...}, ...},
#       "transactions": {"<id>": {...}, ...}
#   }
#
# Operaciones que ofrece a los servicios:
#   - query(...)        → snapshot puntual de una colección
#   - atomic_write(...) → lista de operaciones, se aplican TODAS o NINGUNA
#   - subscribe(...)    → recibe el snapshot completo en cada cambio
#
# ESCRITURA ATÓMICA:
#   1. Se copia el estado actual
#   2. Se aplican las operaciones sobre la copia (cualquier error aborta)
#   3. La copia se escribe a disco (temp + os.replace)
#   4. Solo entonces la copia pasa a ser el estado en memoria
# ==============================================================================

import copy
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from snackbar_pos.repositories.base import BaseRepository, PersistenceError


logger = logging.getLogger(__name__)

# Colecciones conocidas (se crean vacías al iniciar)
COLLECTIONS = ('menu_items', 'orders', 'stock_log', 'transactions')

OP_CREATE = 'create'
OP_UPDATE = 'update'
OP_INCREMENT = 'increment'
OP_DELETE = 'delete'


@dataclass
class WriteOp:
    """
    Operación individual dentro de una escritura atómica.

    Attributes:
        kind: 'create', 'update', 'increment' o 'delete'
        collection: Colección destino
        doc_id: ID del documento
        data: Documento (create), campos (update) o deltas (increment)
        expect: Valores que los campos actuales deben tener (precondición)
        floor: Valor mínimo que un campo incrementado puede alcanzar
    """
    kind: str
    collection: str
    doc_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    expect: Optional[Dict[str, Any]] = None
    floor: Optional[float] = None

    @classmethod
    def create(cls, collection: str, doc_id: str, data: Dict[str, Any]) -> 'WriteOp':
        return cls(OP_CREATE, collection, doc_id, data)

    @classmethod
    def update(
        cls,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        expect: Dict[str, Any] = None
    ) -> 'WriteOp':
        return cls(OP_UPDATE, collection, doc_id, data, expect=expect)

    @classmethod
    def increment(
        cls,
        collection: str,
        doc_id: str,
        deltas: Dict[str, float],
        floor: float = None
    ) -> 'WriteOp':
        return cls(OP_INCREMENT, collection, doc_id, deltas, floor=floor)

    @classmethod
    def delete(cls, collection: str, doc_id: str) -> 'WriteOp':
        return cls(OP_DELETE, collection, doc_id)


class Subscription:
    """Suscripción activa a una colección. Se termina con unsubscribe()."""

    def __init__(
        self,
        store: 'DocumentStore',
        collection: str,
        callback: Callable[[List[Dict[str, Any]]], None],
        where: Dict[str, Any] = None,
        order_by: str = None
    ):
        self.store = store
        self.collection = collection
        self.callback = callback
        self.where = where
        self.order_by = order_by
        self.active = True
        # Versión del último snapshot entregado; nunca retrocede
        self.last_version = -1
        self._delivery_lock = threading.RLock()

    def unsubscribe(self) -> None:
        self.active = False
        self.store._remove_subscription(self)


class DocumentStore(BaseRepository):
    """
    Almacén de documentos respaldado por un archivo JSON.

    Un solo lock serializa las escrituras: dos escrituras atómicas
    concurrentes nunca se intercalan parcialmente. Las notificaciones a
    suscriptores se entregan después de liberar el lock.

    Cada escritura incrementa una versión. Un snapshot más viejo que el
    último entregado a una suscripción se descarta, así dos escrituras
    concurrentes no pueden dejar al observador con el estado anterior.
    """

    def __init__(self, file_path: str):
        """
        Args:
            file_path: Ruta al archivo store.json
        """
        super().__init__(file_path)
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = self._load()
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)
        self._subs_lock = threading.Lock()
        self._version = 0

    def _empty_data(self) -> Dict[str, Dict[str, Any]]:
        return {name: {} for name in COLLECTIONS}

    def _load(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Lee el archivo y asegura que cada colección sea un diccionario."""
        raw = self._read_raw()
        if not isinstance(raw, dict):
            raw = {}
        data = self._empty_data()
        for name, docs in raw.items():
            if isinstance(docs, dict):
                data[name] = docs
        return data

    # =========================================================================
    # LECTURAS
    # =========================================================================

    def query(
        self,
        collection: str,
        where: Dict[str, Any] = None,
        order_by: str = None
    ) -> List[Dict[str, Any]]:
        """
        Snapshot puntual de una colección.

        Args:
            collection: Nombre de la colección
            where: Filtro de igualdad {campo: valor}
            order_by: Campo de orden; prefijo '-' para descendente

        Returns:
            Copias de los documentos (cada uno con su 'id')
        """
        with self._file_lock:
            docs = [copy.deepcopy(d) for d in self._data.get(collection, {}).values()]
        return self._select(docs, where, order_by)

    @staticmethod
    def _select(
        docs: List[Dict[str, Any]],
        where: Dict[str, Any] = None,
        order_by: str = None
    ) -> List[Dict[str, Any]]:
        if where:
            docs = [
                d for d in docs
                if all(d.get(k) == v for k, v in where.items())
            ]

        if order_by:
            reverse = order_by.startswith('-')
            key = order_by.lstrip('-')
            # Documentos sin el campo van al final (en orden ascendente)
            docs.sort(key=lambda d: (d.get(key) is None, d.get(key)), reverse=reverse)

        return docs

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene una copia de un documento o None si no existe."""
        with self._file_lock:
            doc = self._data.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    # =========================================================================
    # ESCRITURA ATÓMICA
    # =========================================================================

    def atomic_write(self, ops: Iterable[WriteOp]) -> None:
        """
        Aplica una lista de operaciones como una unidad: todas o ninguna.

        Args:
            ops: Operaciones a aplicar en orden

        Raises:
            PersistenceError: Si alguna operación no aplica o falla el disco.
                              En ese caso no queda ningún cambio.
        """
        ops = list(ops)
        if not ops:
            return

        with self._file_lock:
            staged = copy.deepcopy(self._data)
            for op in ops:
                self._apply_op(staged, op)
            self._write_raw(staged)
            self._data = staged
            self._version += 1

        touched = []
        for op in ops:
            if op.collection not in touched:
                touched.append(op.collection)

        logger.debug("Escritura atómica: %d operaciones en %s", len(ops), ', '.join(touched))
        self._notify(touched)

    def _apply_op(self, staged: Dict[str, Dict[str, Any]], op: WriteOp) -> None:
        """Aplica una operación sobre la copia en preparación."""
        docs = staged.setdefault(op.collection, {})
        current = docs.get(op.doc_id)

        if op.kind == OP_CREATE:
            if current is not None:
                raise PersistenceError(f"{op.collection}/{op.doc_id} ya existe")
            new_doc = copy.deepcopy(op.data)
            new_doc['id'] = op.doc_id
            docs[op.doc_id] = new_doc
            return

        if current is None:
            raise PersistenceError(f"{op.collection}/{op.doc_id} no existe")

        self._check_expect(current, op)

        if op.kind == OP_UPDATE:
            current.update(copy.deepcopy(op.data))
            current['id'] = op.doc_id

        elif op.kind == OP_INCREMENT:
            for field_name, delta in op.data.items():
                value = (current.get(field_name) or 0) + delta
                if op.floor is not None and value < op.floor:
                    raise PersistenceError(
                        f"{op.collection}/{op.doc_id}: {field_name} quedaría en {value} "
                        f"(mínimo {op.floor})"
                    )
                current[field_name] = value

        elif op.kind == OP_DELETE:
            del docs[op.doc_id]

        else:
            raise PersistenceError(f"Operación desconocida: {op.kind}")

    @staticmethod
    def _check_expect(current: Dict[str, Any], op: WriteOp) -> None:
        for field_name, expected in (op.expect or {}).items():
            if current.get(field_name) != expected:
                raise PersistenceError(
                    f"{op.collection}/{op.doc_id}: {field_name} cambió "
                    f"(esperado {expected!r}, actual {current.get(field_name)!r})"
                )

    # =========================================================================
    # SUSCRIPCIONES
    # =========================================================================

    def subscribe(
        self,
        collection: str,
        callback: Callable[[List[Dict[str, Any]]], None],
        where: Dict[str, Any] = None,
        order_by: str = None
    ) -> Subscription:
        """
        Registra un observador de una colección.
        El callback recibe el snapshot completo de inmediato y luego
        después de cada escritura que toque la colección.

        Args:
            collection: Colección a observar
            callback: Función que recibe la lista de documentos
            where: Filtro de igualdad opcional
            order_by: Orden opcional (prefijo '-' descendente)

        Returns:
            Suscripción (llamar unsubscribe() para terminarla)
        """
        subscription = Subscription(self, collection, callback, where, order_by)
        with self._subs_lock:
            self._subscriptions[collection].append(subscription)
        self._deliver(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        with self._subs_lock:
            subs = self._subscriptions.get(subscription.collection, [])
            if subscription in subs:
                subs.remove(subscription)

    def _notify(self, collections: Iterable[str]) -> None:
        for collection in collections:
            with self._subs_lock:
                subs = list(self._subscriptions.get(collection, []))
            for subscription in subs:
                self._deliver(subscription)

    def _snapshot(self, subscription: Subscription):
        """
        Returns:
            (versión, documentos) leídos bajo el mismo lock
        """
        with self._file_lock:
            version = self._version
            docs = [
                copy.deepcopy(d)
                for d in self._data.get(subscription.collection, {}).values()
            ]
        return version, self._select(docs, subscription.where, subscription.order_by)

    def _deliver(self, subscription: Subscription) -> None:
        """Entrega un snapshot; un observador que falla no afecta a los demás."""
        if not subscription.active:
            return
        version, snapshot = self._snapshot(subscription)

        with subscription._delivery_lock:
            if not subscription.active:
                return
            if version < subscription.last_version:
                logger.debug(
                    "Snapshot v%d de '%s' descartado (ya se entregó v%d)",
                    version, subscription.collection, subscription.last_version
                )
                return
            subscription.last_version = version
            try:
                subscription.callback(snapshot)
            except Exception:
                logger.exception(
                    "Fallo un observador de '%s'; se continúa con los demás",
                    subscription.collection
                )

    def close(self) -> None:
        """Termina todas las suscripciones."""
        with self._subs_lock:
            for subs in self._subscriptions.values():
                for subscription in subs:
                    subscription.active = False
            self._subscriptions.clear()


class CollectionRepository:
    """
    Repositorio base para una colección del almacén.
    Las subclases definen COLLECTION y convierten documentos a entidades.
    """

    COLLECTION = ''

    def __init__(self, store: DocumentStore):
        """
        Args:
            store: Almacén de documentos compartido
        """
        self.store = store

    def get_all(self, where: Dict[str, Any] = None, order_by: str = None) -> List[Dict[str, Any]]:
        """Obtiene todos los documentos de la colección."""
        return self.store.query(self.COLLECTION, where, order_by)

    def get_by_id(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene un documento por ID o None."""
        return self.store.get(self.COLLECTION, doc_id)

    def subscribe(self, callback, where: Dict[str, Any] = None, order_by: str = None) -> Subscription:
        """Suscribe un observador a esta colección."""
        return self.store.subscribe(self.COLLECTION, callback, where, order_by)

    # Constructores de operaciones (los servicios las agrupan en atomic_write)

    def create_op(self, doc_id: str, data: Dict[str, Any]) -> WriteOp:
        return WriteOp.create(self.COLLECTION, doc_id, data)

    def update_op(self, doc_id: str, data: Dict[str, Any], expect: Dict[str, Any] = None) -> WriteOp:
        return WriteOp.update(self.COLLECTION, doc_id, data, expect)

    def delete_op(self, doc_id: str) -> WriteOp:
        return WriteOp.delete(self.COLLECTION, doc_id)
