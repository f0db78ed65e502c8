"""
In-process ledger store guarded by an explicit lock.

Used for local runs (STORE_BACKEND=memory) and the test-suite. Every
operation, including a whole transaction, holds the lock while it checks
preconditions and writes, so concurrent callers observe the same
all-or-nothing behaviour as DynamoDB transactions.
"""
import copy
from threading import RLock
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .store import Check, Delete, LedgerStore, Put, TableSchema, TransactionCancelled, Update

CONDITION_FAILED = 'ConditionalCheckFailed'


class MemoryLedgerStore(LedgerStore):
    """Dict-backed store; tables keep insertion order so equal sort keys stay stable."""

    def __init__(self, schemas: Optional[Dict[str, TableSchema]] = None):
        super().__init__(schemas)
        self._lock = RLock()
        self._tables: Dict[str, Dict[Any, Dict[str, Any]]] = {name: {} for name in self.schemas}

    def _key_value(self, table: str, key: Dict[str, Any]):
        return key[self.schemas[table].key]

    def _current(self, table: str, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._tables[table].get(self._key_value(table, key))

    def _check(self, op) -> bool:
        """True when the operation's preconditions hold against current state."""
        if isinstance(op, Put):
            return self._current(op.table, op.item) is None
        current = self._current(op.table, op.key)
        if current is None:
            return False
        return all(check.holds(current) for check in op.conditions)

    def _apply(self, op) -> Optional[Dict[str, Any]]:
        table = self._tables[op.table]
        if isinstance(op, Put):
            table[self._key_value(op.table, op.item)] = copy.deepcopy(op.item)
            return None
        key_value = self._key_value(op.table, op.key)
        if isinstance(op, Delete):
            del table[key_value]
            return None
        item = table[key_value]
        for attr, delta in op.increments.items():
            item[attr] = item.get(attr, 0) + delta
        item.update(copy.deepcopy(op.sets))
        return copy.deepcopy(item)

    def get(self, table: str, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._current(table, key))

    def update(self, op: Update) -> Dict[str, Any]:
        with self._lock:
            if not self._check(op):
                raise TransactionCancelled([CONDITION_FAILED])
            return self._apply(op)

    def transact(self, ops: Sequence[Any]) -> None:
        with self._lock:
            reasons: List[Optional[str]] = [None if self._check(op) else CONDITION_FAILED for op in ops]
            if any(reasons):
                raise TransactionCancelled(reasons)
            for op in ops:
                self._apply(op)

    def query(self, table: str, index: str, value: Any, descending: bool = False) -> Iterator[Dict[str, Any]]:
        hash_attr, sort_attr = self.schemas[table].indexes[index]
        with self._lock:
            matches = [copy.deepcopy(item) for item in self._tables[table].values()
                       if item.get(hash_attr) == value]
        matches.sort(key=lambda item: item.get(sort_attr, ''), reverse=descending)
        return iter(matches)

    def scan(self, table: str, conditions: Sequence[Check] = ()) -> Iterator[Dict[str, Any]]:
        with self._lock:
            matches = [copy.deepcopy(item) for item in self._tables[table].values()
                       if all(check.holds(item) for check in conditions)]
        return iter(matches)
