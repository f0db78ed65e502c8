"""
Ledger store contract.

Services never read-modify-write balances or capacity. They describe each
mutation as an operation carrying its own precondition and hand it to the
store, which applies it atomically (a single conditional update, or an
all-or-nothing transaction of several operations). Concrete stores:
DynamoDB (``taskcoin.dynamo``) and the locked in-memory store
(``taskcoin.memory_store``).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .config import config


@dataclass(frozen=True)
class Check:
    """A single precondition term on one attribute of an item."""
    attr: str
    op: str  # 'exists' | 'not_exists' | '=' | '>' | '>='
    value: Any = None

    def holds(self, item: Optional[Dict[str, Any]]) -> bool:
        present = item is not None and self.attr in item
        if self.op == 'exists':
            return present
        if self.op == 'not_exists':
            return not present
        if not present:
            return False
        current = item[self.attr]
        if self.op == '=':
            return current == self.value
        if self.op == '>':
            return current > self.value
        if self.op == '>=':
            return current >= self.value
        raise ValueError(f"Unknown condition operator: {self.op}")


def exists(attr: str) -> Check:
    return Check(attr, 'exists')


def not_exists(attr: str) -> Check:
    return Check(attr, 'not_exists')


def equals(attr: str, value: Any) -> Check:
    return Check(attr, '=', value)


def greater_than(attr: str, value: Any) -> Check:
    return Check(attr, '>', value)


def at_least(attr: str, value: Any) -> Check:
    return Check(attr, '>=', value)


@dataclass
class Put:
    """Insert a new item; fails if an item with the same key exists."""
    table: str
    item: Dict[str, Any]


@dataclass
class Update:
    """
    Atomically add ``increments`` and assign ``sets`` on an existing item,
    only if every check in ``conditions`` holds.
    """
    table: str
    key: Dict[str, Any]
    increments: Dict[str, int] = field(default_factory=dict)
    sets: Dict[str, Any] = field(default_factory=dict)
    conditions: List[Check] = field(default_factory=list)


@dataclass
class Delete:
    """Remove an existing item, only if every check in ``conditions`` holds."""
    table: str
    key: Dict[str, Any]
    conditions: List[Check] = field(default_factory=list)


@dataclass(frozen=True)
class TableSchema:
    """Primary key attribute and secondary indexes (name → (hash attr, sort attr))."""
    key: str
    indexes: Dict[str, tuple] = field(default_factory=dict)


def table_schemas() -> Dict[str, TableSchema]:
    """Physical table name → schema, as provisioned for DynamoDB."""
    return {
        config.USERS_TABLE: TableSchema('email', {
            'RoleIndex': ('role', 'createdAt'),
        }),
        config.TASKS_TABLE: TableSchema('taskId', {
            'BuyerIndex': ('buyerEmail', 'completionDate'),
        }),
        config.SUBMISSIONS_TABLE: TableSchema('submissionId', {
            'WorkerIndex': ('workerEmail', 'createdAt'),
            'BuyerIndex': ('buyerEmail', 'createdAt'),
        }),
        config.WITHDRAWALS_TABLE: TableSchema('withdrawalId', {
            'WorkerIndex': ('workerEmail', 'withdrawDate'),
            'StatusIndex': ('status', 'withdrawDate'),
        }),
        config.PAYMENTS_TABLE: TableSchema('transactionId', {
            'EmailIndex': ('email', 'createdAt'),
        }),
        config.NOTIFICATIONS_TABLE: TableSchema('notificationId', {
            'RecipientIndex': ('toEmail', 'time'),
        }),
    }


class TransactionCancelled(Exception):
    """
    Raised when a precondition of an operation did not hold.

    ``reasons`` is aligned with the submitted operations: None for an
    operation that was fine, otherwise a code such as
    'ConditionalCheckFailed'.
    """

    def __init__(self, reasons: Sequence[Optional[str]]):
        super().__init__(f"Transaction cancelled: {list(reasons)}")
        self.reasons = list(reasons)

    def failed(self, index: int) -> bool:
        return index < len(self.reasons) and self.reasons[index] is not None


class LedgerStore(ABC):
    """Abstract persistent store for users, tasks, submissions, withdrawals, payments and notifications."""

    def __init__(self, schemas: Optional[Dict[str, TableSchema]] = None):
        self.schemas = schemas or table_schemas()

    def key_for(self, table: str, key_value: Any) -> Dict[str, Any]:
        return {self.schemas[table].key: key_value}

    @abstractmethod
    def get(self, table: str, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Read one item by primary key."""

    @abstractmethod
    def update(self, op: Update) -> Dict[str, Any]:
        """Apply one conditional update atomically and return the updated item."""

    @abstractmethod
    def transact(self, ops: Sequence[Any]) -> None:
        """Apply Put/Update/Delete operations all-or-nothing."""

    @abstractmethod
    def query(self, table: str, index: str, value: Any, descending: bool = False) -> Iterator[Dict[str, Any]]:
        """Items whose index hash attribute equals ``value``, ordered by the index sort attribute."""

    @abstractmethod
    def scan(self, table: str, conditions: Sequence[Check] = ()) -> Iterator[Dict[str, Any]]:
        """All items of a table matching every check, in no particular order."""

    def put(self, table: str, item: Dict[str, Any]) -> None:
        self.transact([Put(table, item)])

    def delete(self, table: str, key: Dict[str, Any]) -> None:
        self.transact([Delete(table, key)])

    def atomic_increment(self, table: str, key: Dict[str, Any], attr: str, delta: int,
                         conditions: Sequence[Check] = ()) -> Dict[str, Any]:
        """Add ``delta`` to one numeric attribute where the preconditions hold."""
        return self.update(Update(table, key, increments={attr: delta}, conditions=list(conditions)))
