"""
Task Escrow Engine.

Owns task creation/closure and the ``requiredWorkers`` capacity counter.
Posting a task debits the buyer ``requiredWorkers × payableAmount`` in the
same transaction that inserts it; closing a task credits the unspent escrow
(``requiredWorkers × payableAmount``) in the same transaction that deletes
it, conditioned on the counter not having moved since it was read.
"""
import uuid
from typing import Any, Dict, Iterator, List, Optional

from .accounts import AccountService
from .config import config
from .errors import AlreadyExists, Forbidden, InsufficientFunds, MissingField, NotFound, StoreUnavailable
from .logging import logger
from .models import Role
from .notifications import NotificationEmitter, utc_now
from .store import Delete, LedgerStore, Put, TransactionCancelled, Update, equals, greater_than
from .utils import parse_amount

EDITABLE_FIELDS = ('title', 'detail', 'submissionInfo')


class OpenTasks:
    """
    Tasks still accepting submissions, earliest completion date first.

    Nothing is read until iteration starts, and every iteration re-reads the
    store, so the sequence can be restarted to see fresh capacity.
    """

    def __init__(self, store: LedgerStore, table: str):
        self.store = store
        self.table = table

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        tasks = list(self.store.scan(self.table, [greater_than('requiredWorkers', 0)]))
        # createdAt breaks ties between equal deadlines
        tasks.sort(key=lambda t: (t.get('completionDate', ''), t.get('createdAt', '')))
        return iter(tasks)


class TaskEscrowEngine:

    def __init__(self, store: LedgerStore, accounts: AccountService, notifications: NotificationEmitter):
        self.store = store
        self.accounts = accounts
        self.notifications = notifications
        self.table = config.TASKS_TABLE

    def _key(self, task_id: str) -> Dict[str, Any]:
        return self.store.key_for(self.table, task_id)

    def get_task(self, task_id: str) -> Dict[str, Any]:
        task = self.store.get(self.table, self._key(task_id))
        if not task:
            raise NotFound("Task not found")
        return task

    def create_task(self, buyer_email: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Post a task and move its total payable into escrow.

        Args:
            buyer_email: Email of the posting buyer
            fields: title, detail, requiredWorkers, payableAmount, completionDate,
                  submissionInfo, imageUrl

        Returns:
            The stored task.

        Raises:
            MissingField, InvalidInput, NotFound, InsufficientFunds
        """
        missing = [name for name in ('title', 'requiredWorkers', 'payableAmount', 'completionDate')
                   if fields.get(name) in (None, '')]
        if missing:
            raise MissingField(*missing)

        required_workers = parse_amount(fields['requiredWorkers'], 'requiredWorkers')
        payable_amount = parse_amount(fields['payableAmount'], 'payableAmount')
        total_payable = required_workers * payable_amount

        buyer = self.accounts.get_user(buyer_email)
        if total_payable > buyer['coin']:
            raise InsufficientFunds("Not enough coins")

        task = {
            'taskId': str(uuid.uuid4()),
            'title': fields['title'],
            'detail': fields.get('detail', ''),
            'requiredWorkers': required_workers,
            'payableAmount': payable_amount,
            'totalPayable': total_payable,
            'completionDate': str(fields['completionDate']),
            'submissionInfo': fields.get('submissionInfo', ''),
            'imageUrl': fields.get('imageUrl', ''),
            'buyerEmail': buyer_email,
            'buyerName': buyer.get('name', ''),
            'createdAt': utc_now(),
        }

        try:
            self.store.transact([
                self.accounts.debit_op(buyer_email, total_payable),
                Put(self.table, task),
            ])
        except TransactionCancelled as e:
            if e.failed(0):
                # Balance moved (or the buyer vanished) between the read and the debit
                self.accounts.get_user(buyer_email)
                raise InsufficientFunds("Not enough coins")
            raise AlreadyExists("Task id collision")

        logger.info(f"Task {task['taskId']} posted by {buyer_email}, {total_payable} coins escrowed")
        return task

    def update_task(self, task_id: str, caller, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Edit title, detail or submissionInfo. Escrow fields are never touched."""
        sets = {name: changes[name] for name in EDITABLE_FIELDS if changes.get(name) is not None}
        if not sets:
            raise MissingField(*EDITABLE_FIELDS)

        task = self.get_task(task_id)
        conditions = []
        if caller.role != Role.ADMIN:
            if task['buyerEmail'] != caller.email:
                raise Forbidden("Not the owner of this task")
            conditions.append(equals('buyerEmail', caller.email))

        try:
            return self.store.update(Update(self.table, self._key(task_id), sets=sets, conditions=conditions))
        except TransactionCancelled:
            raise NotFound("Task not found")

    def close_task(self, task_id: str, caller=None) -> Dict[str, Any]:
        """
        Delete a task and refund the buyer its unconsumed escrow.

        The refund and the deletion commit in one transaction which only
        succeeds while ``requiredWorkers`` still equals the value the refund
        was computed from; a concurrent submission forces a re-read.

        Returns:
            {'taskId': ..., 'refund': coins credited back}
        """
        for attempt in range(1, config.STORE_MAX_RETRIES + 1):
            task = self.get_task(task_id)
            if caller is not None and caller.role != Role.ADMIN and task['buyerEmail'] != caller.email:
                raise Forbidden("Not the owner of this task")

            required_workers = task['requiredWorkers']
            refund = required_workers * task['payableAmount']
            delete = Delete(self.table, self._key(task_id), conditions=[equals('requiredWorkers', required_workers)])
            ops = [delete]
            if refund > 0:
                ops.append(self.accounts.credit_op(task['buyerEmail'], refund))

            try:
                self.store.transact(ops)
            except TransactionCancelled as e:
                if e.failed(1) and not e.failed(0):
                    logger.warning(f"Buyer {task['buyerEmail']} no longer exists, closing task {task_id} without refund")
                    refund = 0
                    try:
                        self.store.transact([delete])
                    except TransactionCancelled:
                        continue
                else:
                    logger.info(f"Task {task_id} changed while closing, retrying (attempt {attempt})")
                    continue

            logger.info(f"Task {task_id} closed, refunded {refund} coins to {task['buyerEmail']}")
            if refund > 0:
                self.notifications.emit(
                    task['buyerEmail'],
                    f"Task \"{task['title']}\" was removed and {refund} coins were refunded",
                    '/dashboard/my-tasks'
                )
            return {'taskId': task_id, 'refund': refund}

        raise StoreUnavailable("Task kept changing while closing")

    def list_open_tasks(self) -> OpenTasks:
        return OpenTasks(self.store, self.table)

    def list_by_buyer(self, buyer_email: str) -> List[Dict[str, Any]]:
        """All tasks of a buyer, latest completion date first."""
        return list(self.store.query(self.table, 'BuyerIndex', buyer_email, descending=True))

    def claim_slot_op(self, task: Dict[str, Any]) -> Update:
        """
        Take one unit of capacity, valid only while capacity remains and the
        payable amount is still the one captured from ``task``.
        """
        return Update(self.table, self._key(task['taskId']), increments={'requiredWorkers': -1},
                      conditions=[greater_than('requiredWorkers', 0),
                                  equals('payableAmount', task['payableAmount'])])

    def release_slot_op(self, task_id: str) -> Update:
        """Give one unit of capacity back to an existing task."""
        return Update(self.table, self._key(task_id), increments={'requiredWorkers': 1})

    def find_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get(self.table, self._key(task_id))
