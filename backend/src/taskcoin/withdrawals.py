"""
Withdrawal State Machine.

pending → approved (terminal). The worker's coins leave the ledger when the
withdrawal is requested; approval only records that the external payout was
made, it never touches the balance again.
"""
import uuid
from typing import Any, Dict, List, Optional

from .accounts import AccountService
from .config import config
from .errors import AlreadyExists, InsufficientFunds, InvalidTransition, MissingField, NotFound
from .logging import logger
from .models import WithdrawalStatus
from .notifications import NotificationEmitter, utc_now
from .store import LedgerStore, Put, TransactionCancelled, Update, equals
from .utils import parse_amount, parse_cash


class WithdrawalStateMachine:

    def __init__(self, store: LedgerStore, accounts: AccountService, notifications: NotificationEmitter):
        self.store = store
        self.accounts = accounts
        self.notifications = notifications
        self.table = config.WITHDRAWALS_TABLE

    def _key(self, withdrawal_id: str) -> Dict[str, Any]:
        return self.store.key_for(self.table, withdrawal_id)

    def get_withdrawal(self, withdrawal_id: str) -> Dict[str, Any]:
        withdrawal = self.store.get(self.table, self._key(withdrawal_id))
        if not withdrawal:
            raise NotFound("Withdrawal not found")
        return withdrawal

    def request(self, worker_email: str, coin_amount: Any, cash_amount: Any, payment_system: Optional[str],
                account_number: Optional[str] = None) -> Dict[str, Any]:
        """
        Request a payout, debiting the coins immediately.

        Raises:
            MissingField: coin amount, cash amount or payment system absent
            NotFound: unknown worker
            InsufficientFunds: more coins than the worker holds
        """
        missing = [name for name, value in (('withdrawalCoin', coin_amount),
                                            ('withdrawalAmount', cash_amount),
                                            ('paymentSystem', payment_system))
                   if value in (None, '')]
        if missing:
            raise MissingField(*missing)

        coins = parse_amount(coin_amount, 'withdrawalCoin')
        cash = parse_cash(cash_amount, 'withdrawalAmount')

        worker = self.accounts.get_user(worker_email)
        if coins > worker['coin']:
            raise InsufficientFunds("Not enough coins")

        withdrawal = {
            'withdrawalId': str(uuid.uuid4()),
            'workerEmail': worker_email,
            'workerName': worker.get('name', ''),
            'withdrawalCoin': coins,
            'withdrawalAmount': cash,
            'paymentSystem': payment_system,
            'accountNumber': account_number or '',
            'status': WithdrawalStatus.PENDING,
            'withdrawDate': utc_now(),
        }

        try:
            self.store.transact([self.accounts.debit_op(worker_email, coins), Put(self.table, withdrawal)])
        except TransactionCancelled as e:
            if e.failed(0):
                self.accounts.get_user(worker_email)
                raise InsufficientFunds("Not enough coins")
            raise AlreadyExists("Withdrawal id collision")

        logger.info(f"Withdrawal {withdrawal['withdrawalId']} requested by {worker_email} for {coins} coins")
        self.notifications.emit_many(
            self.accounts.admin_emails(),
            f"{withdrawal['workerName'] or worker_email} requested a withdrawal of {coins} coins "
            f"(${cash}) via {payment_system}",
            '/dashboard/withdraw-requests'
        )
        return withdrawal

    def approve(self, withdrawal_id: str) -> Dict[str, Any]:
        """Mark a pending withdrawal as paid out. No balance change happens here."""
        try:
            withdrawal = self.store.update(Update(
                self.table,
                self._key(withdrawal_id),
                sets={'status': WithdrawalStatus.APPROVED, 'approvedAt': utc_now()},
                conditions=[equals('status', WithdrawalStatus.PENDING)]
            ))
        except TransactionCancelled:
            current = self.get_withdrawal(withdrawal_id)
            raise InvalidTransition(f"Withdrawal is already {current['status']}")

        logger.info(f"Withdrawal {withdrawal_id} approved for {withdrawal['workerEmail']}")
        self.notifications.emit(
            withdrawal['workerEmail'],
            f"Your withdrawal of {withdrawal['withdrawalCoin']} coins (${withdrawal['withdrawalAmount']}) "
            f"via {withdrawal['paymentSystem']} has been paid",
            '/dashboard/withdrawals'
        )
        return withdrawal

    def list_for_worker(self, worker_email: str) -> List[Dict[str, Any]]:
        """A worker's withdrawals, latest request first."""
        return list(self.store.query(self.table, 'WorkerIndex', worker_email, descending=True))

    def list_pending(self) -> List[Dict[str, Any]]:
        """Admin queue of unpaid withdrawals, oldest first."""
        return list(self.store.query(self.table, 'StatusIndex', WithdrawalStatus.PENDING))
