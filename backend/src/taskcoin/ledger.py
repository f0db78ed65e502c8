"""
Wires every ledger component to one store.

Handlers share a single Ledger per Lambda container, created on first use.
"""
from .accounts import AccountService
from .config import config
from .escrow import TaskEscrowEngine
from .logging import logger
from .memory_store import MemoryLedgerStore
from .notifications import NotificationEmitter
from .payments import PaymentService
from .store import LedgerStore
from .submissions import SubmissionStateMachine
from .withdrawals import WithdrawalStateMachine

_ledger = None


class Ledger:
    """The coin ledger: accounts, task escrow, submissions, withdrawals, payments and notifications."""

    def __init__(self, store: LedgerStore, gateway=None):
        if gateway is None:
            from .gateway import StripeGateway
            gateway = StripeGateway()

        self.store = store
        self.notifications = NotificationEmitter(store)
        self.accounts = AccountService(store)
        self.tasks = TaskEscrowEngine(store, self.accounts, self.notifications)
        self.submissions = SubmissionStateMachine(store, self.accounts, self.tasks, self.notifications)
        self.withdrawals = WithdrawalStateMachine(store, self.accounts, self.notifications)
        self.payments = PaymentService(store, self.accounts, self.notifications, gateway)


def build_store() -> LedgerStore:
    if config.STORE_BACKEND == 'memory':
        logger.info("Using in-memory ledger store")
        return MemoryLedgerStore()
    from .dynamo import DynamoLedgerStore
    return DynamoLedgerStore()


def get_ledger() -> Ledger:
    """Get or create the process-wide Ledger."""
    global _ledger
    if _ledger is None:
        _ledger = Ledger(build_store())
    return _ledger


def set_ledger(ledger: Ledger) -> None:
    """Replace the process-wide Ledger (local runs and tests)."""
    global _ledger
    _ledger = ledger
