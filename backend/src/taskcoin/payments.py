"""
Coin purchases.

A payment confirmed by the gateway becomes an immutable Payment record and a
coin credit, committed together. Payments are keyed by the gateway's
transactionId so a replayed confirmation cannot credit twice.

The purchaser and the number of coins are fixed when the payment intent is
created; a verified confirmation credits what the intent recorded, never what
the confirming request claims.
"""
import uuid
from typing import Any, Dict, List

from .accounts import AccountService
from .config import config
from .errors import AlreadyExists, Forbidden, InvalidInput, MissingField, NotFound
from .logging import logger
from .notifications import NotificationEmitter, utc_now
from .store import LedgerStore, Put, TransactionCancelled
from .utils import parse_amount, parse_cash


class PaymentService:

    def __init__(self, store: LedgerStore, accounts: AccountService, notifications: NotificationEmitter,
                 gateway=None):
        self.store = store
        self.accounts = accounts
        self.notifications = notifications
        self.gateway = gateway
        self.table = config.PAYMENTS_TABLE

    def create_intent(self, email: str, amount: Any, coins: Any) -> Dict[str, Any]:
        """Ask the gateway for a payment intent; returns its client handle and our correlation id."""
        missing = [name for name, value in (('amount', amount), ('coins', coins)) if value in (None, '')]
        if missing:
            raise MissingField(*missing)
        cash = parse_cash(amount)
        coins = parse_amount(coins, 'coins')
        self.accounts.get_user(email)

        correlation_id = str(uuid.uuid4())
        intent = self.gateway.create_payment_intent(cash, correlation_id, email, coins)
        logger.info(f"Payment intent {intent['paymentIntentId']} created for {email} ({coins} coins for {cash})")
        return {**intent, 'correlationId': correlation_id}

    def _verified_coins(self, email: str, coins: Any, transaction_id: str, cash: float) -> int:
        """Coins bought by a gateway-confirmed payment, which must belong to ``email``."""
        metadata = self.gateway.verify_payment(transaction_id, cash)
        if metadata.get('email') != email:
            logger.warning(f"Payment {transaction_id} confirmed by {email} belongs to {metadata.get('email')}")
            raise Forbidden("Payment belongs to another user")

        purchased = parse_amount(metadata.get('coins'), 'coins')
        if coins not in (None, '') and parse_amount(coins, 'coins') != purchased:
            raise InvalidInput(f"coins does not match payment {transaction_id}")
        return purchased

    def confirm(self, email: str, coins: Any, amount: Any, transaction_id: str,
                verify: bool = False) -> Dict[str, Any]:
        """
        Record an externally confirmed payment and credit the purchased coins.

        With ``verify`` the coin count comes from the gateway's record of the
        intent and ``coins`` may be omitted. Without it the caller is trusted
        to pass the gateway event's values.

        Raises:
            MissingField: any of email, amount, transactionId (or unverified coins) absent
            InvalidInput: with ``verify``, the gateway does not report this payment as
                succeeded, or ``coins`` disagrees with it
            Forbidden: with ``verify``, the payment was started by another user
            AlreadyExists: this transactionId was already recorded
            NotFound: unknown user
        """
        required = [('email', email), ('amount', amount), ('transactionId', transaction_id)]
        if not verify:
            required.insert(1, ('coins', coins))
        missing = [name for name, value in required if value in (None, '')]
        if missing:
            raise MissingField(*missing)

        cash = parse_cash(amount)
        if verify:
            coins = self._verified_coins(email, coins, transaction_id, cash)
        else:
            coins = parse_amount(coins, 'coins')

        payment = {
            'paymentId': str(uuid.uuid4()),
            'transactionId': transaction_id,
            'email': email,
            'coins': coins,
            'amount': cash,
            'createdAt': utc_now(),
        }

        try:
            self.store.transact([Put(self.table, payment), self.accounts.credit_op(email, payment['coins'])])
        except TransactionCancelled as e:
            if e.failed(0):
                raise AlreadyExists("Payment already recorded")
            raise NotFound("User not found")

        logger.info(f"Payment {transaction_id} confirmed, {payment['coins']} coins to {email}")
        self.notifications.emit(email, f"You purchased {payment['coins']} coins", '/dashboard/payment-history')
        return payment

    def list_for_user(self, email: str) -> List[Dict[str, Any]]:
        return list(self.store.query(self.table, 'EmailIndex', email, descending=True))
