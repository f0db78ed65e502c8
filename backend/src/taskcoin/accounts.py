"""
Account Service.

The only component that mutates a user's ``coin`` balance. Other services
never write ``coin`` themselves: they ask for ``debit_op``/``credit_op`` and
include the returned operation in their own transaction, so the balance
change and the state change it pays for commit together.
"""
import uuid
from typing import Any, Dict, Iterator, List, Optional

from .config import config
from .errors import AlreadyExists, InsufficientFunds, InvalidInput, NotFound
from .logging import logger
from .models import Role, STARTING_COINS
from .notifications import utc_now
from .store import LedgerStore, TransactionCancelled, Update, at_least


class AccountService:

    def __init__(self, store: LedgerStore):
        self.store = store
        self.table = config.USERS_TABLE

    def _key(self, email: str) -> Dict[str, Any]:
        return self.store.key_for(self.table, email)

    def register(self, name: str, email: str, role: Optional[str] = None,
                 photo_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a user with the role's starting balance.

        Raises:
            InvalidInput: unknown role or missing email
            AlreadyExists: the email is already registered
        """
        if not email:
            raise InvalidInput("Missing email")
        role = role or Role.WORKER
        if role not in Role.ALL:
            raise InvalidInput(f"Unknown role: {role}")

        user = {
            'id': str(uuid.uuid4()),
            'name': name or '',
            'email': email,
            'photoUrl': photo_url or '',
            'role': role,
            'coin': STARTING_COINS[role],
            'createdAt': utc_now(),
        }
        try:
            self.store.put(self.table, user)
        except TransactionCancelled:
            raise AlreadyExists("Email already registered")

        logger.info(f"Registered {role} {email} with {user['coin']} coins")
        return user

    def get_user(self, email: str) -> Dict[str, Any]:
        user = self.store.get(self.table, self._key(email))
        if not user:
            raise NotFound("User not found")
        return user

    def get_balance(self, email: str) -> int:
        return self.get_user(email)['coin']

    def debit_op(self, email: str, amount: int) -> Update:
        """Operation removing ``amount`` coins, valid only while the balance covers it."""
        return Update(self.table, self._key(email), increments={'coin': -amount},
                      conditions=[at_least('coin', amount)])

    def credit_op(self, email: str, amount: int) -> Update:
        """Operation adding ``amount`` coins to an existing user."""
        return Update(self.table, self._key(email), increments={'coin': amount})

    def adjust_balance(self, email: str, delta: int) -> int:
        """
        Atomically add ``delta`` (positive or negative) to one user's balance.

        A debit carries its own sufficiency condition, so it can never drive
        the balance negative even if a prior read has gone stale.

        Returns:
            The new balance.

        Raises:
            NotFound: no such user
            InsufficientFunds: a debit larger than the current balance
        """
        op = self.debit_op(email, -delta) if delta < 0 else self.credit_op(email, delta)
        try:
            user = self.store.update(op)
        except TransactionCancelled:
            if self.store.get(self.table, self._key(email)) is None:
                raise NotFound("User not found")
            raise InsufficientFunds("Not enough coins")
        logger.info(f"Adjusted balance of {email} by {delta} to {user['coin']}")
        return user['coin']

    def list_users(self) -> List[Dict[str, Any]]:
        users = list(self.store.scan(self.table))
        users.sort(key=lambda u: u.get('createdAt', ''))
        return users

    def admin_emails(self) -> Iterator[str]:
        for user in self.store.query(self.table, 'RoleIndex', Role.ADMIN):
            yield user['email']

    def update_role(self, email: str, role: str) -> Dict[str, Any]:
        """Change a user's role. The balance is left untouched."""
        if role not in Role.ALL:
            raise InvalidInput(f"Unknown role: {role}")
        try:
            user = self.store.update(Update(self.table, self._key(email), sets={'role': role}))
        except TransactionCancelled:
            raise NotFound("User not found")
        logger.info(f"Role of {email} changed to {role}")
        return user

    def remove_user(self, email: str) -> None:
        try:
            self.store.delete(self.table, self._key(email))
        except TransactionCancelled:
            raise NotFound("User not found")
        logger.info(f"Removed user {email}")
