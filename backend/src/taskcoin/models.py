"""
Status and role constants for the coin ledger.
Task lifecycle: Posted (escrowed) → Open while requiredWorkers > 0 → Closed (refunded).
Submission lifecycle: pending → approved | rejected.
Withdrawal lifecycle: pending → approved.
"""
from .config import config


class Role:
    """User roles."""
    WORKER = 'worker'
    BUYER = 'buyer'
    ADMIN = 'admin'

    ALL = (WORKER, BUYER, ADMIN)


STARTING_COINS = {
    Role.WORKER: config.WORKER_STARTING_COINS,
    Role.BUYER: config.BUYER_STARTING_COINS,
    Role.ADMIN: config.ADMIN_STARTING_COINS,
}


class SubmissionStatus:
    """Submission review statuses."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    # Spellings accepted from clients for the two terminal states
    ALIASES = {
        'approve': APPROVED,
        'approved': APPROVED,
        'reject': REJECTED,
        'rejected': REJECTED,
    }

    @classmethod
    def normalize(cls, value):
        """Map a review decision to its canonical status, or None if unknown."""
        if not value:
            return None
        return cls.ALIASES.get(str(value).strip().lower())


class WithdrawalStatus:
    """Withdrawal statuses."""
    PENDING = 'pending'
    APPROVED = 'approved'
