"""
Failure taxonomy of the ledger core.

Every error carries a transport-neutral ``category`` which the handlers map
to an HTTP status code.
"""


class TaskcoinError(Exception):
    """Base class for all typed ledger failures."""

    category = 'unavailable'

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class NotFound(TaskcoinError):
    category = 'not-found'


class AlreadyExists(TaskcoinError):
    category = 'conflict'


class InsufficientFunds(TaskcoinError):
    category = 'conflict'


class CapacityExhausted(TaskcoinError):
    category = 'conflict'


class InvalidTransition(TaskcoinError):
    category = 'conflict'


class InvalidInput(TaskcoinError):
    category = 'bad-input'


class MissingField(InvalidInput):

    def __init__(self, *fields: str):
        self.fields = fields
        super().__init__(f"Missing {', '.join(fields)}")


class Forbidden(TaskcoinError):
    category = 'forbidden'


class StoreUnavailable(TaskcoinError):
    category = 'unavailable'


class PaymentGatewayError(TaskcoinError):
    category = 'unavailable'
