"""
Get Wallet Handler.
GET /wallet
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.utils import error_response, format_response


@requires_role()
def handler(event, context, caller):
    """Current coin balance of the caller."""
    log_event(event)

    try:
        balance = get_ledger().accounts.get_balance(caller.email)
        return format_response(200, {
            'email': caller.email,
            'coin': balance
        })

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error getting wallet: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
