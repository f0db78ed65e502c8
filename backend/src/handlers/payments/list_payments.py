"""
List Payments Handler.
GET /payments
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.utils import error_response, format_response


@requires_role()
def handler(event, context, caller):
    log_event(event)

    try:
        payments = get_ledger().payments.list_for_user(caller.email)
        return format_response(200, {'payments': payments})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing payments: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
