"""
List Withdrawals Handler.
GET /worker/withdrawals
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response


@requires_role(Role.WORKER)
def handler(event, context, caller):
    log_event(event)

    try:
        withdrawals = get_ledger().withdrawals.list_for_worker(caller.email)
        return format_response(200, {'withdrawals': withdrawals})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing withdrawals: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
