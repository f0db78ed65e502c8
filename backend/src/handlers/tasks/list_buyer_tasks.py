"""
List Buyer Tasks Handler.
GET /buyer/tasks
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response


@requires_role(Role.BUYER)
def handler(event, context, caller):
    log_event(event)

    try:
        tasks = get_ledger().tasks.list_by_buyer(caller.email)
        return format_response(200, {'tasks': tasks})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing tasks: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
