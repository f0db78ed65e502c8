"""
Get User Handler.
GET /users/{email}
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.utils import error_response, format_response, get_path_param


@requires_role()
def handler(event, context, caller):
    log_event(event)

    try:
        email = get_path_param(event, 'email') or caller.email
        return format_response(200, get_ledger().accounts.get_user(email))

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error getting user: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
