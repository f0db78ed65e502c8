"""
Clear Notifications Handler.
DELETE /notifications
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
        removed = get_ledger().notifications.clear(caller.email)
        return format_response(200, {'message': 'Notifications cleared', 'removed': removed})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error clearing notifications: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
