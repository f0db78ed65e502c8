"""
List Open Tasks Handler.
Returns tasks that still need workers, earliest completion date first.
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
        tasks = list(get_ledger().tasks.list_open_tasks())
        return format_response(200, {'tasks': tasks, 'totalTasks': len(tasks)})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing open tasks: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
