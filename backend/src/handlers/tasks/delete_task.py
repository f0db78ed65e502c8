"""
Delete Task Handler.
Removes a task and refunds the buyer its unconsumed escrow.
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, get_path_param


@requires_role(Role.BUYER, Role.ADMIN)
def handler(event, context, caller):
    """DELETE /tasks/{taskId}"""
    log_event(event)

    try:
        result = get_ledger().tasks.close_task(get_path_param(event, 'taskId'), caller)
        return format_response(200, {'message': 'Task deleted', **result})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error deleting task: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
