"""
Update Task Handler.
PATCH /tasks/{taskId}
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, get_path_param, parse_body


@requires_role(Role.BUYER)
def handler(event, context, caller):
    """
    PATCH /tasks/{taskId}
    Body: { "title": "...", "detail": "...", "submissionInfo": "..." }
    Only these fields can change once a task is posted.
    """
    log_event(event)

    try:
        task = get_ledger().tasks.update_task(get_path_param(event, 'taskId'), caller, parse_body(event))
        return format_response(200, {'message': 'Task updated', 'task': task})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error updating task: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
