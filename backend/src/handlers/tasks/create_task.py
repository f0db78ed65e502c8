"""
Create Task Handler.
Posts a task and escrows requiredWorkers × payableAmount coins from the buyer.
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, parse_body


@requires_role(Role.BUYER)
def handler(event, context, caller):
    """
    POST /tasks
    Body: { "title": "...", "detail": "...", "requiredWorkers": 2, "payableAmount": 20,
            "completionDate": "2026-11-30", "submissionInfo": "...", "imageUrl": "..." }
    """
    log_event(event)

    try:
        task = get_ledger().tasks.create_task(caller.email, parse_body(event))
        return format_response(201, {'message': 'Task created', 'task': task})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error creating task: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
