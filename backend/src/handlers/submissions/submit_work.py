"""
Submit Work Handler.
Takes one slot of the task's capacity and creates a pending submission.
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, get_path_param, parse_body


@requires_role(Role.WORKER)
def handler(event, context, caller):
    """
    POST /tasks/{taskId}/submissions
    Body: { "submissionDetails": "..." }
    """
    log_event(event)

    try:
        submission = get_ledger().submissions.submit(
            caller.email,
            get_path_param(event, 'taskId'),
            parse_body(event)
        )
        return format_response(201, {
            'message': 'Work submitted successfully',
            'submissionId': submission['submissionId'],
            'submission': submission
        })

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error submitting work: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
