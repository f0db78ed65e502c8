"""
List Pending Reviews Handler.
Pending submissions against the calling buyer's tasks.
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response


@requires_role(Role.BUYER)
def handler(event, context, caller):
    """GET /buyer/submissions"""
    log_event(event)

    try:
        submissions = get_ledger().submissions.list_pending_for_buyer(caller.email)
        return format_response(200, {'submissions': submissions})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing pending reviews: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
