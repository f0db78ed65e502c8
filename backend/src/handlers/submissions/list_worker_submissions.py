"""
List Worker Submissions Handler.
GET /worker/submissions?page=1&limit=10
"""
from taskcoin.auth import requires_role
from taskcoin.errors import InvalidInput, TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, get_query_param


@requires_role(Role.WORKER)
def handler(event, context, caller):
    log_event(event)

    try:
        try:
            page = int(get_query_param(event, 'page', '1'))
            limit = int(get_query_param(event, 'limit', '0')) or None
        except ValueError:
            raise InvalidInput("page and limit must be integers")

        return format_response(200, get_ledger().submissions.list_for_worker(caller.email, page, limit))

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing submissions: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
