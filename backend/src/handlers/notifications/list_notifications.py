"""
List Notifications Handler.
GET /notifications?markRead=true
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.utils import error_response, format_response, get_query_param


@requires_role()
def handler(event, context, caller):
    log_event(event)

    try:
        emitter = get_ledger().notifications
        notifications = emitter.list_for(caller.email)
        if get_query_param(event, 'markRead') == 'true':
            emitter.mark_read(caller.email)
        return format_response(200, {
            'notifications': notifications,
            'unread': len([n for n in notifications if not n.get('read')])
        })

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing notifications: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
