"""
Delete User Handler (admin).
DELETE /admin/users/{email}
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, get_path_param


@requires_role(Role.ADMIN)
def handler(event, context, caller):
    log_event(event)

    try:
        email = get_path_param(event, 'email')
        if email == caller.email:
            return format_response(400, {'error': 'InvalidInput', 'message': 'Admins cannot remove themselves'})
        get_ledger().accounts.remove_user(email)
        return format_response(200, {'message': 'User removed'})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error removing user: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
