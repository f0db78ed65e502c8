"""
Update User Role Handler (admin).
PATCH /admin/users/{email}/role
"""
from taskcoin.auth import requires_role
from taskcoin.errors import MissingField, TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, get_path_param, parse_body


@requires_role(Role.ADMIN)
def handler(event, context, caller):
    """
    PATCH /admin/users/{email}/role
    Body: { "role": "worker" | "buyer" | "admin" }
    """
    log_event(event)

    try:
        role = parse_body(event).get('role')
        if not role:
            raise MissingField('role')
        user = get_ledger().accounts.update_role(get_path_param(event, 'email'), role)
        return format_response(200, {'message': 'Role updated', 'user': user})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error updating role: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
