"""
Register User Handler.
POST /users
"""
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.utils import error_response, format_response, parse_body


def handler(event, context):
    """
    POST /users
    Body: { "name": "...", "email": "...", "photoUrl": "...", "role": "worker" | "buyer" }

    Registration is open; admins are promoted through the admin role route.
    """
    log_event(event)

    try:
        body = parse_body(event)
        role = body.get('role')
        if role == 'admin':
            return format_response(403, {'error': 'Forbidden', 'message': 'Cannot self-register as admin'})

        user = get_ledger().accounts.register(
            name=body.get('name'),
            email=body.get('email'),
            role=role,
            photo_url=body.get('photoUrl')
        )
        return format_response(201, {'message': 'User registered', 'user': user})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error registering user: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
