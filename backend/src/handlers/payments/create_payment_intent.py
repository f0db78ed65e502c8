"""
Create Payment Intent Handler.
Starts a coin purchase with the payment gateway.
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
    POST /payments/intent
    Body: { "amount": 10, "coins": 100 }
    """
    log_event(event)

    try:
        body = parse_body(event)
        intent = get_ledger().payments.create_intent(caller.email, body.get('amount'), body.get('coins'))
        return format_response(200, intent)

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error creating payment intent: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
