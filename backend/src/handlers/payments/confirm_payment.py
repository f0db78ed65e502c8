"""
Confirm Payment Handler.
Records a gateway-confirmed purchase and credits the coins.
"""
from taskcoin.auth import requires_role
from taskcoin.errors import Forbidden, TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, parse_body


@requires_role(Role.BUYER)
def handler(event, context, caller):
    """
    POST /payments/confirm
    Body: { "amount": 10, "transactionId": "pi_..." }  ("coins" optional, must match the intent)
    """
    log_event(event)

    try:
        body = parse_body(event)
        email = body.get('email') or caller.email
        if email != caller.email:
            raise Forbidden("Cannot confirm a payment for another user")

        payment = get_ledger().payments.confirm(
            email,
            body.get('coins'),
            body.get('amount'),
            body.get('transactionId'),
            verify=True
        )
        return format_response(201, {'message': 'Payment recorded', 'payment': payment})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error confirming payment: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
