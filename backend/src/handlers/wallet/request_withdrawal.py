"""
Request Withdrawal Handler.
Debits the worker's coins and queues the payout for admin approval.
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, parse_body


@requires_role(Role.WORKER)
def handler(event, context, caller):
    """
    POST /worker/withdrawals
    Body: { "withdrawalCoin": 200, "withdrawalAmount": 10, "paymentSystem": "bkash",
            "accountNumber": "..." }
    """
    log_event(event)

    try:
        body = parse_body(event)
        withdrawal = get_ledger().withdrawals.request(
            caller.email,
            body.get('withdrawalCoin'),
            body.get('withdrawalAmount'),
            body.get('paymentSystem'),
            body.get('accountNumber')
        )
        return format_response(201, {
            'message': 'Withdrawal requested',
            'withdrawal': withdrawal
        })

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error requesting withdrawal: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
