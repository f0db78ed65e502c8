"""
Approve Withdrawal Handler (admin).
Records that the payout was made; the coins already left at request time.
"""
from taskcoin.auth import requires_role
from taskcoin.errors import TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, get_path_param


@requires_role(Role.ADMIN)
def handler(event, context, caller):
    """POST /admin/withdrawals/{withdrawalId}/approve"""
    log_event(event)

    try:
        withdrawal = get_ledger().withdrawals.approve(get_path_param(event, 'withdrawalId'))
        return format_response(200, {'message': 'Withdrawal approved', 'withdrawal': withdrawal})

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error approving withdrawal: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
