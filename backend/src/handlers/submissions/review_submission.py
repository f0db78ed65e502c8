"""
Review Submission Handler.
POST /submissions/{submissionId}/review
"""
from taskcoin.auth import requires_role
from taskcoin.errors import MissingField, TaskcoinError
from taskcoin.ledger import get_ledger
from taskcoin.logging import logger, log_event
from taskcoin.models import Role
from taskcoin.utils import error_response, format_response, get_path_param, parse_body


@requires_role(Role.BUYER, Role.ADMIN)
def handler(event, context, caller):
    """
    POST /submissions/{submissionId}/review
    Body: { "status": "approved" | "rejected" }  ("approve"/"reject" are accepted too)
    """
    log_event(event)

    try:
        decision = parse_body(event).get('status')
        if not decision:
            raise MissingField('status')

        submission = get_ledger().submissions.review(get_path_param(event, 'submissionId'), caller, decision)
        return format_response(200, {
            'message': f"Submission {submission['status']}",
            'submission': submission
        })

    except TaskcoinError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error reviewing submission: {e}")
        return format_response(500, {'error': 'Internal Server Error'})
