"""
Authentication utilities: caller identity from Cognito claims and role checks.
"""
import functools
from dataclasses import dataclass
from typing import Optional

from .logging import logger
from .models import Role
from .utils import format_response


@dataclass(frozen=True)
class Caller:
    """Verified identity of the user behind a request."""
    email: str
    role: str
    name: str = ''


def get_claims(event: dict) -> dict:
    try:
        return event['requestContext']['authorizer']['claims'] or {}
    except (KeyError, TypeError):
        return {}


def get_user_email(event: dict) -> Optional[str]:
    """Extract user email from Cognito claims."""
    return get_claims(event).get('email')


def get_user_groups(event: dict) -> list:
    """Extract user groups (worker, buyer, admin) from Cognito claims."""
    groups = get_claims(event).get('cognito:groups', '')
    if isinstance(groups, str):
        return groups.split(',') if groups else []
    return groups or []


def get_user_role(event: dict) -> Optional[str]:
    """Role from the custom:role claim, falling back to the first known Cognito group."""
    role = get_claims(event).get('custom:role')
    if role in Role.ALL:
        return role
    for group in get_user_groups(event):
        if group in Role.ALL:
            return group
    return None


def get_caller(event: dict) -> Optional[Caller]:
    """Build the Caller for a request, or None if it carries no usable identity."""
    email = get_user_email(event)
    role = get_user_role(event)
    if not email or not role:
        return None
    return Caller(email=email, role=role, name=get_claims(event).get('name', ''))


def authorize(caller: Optional[Caller], required_role: str) -> bool:
    """True if the caller holds ``required_role``."""
    return caller is not None and caller.role == required_role


def requires_role(*roles: str):
    """
    Guard a Lambda handler with a role check.

    The wrapped handler is called as ``handler(event, context, caller)``.
    With no roles given any authenticated caller is accepted.
    """
    def decorator(handler):
        @functools.wraps(handler)
        def wrapper(event, context):
            caller = get_caller(event)
            if caller is None:
                return format_response(401, {'error': 'Unauthorized', 'message': 'Missing identity'})
            if roles and not any(authorize(caller, role) for role in roles):
                logger.warning(f"{caller.email} ({caller.role}) denied, requires {'/'.join(roles)}")
                return format_response(403, {'error': 'Forbidden', 'message': f"Requires {'/'.join(roles)} role"})
            return handler(event, context, caller)
        return wrapper
    return decorator
