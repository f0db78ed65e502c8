"""
Logging for the ledger core and Lambda handlers.

Everything goes through the single ``taskcoin`` logger so a Lambda's log
stream interleaves handler requests with the ledger transitions they cause.
"""
import logging
import json

from .config import config

logger = logging.getLogger('taskcoin')
logger.setLevel(config.LOG_LEVEL)

if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logger.addHandler(handler)

# Request fields worth keeping; bodies and headers may carry payment details or tokens
EVENT_FIELDS = ('httpMethod', 'resource', 'path', 'pathParameters', 'queryStringParameters')


def log_event(event: dict) -> None:
    """Log the route and caller of an incoming API Gateway event."""
    try:
        summary = {k: event[k] for k in EVENT_FIELDS if event.get(k)}
        claims = ((event.get('requestContext') or {}).get('authorizer') or {}).get('claims') or {}
        if claims.get('email'):
            summary['caller'] = claims['email']
        logger.info(f"Lambda event: {json.dumps(summary, default=str)}")
    except Exception as e:
        logger.warning(f"Could not log event: {e}")
