"""
Common utility functions for the ledger core and Lambda handlers.
"""
import json
import math
from decimal import Decimal
from typing import Any, Dict

from .errors import InvalidInput, TaskcoinError

# Transport status for each error category
STATUS_CODES = {
    'not-found': 404,
    'conflict': 409,
    'forbidden': 403,
    'bad-input': 400,
    'unavailable': 503,
}


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal types from DynamoDB."""

    def default(self, o):
        if isinstance(o, Decimal):
            # Convert to int if it's a whole number, otherwise float
            if o % 1 == 0:
                return int(o)
            return float(o)
        return super().default(o)


def parse_amount(value: Any, name: str, minimum: int = 1) -> int:
    """
    Parse a whole coin/count value.

    Accepts ints, whole floats and decimal digit strings; rejects bools,
    fractions, non-finite numbers and values below ``minimum``.
    """
    if isinstance(value, bool):
        raise InvalidInput(f"Invalid {name}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().removeprefix('-').isdecimal():
        number = int(value.strip())
    else:
        raise InvalidInput(f"{name} must be a whole number")
    if number < minimum:
        raise InvalidInput(f"{name} must be a whole number of at least {minimum}")
    return number


def parse_cash(value: Any, name: str = 'amount') -> float:
    """Parse a positive, finite money amount."""
    if isinstance(value, bool):
        raise InvalidInput(f"Invalid {name}")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid {name}")
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidInput(f"{name} must be a positive amount")
    return amount


def format_response(
    status_code: int,
    body: Any,
    headers: Dict[str, str] = None
) -> Dict[str, Any]:
    """
    Format a standard API Gateway response with CORS headers.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON serialized)
        headers: Additional headers to include

    Returns:
        API Gateway response dict
    """
    default_headers = {
        'Access-Control-Allow-Origin': '*',
        'Access-Control-Allow-Credentials': True,
        'Content-Type': 'application/json'
    }

    if headers:
        default_headers.update(headers)

    return {
        'statusCode': status_code,
        'headers': default_headers,
        'body': json.dumps(body, cls=DecimalEncoder)
    }


def error_response(error: TaskcoinError) -> Dict[str, Any]:
    """Translate a ledger failure into its stable HTTP status."""
    return format_response(STATUS_CODES.get(error.category, 500), {
        'error': type(error).__name__,
        'message': error.message,
    })


def parse_body(event: dict) -> dict:
    """
    Safely parse JSON body from API Gateway event.

    Args:
        event: API Gateway Lambda proxy event

    Returns:
        Parsed body dict or empty dict if invalid or not a JSON object
    """
    try:
        body = event.get('body') or '{}'
        if isinstance(body, str):
            body = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return {}
    return body if isinstance(body, dict) else {}


def get_path_param(event: dict, param_name: str) -> str:
    """Extract path parameter from event."""
    try:
        return event['pathParameters'][param_name]
    except (KeyError, TypeError):
        return None


def get_query_param(event: dict, param_name: str, default: str = None) -> str:
    """Extract query string parameter from event."""
    try:
        params = event.get('queryStringParameters') or {}
        return params.get(param_name, default)
    except (KeyError, TypeError):
        return default
