"""
Configuration module for the ledger core and Lambda handlers.
Loads all environment variables needed by the platform.
"""
import os


class Config:
    """Centralized configuration from environment variables."""

    # AWS Region
    AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')

    # Store backend: 'dynamodb' or 'memory'
    STORE_BACKEND = os.environ.get('STORE_BACKEND', 'dynamodb')

    # DynamoDB Tables
    USERS_TABLE = os.environ.get('USERS_TABLE', 'taskcoin-users')
    TASKS_TABLE = os.environ.get('TASKS_TABLE', 'taskcoin-tasks')
    SUBMISSIONS_TABLE = os.environ.get('SUBMISSIONS_TABLE', 'taskcoin-submissions')
    WITHDRAWALS_TABLE = os.environ.get('WITHDRAWALS_TABLE', 'taskcoin-withdrawals')
    PAYMENTS_TABLE = os.environ.get('PAYMENTS_TABLE', 'taskcoin-payments')
    NOTIFICATIONS_TABLE = os.environ.get('NOTIFICATIONS_TABLE', 'taskcoin-notifications')

    # Bounded retry for conflicting transactions / stale optimistic reads
    STORE_MAX_RETRIES = int(os.environ.get('STORE_MAX_RETRIES', '3'))

    # Registration grants
    WORKER_STARTING_COINS = int(os.environ.get('WORKER_STARTING_COINS', '10'))
    BUYER_STARTING_COINS = int(os.environ.get('BUYER_STARTING_COINS', '50'))
    ADMIN_STARTING_COINS = int(os.environ.get('ADMIN_STARTING_COINS', '0'))

    DEFAULT_PAGE_SIZE = int(os.environ.get('DEFAULT_PAGE_SIZE', '10'))

    # Payment gateway
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY', '')
    PAYMENT_CURRENCY = os.environ.get('PAYMENT_CURRENCY', 'usd')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


config = Config()
