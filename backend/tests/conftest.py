"""
Shared fixtures: a Ledger over the in-memory store and API Gateway events.
"""
import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
os.environ.setdefault('STORE_BACKEND', 'memory')

import pytest
from unittest.mock import MagicMock

from taskcoin.auth import Caller
from taskcoin.ledger import Ledger, set_ledger
from taskcoin.memory_store import MemoryLedgerStore


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.create_payment_intent.return_value = {'clientSecret': 'cs_test', 'paymentIntentId': 'pi_test'}
    gateway.verify_payment.return_value = {'correlation_id': 'corr-1', 'email': 'buyer@example.com', 'coins': '100'}
    return gateway


@pytest.fixture
def ledger(gateway):
    ledger = Ledger(MemoryLedgerStore(), gateway=gateway)
    set_ledger(ledger)
    yield ledger
    set_ledger(None)


@pytest.fixture
def buyer(ledger):
    return ledger.accounts.register('Bea Buyer', 'buyer@example.com', 'buyer')


@pytest.fixture
def other_buyer(ledger):
    return ledger.accounts.register('Otto Buyer', 'otto@example.com', 'buyer')


@pytest.fixture
def worker(ledger):
    return ledger.accounts.register('Wes Worker', 'worker@example.com', 'worker')


@pytest.fixture
def admin(ledger):
    return ledger.accounts.register('Ada Admin', 'admin@example.com', 'admin')


def caller_for(user):
    return Caller(email=user['email'], role=user['role'], name=user['name'])


@pytest.fixture
def buyer_caller(buyer):
    return caller_for(buyer)


@pytest.fixture
def admin_caller(admin):
    return caller_for(admin)


@pytest.fixture
def task_fields():
    return {
        'title': 'Watch my video',
        'detail': 'Watch and comment',
        'requiredWorkers': 2,
        'payableAmount': 20,
        'completionDate': '2026-12-01',
        'submissionInfo': 'Screenshot of the comment',
        'imageUrl': 'https://img.example.com/task.png',
    }


@pytest.fixture
def task(ledger, buyer, task_fields):
    return ledger.tasks.create_task(buyer['email'], task_fields)


@pytest.fixture
def make_event():
    """Build an API Gateway proxy event carrying Cognito claims."""
    def _make(email=None, role=None, body=None, path=None, query=None, name=''):
        claims = {}
        if email:
            claims['email'] = email
            claims['name'] = name
        if role:
            claims['custom:role'] = role
        return {
            'httpMethod': 'POST',
            'requestContext': {'authorizer': {'claims': claims}},
            'pathParameters': path,
            'queryStringParameters': query,
            'body': json.dumps(body) if body is not None else None,
        }
    return _make
