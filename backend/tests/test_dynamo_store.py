"""
Tests for the DynamoDB ledger store against a mocked boto3 client.
"""
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from taskcoin.accounts import AccountService
from taskcoin.config import config
from taskcoin.dynamo import DynamoLedgerStore, deserialize, get_dynamodb_client, serialize
from taskcoin.errors import InsufficientFunds, StoreUnavailable
from taskcoin.store import Delete, Put, TransactionCancelled, Update, at_least, equals


def client_error(code, operation='TransactWriteItems', reasons=None):
    response = {'Error': {'Code': code, 'Message': code}}
    if reasons is not None:
        response['CancellationReasons'] = [{'Code': r} for r in reasons]
    return ClientError(response, operation)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def store(client):
    store = DynamoLedgerStore(client=client, max_retries=3)
    store._backoff = MagicMock()
    return store


class TestSerialization:

    def test_round_trip_restores_ints(self):
        item = {'email': 'a@example.com', 'coin': 50, 'amount': 1.25, 'read': False}
        restored = deserialize(serialize(item))

        assert restored['coin'] == 50 and isinstance(restored['coin'], int)
        assert float(restored['amount']) == 1.25
        assert restored['read'] is False


class TestUpdate:

    def test_conditional_increment_request(self, store, client):
        client.update_item.return_value = {'Attributes': serialize({'email': 'a@example.com', 'coin': 30})}

        result = store.update(Update(
            config.USERS_TABLE, {'email': 'a@example.com'},
            increments={'coin': -20}, conditions=[at_least('coin', 20)]
        ))

        assert result == {'email': 'a@example.com', 'coin': 30}
        request = client.update_item.call_args.kwargs
        assert request['TableName'] == config.USERS_TABLE
        assert request['UpdateExpression'] == 'SET #i0 = #i0 + :i0'
        assert request['ConditionExpression'] == 'attribute_exists(#c0) AND #c1 >= :c1'
        assert request['ExpressionAttributeNames'] == {'#c0': 'email', '#c1': 'coin', '#i0': 'coin'}
        assert request['ExpressionAttributeValues'] == {':c1': {'N': '20'}, ':i0': {'N': '-20'}}
        assert request['ReturnValues'] == 'ALL_NEW'

    def test_failed_condition_cancels(self, store, client):
        client.update_item.side_effect = client_error('ConditionalCheckFailedException', 'UpdateItem')
        with pytest.raises(TransactionCancelled) as exc:
            store.update(Update(config.USERS_TABLE, {'email': 'a@example.com'}, increments={'coin': 1}))
        assert exc.value.failed(0)

    def test_throttling_retried_then_unavailable(self, store, client):
        client.update_item.side_effect = client_error('ThrottlingException', 'UpdateItem')
        with pytest.raises(StoreUnavailable):
            store.update(Update(config.USERS_TABLE, {'email': 'a@example.com'}, increments={'coin': 1}))
        assert client.update_item.call_count == 3


class TestTransact:

    def test_operations_translated(self, store, client):
        store.transact([
            Put(config.TASKS_TABLE, {'taskId': 't1', 'requiredWorkers': 2}),
            Update(config.USERS_TABLE, {'email': 'b@example.com'}, increments={'coin': -40},
                   conditions=[at_least('coin', 40)]),
            Delete(config.SUBMISSIONS_TABLE, {'submissionId': 's1'}, conditions=[equals('status', 'pending')]),
        ])

        put, update, delete = client.transact_write_items.call_args.kwargs['TransactItems']
        assert put['Put']['ConditionExpression'] == 'attribute_not_exists(#c0)'
        assert put['Put']['ExpressionAttributeNames'] == {'#c0': 'taskId'}
        assert 'ExpressionAttributeValues' not in put['Put']
        assert put['Put']['Item']['requiredWorkers'] == {'N': '2'}
        assert update['Update']['Key'] == {'email': {'S': 'b@example.com'}}
        assert delete['Delete']['ConditionExpression'] == 'attribute_exists(#c0) AND #c1 = :c1'
        assert delete['Delete']['ExpressionAttributeValues'] == {':c1': {'S': 'pending'}}

    def test_cancellation_reasons_aligned(self, store, client):
        client.transact_write_items.side_effect = client_error(
            'TransactionCanceledException', reasons=['None', 'ConditionalCheckFailed'])

        with pytest.raises(TransactionCancelled) as exc:
            store.transact([Put(config.TASKS_TABLE, {'taskId': 't1'}),
                            Update(config.USERS_TABLE, {'email': 'b@example.com'}, increments={'coin': -1})])

        assert exc.value.reasons == [None, 'ConditionalCheckFailed']
        assert not exc.value.failed(0) and exc.value.failed(1)
        assert client.transact_write_items.call_count == 1

    def test_conflicts_retried_with_bound(self, store, client):
        client.transact_write_items.side_effect = client_error(
            'TransactionCanceledException', reasons=['TransactionConflict', 'None'])

        with pytest.raises(StoreUnavailable):
            store.transact([Put(config.TASKS_TABLE, {'taskId': 't1'})])
        assert client.transact_write_items.call_count == 3
        assert store._backoff.call_count == 2

    def test_retry_warning_only_when_retrying(self, store, client):
        client.transact_write_items.side_effect = client_error(
            'TransactionCanceledException', reasons=['TransactionConflict'])

        with patch('taskcoin.dynamo.logger') as logger:
            with pytest.raises(StoreUnavailable):
                store.transact([Put(config.TASKS_TABLE, {'taskId': 't1'})])

        warnings = [c.args[0] for c in logger.warning.call_args_list]
        assert len(warnings) == 2
        assert all('attempt 3' not in w for w in warnings)

    @pytest.mark.parametrize('max_retries,attempts', [(None, 3), (0, 1), (1, 1), (5, 5)])
    def test_explicit_retry_count_respected(self, client, max_retries, attempts):
        client.transact_write_items.side_effect = client_error(
            'TransactionCanceledException', reasons=['TransactionConflict'])

        with patch.object(config, 'STORE_MAX_RETRIES', 3):
            store = DynamoLedgerStore(client=client, max_retries=max_retries)
        store._backoff = MagicMock()

        with pytest.raises(StoreUnavailable):
            store.transact([Put(config.TASKS_TABLE, {'taskId': 't1'})])
        assert client.transact_write_items.call_count == attempts

    def test_conflict_then_success(self, store, client):
        client.transact_write_items.side_effect = [
            client_error('TransactionCanceledException', reasons=['TransactionConflict']),
            {},
        ]
        store.transact([Put(config.TASKS_TABLE, {'taskId': 't1'})])
        assert client.transact_write_items.call_count == 2

    def test_other_errors_unavailable(self, store, client):
        client.transact_write_items.side_effect = client_error('ResourceNotFoundException')
        with pytest.raises(StoreUnavailable):
            store.transact([Put(config.TASKS_TABLE, {'taskId': 't1'})])
        assert client.transact_write_items.call_count == 1


class TestReads:

    def test_get_missing_item(self, store, client):
        client.get_item.return_value = {}
        assert store.get(config.USERS_TABLE, {'email': 'a@example.com'}) is None
        assert client.get_item.call_args.kwargs['ConsistentRead'] is True

    def test_query_paginates_lazily(self, store, client):
        paginator = client.get_paginator.return_value
        paginator.paginate.return_value = [
            {'Items': [serialize({'taskId': 't2', 'completionDate': '2026-12-01'})]},
            {'Items': [serialize({'taskId': 't1', 'completionDate': '2026-11-01'})]},
        ]

        results = store.query(config.TASKS_TABLE, 'BuyerIndex', 'b@example.com', descending=True)
        client.get_paginator.assert_not_called()

        assert [t['taskId'] for t in results] == ['t2', 't1']
        client.get_paginator.assert_called_once_with('query')
        params = paginator.paginate.call_args.kwargs
        assert params['IndexName'] == 'BuyerIndex'
        assert params['ScanIndexForward'] is False
        assert params['KeyConditionExpression'] == '#k0 = :k0'
        assert params['ExpressionAttributeNames'] == {'#k0': 'buyerEmail'}

    def test_scan_filter(self, store, client):
        client.get_paginator.return_value.paginate.return_value = [{'Items': []}]
        list(store.scan(config.TASKS_TABLE, [at_least('requiredWorkers', 1)]))
        params = client.get_paginator.return_value.paginate.call_args.kwargs
        assert params['FilterExpression'] == '#c0 >= :c0'

    def test_query_failure_unavailable(self, store, client):
        client.get_paginator.return_value.paginate.side_effect = client_error('InternalServerError', 'Query')
        with pytest.raises(StoreUnavailable):
            list(store.query(config.USERS_TABLE, 'RoleIndex', 'admin'))


class TestServicesOverDynamo:

    def test_debit_condition_failure_maps_to_insufficient_funds(self, store, client):
        client.update_item.side_effect = client_error('ConditionalCheckFailedException', 'UpdateItem')
        client.get_item.return_value = {'Item': serialize({'email': 'w@example.com', 'coin': 5})}

        with pytest.raises(InsufficientFunds):
            AccountService(store).adjust_balance('w@example.com', -10)


class TestClientFactory:

    def test_client_created_once(self):
        with patch('taskcoin.dynamo._dynamodb_client', None), patch('taskcoin.dynamo.boto3.client') as factory:
            assert get_dynamodb_client() is get_dynamodb_client()
        factory.assert_called_once()
        assert factory.call_args.args == ('dynamodb',)
