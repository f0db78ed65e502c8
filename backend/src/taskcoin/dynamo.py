"""
DynamoDB implementation of the ledger store.

Conditional single-item updates use update_item with a ConditionExpression;
multi-item mutations use transact_write_items so balances, capacity and the
records they back move together or not at all.
"""
import time
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Sequence

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from .config import config
from .errors import StoreUnavailable
from .logging import logger
from .store import Check, Delete, LedgerStore, Put, TableSchema, TransactionCancelled, Update, exists

CONDITION_FAILED = 'ConditionalCheckFailed'
TRANSACTION_CONFLICT = 'TransactionConflict'

# Errors worth another attempt before giving up with StoreUnavailable
RETRYABLE_ERRORS = {
    'TransactionInProgressException',
    'ProvisionedThroughputExceededException',
    'ThrottlingException',
}

_dynamodb_client = None

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def get_dynamodb_client():
    """Get or create the low-level DynamoDB client."""
    global _dynamodb_client
    if _dynamodb_client is None:
        _dynamodb_client = boto3.client(
            'dynamodb',
            region_name=config.AWS_REGION,
            config=BotoConfig(retries={'max_attempts': 3, 'mode': 'standard'})
        )
    return _dynamodb_client


def to_dynamo(value: Any) -> Any:
    """Convert floats to Decimal so boto3 accepts them."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    """Convert whole Decimals back to int (coins and counters are integers)."""
    if isinstance(value, Decimal):
        return int(value) if value % 1 == 0 else value
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def serialize(item: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _serializer.serialize(to_dynamo(v)) for k, v in item.items()}


def deserialize(item: Dict[str, Any]) -> Dict[str, Any]:
    return from_dynamo({k: _deserializer.deserialize(v) for k, v in item.items()})


class Expression:
    """Accumulates placeholder names/values while building one request's expressions."""

    def __init__(self):
        self.names: Dict[str, str] = {}
        self.values: Dict[str, Any] = {}

    def name(self, prefix: str, index: int, attr: str) -> str:
        placeholder = f'#{prefix}{index}'
        self.names[placeholder] = attr
        return placeholder

    def value(self, prefix: str, index: int, value: Any) -> str:
        placeholder = f':{prefix}{index}'
        self.values[placeholder] = _serializer.serialize(to_dynamo(value))
        return placeholder

    def condition(self, checks: Sequence[Check]) -> str:
        parts = []
        for i, check in enumerate(checks):
            name = self.name('c', i, check.attr)
            if check.op == 'exists':
                parts.append(f'attribute_exists({name})')
            elif check.op == 'not_exists':
                parts.append(f'attribute_not_exists({name})')
            else:
                parts.append(f'{name} {check.op} {self.value("c", i, check.value)}')
        return ' AND '.join(parts)

    def update(self, increments: Dict[str, int], sets: Dict[str, Any]) -> str:
        clauses = []
        for i, (attr, delta) in enumerate(increments.items()):
            name = self.name('i', i, attr)
            clauses.append(f'{name} = {name} + {self.value("i", i, delta)}')
        for i, (attr, value) in enumerate(sets.items()):
            clauses.append(f'{self.name("s", i, attr)} = {self.value("s", i, value)}')
        return 'SET ' + ', '.join(clauses)

    def params(self) -> Dict[str, Any]:
        params = {'ExpressionAttributeNames': self.names}
        if self.values:
            params['ExpressionAttributeValues'] = self.values
        return params


def _cancellation_reasons(error: ClientError) -> List[Optional[str]]:
    reasons = []
    for reason in error.response.get('CancellationReasons', []):
        code = reason.get('Code')
        reasons.append(None if code in (None, 'None') else code)
    return reasons


class DynamoLedgerStore(LedgerStore):
    """Ledger store over DynamoDB tables provisioned as described by ``table_schemas``."""

    def __init__(self, client=None, schemas: Optional[Dict[str, TableSchema]] = None,
                 max_retries: Optional[int] = None):
        super().__init__(schemas)
        self.client = client or get_dynamodb_client()
        # Attempts per request; the first one always happens
        retries = config.STORE_MAX_RETRIES if max_retries is None else max_retries
        self.max_retries = max(1, retries)

    def _must_exist(self, table: str, checks: Sequence[Check]) -> List[Check]:
        return [exists(self.schemas[table].key)] + list(checks)

    def _update_request(self, op: Update) -> Dict[str, Any]:
        expr = Expression()
        request = {
            'TableName': op.table,
            'Key': serialize(op.key),
            'UpdateExpression': expr.update(op.increments, op.sets),
            'ConditionExpression': expr.condition(self._must_exist(op.table, op.conditions)),
        }
        request.update(expr.params())
        return request

    def _transact_item(self, op) -> Dict[str, Any]:
        if isinstance(op, Put):
            expr = Expression()
            request = {
                'TableName': op.table,
                'Item': serialize(op.item),
                'ConditionExpression': expr.condition([Check(self.schemas[op.table].key, 'not_exists')]),
            }
            request.update(expr.params())
            return {'Put': request}
        if isinstance(op, Update):
            return {'Update': self._update_request(op)}
        if isinstance(op, Delete):
            expr = Expression()
            request = {
                'TableName': op.table,
                'Key': serialize(op.key),
                'ConditionExpression': expr.condition(self._must_exist(op.table, op.conditions)),
            }
            request.update(expr.params())
            return {'Delete': request}
        raise TypeError(f"Unsupported store operation: {op!r}")

    def _backoff(self, attempt: int) -> None:
        time.sleep(0.05 * attempt)

    def get(self, table: str, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            response = self.client.get_item(TableName=table, Key=serialize(key), ConsistentRead=True)
        except ClientError as e:
            logger.error(f"Error getting item from {table}: {e}")
            raise StoreUnavailable(f"Could not read from {table}") from e
        item = response.get('Item')
        return deserialize(item) if item else None

    def update(self, op: Update) -> Dict[str, Any]:
        request = self._update_request(op)
        request['ReturnValues'] = 'ALL_NEW'
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.client.update_item(**request)
                return deserialize(response.get('Attributes', {}))
            except ClientError as e:
                code = e.response['Error']['Code']
                if code == 'ConditionalCheckFailedException':
                    raise TransactionCancelled([CONDITION_FAILED])
                if code in RETRYABLE_ERRORS and attempt < self.max_retries:
                    logger.warning(f"Retrying update on {op.table} after {code} (attempt {attempt})")
                    self._backoff(attempt)
                    continue
                logger.error(f"Error updating item in {op.table}: {e}")
                raise StoreUnavailable(f"Could not update {op.table}") from e
        raise StoreUnavailable(f"Could not update {op.table}")

    def transact(self, ops: Sequence[Any]) -> None:
        items = [self._transact_item(op) for op in ops]
        for attempt in range(1, self.max_retries + 1):
            try:
                self.client.transact_write_items(TransactItems=items)
                return
            except ClientError as e:
                code = e.response['Error']['Code']
                if code == 'TransactionCanceledException':
                    reasons = _cancellation_reasons(e)
                    if CONDITION_FAILED in reasons or TRANSACTION_CONFLICT not in reasons:
                        raise TransactionCancelled(reasons)
                    code = TRANSACTION_CONFLICT
                elif code not in RETRYABLE_ERRORS:
                    logger.error(f"Transaction error: {e}")
                    raise StoreUnavailable("Transaction failed") from e
                if attempt < self.max_retries:
                    logger.warning(f"Retrying transaction after {code} (attempt {attempt})")
                    self._backoff(attempt)
        raise StoreUnavailable(f"Transaction still conflicting after {self.max_retries} attempts")

    def _paginate(self, operation: str, **params) -> Iterator[Dict[str, Any]]:
        try:
            for page in self.client.get_paginator(operation).paginate(**params):
                for item in page.get('Items', []):
                    yield deserialize(item)
        except ClientError as e:
            logger.error(f"Error during {operation} on {params.get('TableName')}: {e}")
            raise StoreUnavailable(f"Could not {operation} {params.get('TableName')}") from e

    def query(self, table: str, index: str, value: Any, descending: bool = False) -> Iterator[Dict[str, Any]]:
        hash_attr, _ = self.schemas[table].indexes[index]
        expr = Expression()
        key_condition = f'{expr.name("k", 0, hash_attr)} = {expr.value("k", 0, value)}'
        return self._paginate(
            'query',
            TableName=table,
            IndexName=index,
            KeyConditionExpression=key_condition,
            ScanIndexForward=not descending,
            **expr.params()
        )

    def scan(self, table: str, conditions: Sequence[Check] = ()) -> Iterator[Dict[str, Any]]:
        params = {'TableName': table}
        if conditions:
            expr = Expression()
            params['FilterExpression'] = expr.condition(conditions)
            params.update(expr.params())
        return self._paginate('scan', **params)
