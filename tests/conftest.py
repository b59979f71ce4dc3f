"""Shared fixtures: an in-memory DynamoDB table, a fake quote session, an API client."""

import copy
import re
from decimal import Decimal

import pytest
from botocore.exceptions import ClientError

import db.dynamodb
from config import get_settings

USER_ID = "user-1"


def _client_error(code, operation):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _matches(condition, item):
    expr = condition.get_expression()
    op = expr["operator"]
    values = expr["values"]

    if op == "AND":
        return all(_matches(v, item) for v in values)
    if op == "OR":
        return any(_matches(v, item) for v in values)
    if op == "=":
        return item.get(values[0].name) == values[1]
    if op == "attribute_exists":
        return values[0].name in item
    if op == "attribute_not_exists":
        return values[0].name not in item
    raise NotImplementedError(f"condition operator {op}")


def _reject_floats(value):
    # boto3 refuses Python floats
    if isinstance(value, float):
        raise TypeError("Float types are not supported. Use Decimal types instead.")
    if isinstance(value, dict):
        for v in value.values():
            _reject_floats(v)
    if isinstance(value, (list, tuple)):
        for v in value:
            _reject_floats(v)


class FakeTable:
    def __init__(self, name, sort_key):
        self.name = name
        self.sort_key = sort_key
        self.items = {}
        self.failures = {}

    def _key(self, key):
        return (key["user_id"], key[self.sort_key])

    def _maybe_fail(self, operation):
        error = self.failures.pop(operation, None)
        if error:
            raise error

    def fail_next(self, operation, code="ProvisionedThroughputExceededException"):
        self.failures[operation] = _client_error(code, operation)

    def put_item(self, Item, ConditionExpression=None):
        self._maybe_fail("put_item")
        _reject_floats(Item)
        key = self._key(Item)
        if ConditionExpression is not None and not _matches(ConditionExpression, self.items.get(key, {})):
            raise _client_error("ConditionalCheckFailedException", "PutItem")
        self.items[key] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key):
        self._maybe_fail("get_item")
        item = self.items.get(self._key(Key))
        return {"Item": copy.deepcopy(item)} if item else {}

    def delete_item(self, Key):
        self._maybe_fail("delete_item")
        self.items.pop(self._key(Key), None)
        return {}

    def query(self, KeyConditionExpression, FilterExpression=None, Select=None, **kwargs):
        self._maybe_fail("query")
        found = [
            copy.deepcopy(item) for item in self.items.values()
            if _matches(KeyConditionExpression, item)
            and (FilterExpression is None or _matches(FilterExpression, item))
        ]
        if Select == "COUNT":
            return {"Count": len(found)}
        return {"Items": found, "Count": len(found)}

    def update_item(self, Key, UpdateExpression, ExpressionAttributeValues=None,
                    ExpressionAttributeNames=None, ConditionExpression=None, ReturnValues=None):
        self._maybe_fail("update_item")
        values = ExpressionAttributeValues or {}
        names = ExpressionAttributeNames or {}
        _reject_floats(values)

        key = self._key(Key)
        item = self.items.get(key)
        if ConditionExpression is not None and not _matches(ConditionExpression, item or {}):
            raise _client_error("ConditionalCheckFailedException", "UpdateItem")
        if item is None:
            item = dict(Key)

        for action, body in re.findall(r"(SET|ADD)\s+(.*?)(?=\s+(?:SET|ADD)\s+|$)", UpdateExpression.strip()):
            for part in body.split(","):
                if action == "SET":
                    attr, placeholder = [p.strip() for p in part.split("=")]
                    item[names.get(attr, attr)] = copy.deepcopy(values[placeholder])
                else:
                    attr, placeholder = part.split()
                    attr = names.get(attr, attr)
                    item[attr] = item.get(attr, Decimal(0)) + values[placeholder]

        self.items[key] = item
        if ReturnValues == "ALL_NEW":
            return {"Attributes": copy.deepcopy(item)}
        return {}


class FakeDynamoDB:
    def __init__(self):
        settings = get_settings()
        self.tables = {
            settings.strategies_table: FakeTable(settings.strategies_table, "strategy_id"),
            settings.trades_table: FakeTable(settings.trades_table, "trade_id"),
        }

    def Table(self, name):
        return self.tables[name]

    @property
    def strategies(self):
        return self.tables[get_settings().strategies_table]

    @property
    def trades(self):
        return self.tables[get_settings().trades_table]


class FakeResponse:
    def __init__(self, status_code=200, payload=None, invalid_json=False):
        self.status_code = status_code
        self._payload = payload
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session``; replays queued responses or errors."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    closed = False

    def close(self):
        self.closed = True

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def dynamo(monkeypatch):
    fake = FakeDynamoDB()
    monkeypatch.setattr(db.dynamodb, "get_dynamodb", lambda: fake)
    return fake


@pytest.fixture
def api_client(dynamo):
    from fastapi.testclient import TestClient

    from auth_dependency import get_current_user, get_quote_client
    from main import app
    from services.quotes import QuoteClient

    session = FakeSession()

    app.dependency_overrides[get_current_user] = lambda: {
        "user_id": USER_ID,
        "email": "trader@example.com",
        "username": "trader",
        "access_token": "access-token",
        "claims": {},
    }
    app.dependency_overrides[get_quote_client] = lambda: QuoteClient(
        provider="rapidapi", api_key="test-key", session=session
    )

    client = TestClient(app)
    client.quote_session = session
    yield client

    app.dependency_overrides.clear()
