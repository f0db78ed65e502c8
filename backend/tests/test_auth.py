"""
Tests for caller identity and role guards.
"""
import json

from taskcoin.auth import Caller, authorize, get_caller, get_user_groups, get_user_role, requires_role


def event_with(claims):
    return {'requestContext': {'authorizer': {'claims': claims}}}


class TestGetCaller:

    def test_role_from_custom_claim(self):
        caller = get_caller(event_with({'email': 'b@example.com', 'custom:role': 'buyer', 'name': 'Bea'}))
        assert caller == Caller(email='b@example.com', role='buyer', name='Bea')

    def test_role_from_groups(self):
        event = event_with({'email': 'a@example.com', 'cognito:groups': 'staff,admin'})
        assert get_user_groups(event) == ['staff', 'admin']
        assert get_caller(event).role == 'admin'

    def test_groups_as_list(self):
        event = event_with({'email': 'w@example.com', 'cognito:groups': ['worker']})
        assert get_user_role(event) == 'worker'

    def test_unknown_role_ignored(self):
        event = event_with({'email': 'x@example.com', 'custom:role': 'owner'})
        assert get_caller(event) is None

    def test_missing_claims(self):
        assert get_caller({}) is None
        assert get_caller({'requestContext': {'authorizer': None}}) is None
        assert get_caller(event_with({'custom:role': 'worker'})) is None


class TestAuthorize:

    def test_matching_role(self):
        assert authorize(Caller('a@example.com', 'admin'), 'admin')

    def test_other_role(self):
        assert not authorize(Caller('w@example.com', 'worker'), 'admin')

    def test_no_caller(self):
        assert not authorize(None, 'worker')


class TestRequiresRole:

    def test_passes_caller_through(self):
        @requires_role('buyer', 'admin')
        def handler(event, context, caller):
            return caller

        caller = handler(event_with({'email': 'b@example.com', 'custom:role': 'buyer'}), None)
        assert caller.email == 'b@example.com'

    def test_wrong_role_forbidden(self):
        @requires_role('admin')
        def handler(event, context, caller):
            raise AssertionError("handler must not run")

        response = handler(event_with({'email': 'w@example.com', 'custom:role': 'worker'}), None)
        assert response['statusCode'] == 403
        assert json.loads(response['body'])['error'] == 'Forbidden'

    def test_anonymous_unauthorized(self):
        @requires_role()
        def handler(event, context, caller):
            raise AssertionError("handler must not run")

        assert handler({}, None)['statusCode'] == 401

    def test_any_role_when_none_given(self):
        @requires_role()
        def handler(event, context, caller):
            return caller.role

        assert handler(event_with({'email': 'w@example.com', 'custom:role': 'worker'}), None) == 'worker'
