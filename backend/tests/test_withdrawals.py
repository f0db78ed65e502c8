"""
Tests for the Withdrawal State Machine.
"""
import pytest

from taskcoin.errors import InsufficientFunds, InvalidInput, InvalidTransition, MissingField, NotFound


@pytest.fixture
def funded_worker(ledger, worker):
    """Worker holding 20 coins."""
    ledger.accounts.adjust_balance(worker['email'], 10)
    return worker


class TestRequest:

    def test_overdraw_rejected(self, ledger, funded_worker):
        with pytest.raises(InsufficientFunds):
            ledger.withdrawals.request(funded_worker['email'], 25, 1.25, 'stripe')

        assert ledger.accounts.get_balance(funded_worker['email']) == 20
        assert ledger.withdrawals.list_for_worker(funded_worker['email']) == []

    def test_request_debits_immediately(self, ledger, funded_worker):
        withdrawal = ledger.withdrawals.request(funded_worker['email'], 20, 1, 'bkash', '01700000000')

        assert withdrawal['status'] == 'pending'
        assert withdrawal['withdrawalCoin'] == 20
        assert withdrawal['workerName'] == 'Wes Worker'
        assert ledger.accounts.get_balance(funded_worker['email']) == 0

    def test_admins_notified(self, ledger, funded_worker, admin):
        second_admin = ledger.accounts.register('Bo Admin', 'bo@example.com', 'admin')

        ledger.withdrawals.request(funded_worker['email'], 20, 1, 'bkash')

        for email in (admin['email'], second_admin['email']):
            notifications = ledger.notifications.list_for(email)
            assert len(notifications) == 1
            assert '20 coins' in notifications[0]['message']
        assert ledger.notifications.list_for(funded_worker['email']) == []

    def test_missing_fields(self, ledger, funded_worker):
        with pytest.raises(MissingField) as exc:
            ledger.withdrawals.request(funded_worker['email'], 10, None, '')
        assert set(exc.value.fields) == {'withdrawalAmount', 'paymentSystem'}

    def test_invalid_amounts(self, ledger, funded_worker):
        with pytest.raises(InvalidInput):
            ledger.withdrawals.request(funded_worker['email'], 0, 1, 'bkash')
        with pytest.raises(InvalidInput):
            ledger.withdrawals.request(funded_worker['email'], 10, -1, 'bkash')

    def test_unknown_worker(self, ledger):
        with pytest.raises(NotFound):
            ledger.withdrawals.request('ghost@example.com', 10, 1, 'bkash')


class TestApprove:

    def test_worker_debited_exactly_once(self, ledger, funded_worker):
        withdrawal = ledger.withdrawals.request(funded_worker['email'], 15, 0.75, 'nagad')
        assert ledger.accounts.get_balance(funded_worker['email']) == 5

        approved = ledger.withdrawals.approve(withdrawal['withdrawalId'])

        assert approved['status'] == 'approved'
        assert ledger.accounts.get_balance(funded_worker['email']) == 5
        messages = [n['message'] for n in ledger.notifications.list_for(funded_worker['email'])]
        assert len(messages) == 1 and 'has been paid' in messages[0]

    def test_second_approval_rejected(self, ledger, funded_worker):
        withdrawal = ledger.withdrawals.request(funded_worker['email'], 15, 0.75, 'nagad')
        ledger.withdrawals.approve(withdrawal['withdrawalId'])

        with pytest.raises(InvalidTransition):
            ledger.withdrawals.approve(withdrawal['withdrawalId'])
        assert ledger.accounts.get_balance(funded_worker['email']) == 5

    def test_missing_withdrawal(self, ledger):
        with pytest.raises(NotFound):
            ledger.withdrawals.approve('missing')


class TestListing:

    def test_pending_queue_and_history(self, ledger, funded_worker):
        first = ledger.withdrawals.request(funded_worker['email'], 5, 0.25, 'bkash')
        second = ledger.withdrawals.request(funded_worker['email'], 5, 0.25, 'bkash')
        ledger.withdrawals.approve(first['withdrawalId'])

        assert [w['withdrawalId'] for w in ledger.withdrawals.list_pending()] == [second['withdrawalId']]
        history = ledger.withdrawals.list_for_worker(funded_worker['email'])
        assert {w['withdrawalId'] for w in history} == {first['withdrawalId'], second['withdrawalId']}
