"""
Tests for the Account Service: registration and balance mutations.
"""
from concurrent.futures import ThreadPoolExecutor

import pytest

from taskcoin.errors import AlreadyExists, InsufficientFunds, InvalidInput, NotFound


class TestRegistration:

    def test_starting_balance_by_role(self, ledger):
        """Workers start with 10 coins, buyers with 50, admins with none."""
        assert ledger.accounts.register('W', 'w@example.com', 'worker')['coin'] == 10
        assert ledger.accounts.register('B', 'b@example.com', 'buyer')['coin'] == 50
        assert ledger.accounts.register('A', 'a@example.com', 'admin')['coin'] == 0

    def test_role_defaults_to_worker(self, ledger):
        user = ledger.accounts.register('No Role', 'norole@example.com')
        assert user['role'] == 'worker'
        assert user['coin'] == 10

    def test_duplicate_email_rejected(self, ledger, buyer):
        with pytest.raises(AlreadyExists):
            ledger.accounts.register('Again', buyer['email'], 'worker')
        # Original record untouched
        assert ledger.accounts.get_user(buyer['email'])['role'] == 'buyer'

    def test_unknown_role_rejected(self, ledger):
        with pytest.raises(InvalidInput):
            ledger.accounts.register('X', 'x@example.com', 'superuser')

    def test_get_missing_user(self, ledger):
        with pytest.raises(NotFound):
            ledger.accounts.get_user('ghost@example.com')


class TestAdjustBalance:

    def test_credit_and_debit(self, ledger, buyer):
        assert ledger.accounts.adjust_balance(buyer['email'], 15) == 65
        assert ledger.accounts.adjust_balance(buyer['email'], -65) == 0
        assert ledger.accounts.get_balance(buyer['email']) == 0

    def test_overdraft_rejected_and_balance_unchanged(self, ledger, worker):
        with pytest.raises(InsufficientFunds):
            ledger.accounts.adjust_balance(worker['email'], -11)
        assert ledger.accounts.get_balance(worker['email']) == 10

    def test_missing_user(self, ledger):
        with pytest.raises(NotFound):
            ledger.accounts.adjust_balance('ghost@example.com', 5)
        with pytest.raises(NotFound):
            ledger.accounts.adjust_balance('ghost@example.com', -5)

    def test_concurrent_debits_never_overdraw(self, ledger, buyer):
        """Ten racing debits of 10 against 50 coins: exactly five succeed."""
        def debit(_):
            try:
                ledger.accounts.adjust_balance(buyer['email'], -10)
                return True
            except InsufficientFunds:
                return False

        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(pool.map(debit, range(10)))

        assert results.count(True) == 5
        assert ledger.accounts.get_balance(buyer['email']) == 0


class TestAdministration:

    def test_update_role_keeps_balance(self, ledger, worker):
        user = ledger.accounts.update_role(worker['email'], 'buyer')
        assert user['role'] == 'buyer'
        assert user['coin'] == 10

    def test_update_role_validation(self, ledger, worker):
        with pytest.raises(InvalidInput):
            ledger.accounts.update_role(worker['email'], 'owner')
        with pytest.raises(NotFound):
            ledger.accounts.update_role('ghost@example.com', 'buyer')

    def test_remove_user(self, ledger, worker):
        ledger.accounts.remove_user(worker['email'])
        with pytest.raises(NotFound):
            ledger.accounts.get_user(worker['email'])
        with pytest.raises(NotFound):
            ledger.accounts.remove_user(worker['email'])

    def test_admin_emails(self, ledger, admin, buyer):
        ledger.accounts.register('Second Admin', 'admin2@example.com', 'admin')
        assert sorted(ledger.accounts.admin_emails()) == ['admin2@example.com', 'admin@example.com']

    def test_list_users(self, ledger, buyer, worker):
        emails = [u['email'] for u in ledger.accounts.list_users()]
        assert emails == [buyer['email'], worker['email']]
