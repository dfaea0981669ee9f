"""
Tests for AccountService: name rules, cascading delete, statistics.
"""

import pytest

from app.errors import DuplicateNameError, NotFoundError, ValidationError


class TestCreateAndRename:
    def test_create_trims_name(self, accounts):
        account = accounts.create_account("  Wallet  ")
        assert account.name == "Wallet"
        assert accounts.get_account_by_id(account.id).name == "Wallet"

    @pytest.mark.parametrize("name", ["Main Account", " Main Account ", "Main Account\n"])
    def test_duplicate_names_rejected(self, accounts, name):
        accounts.create_account("Main Account")
        with pytest.raises(DuplicateNameError):
            accounts.create_account(name)
        assert len(accounts.get_all_accounts()) == 1

    def test_names_are_case_sensitive(self, accounts):
        accounts.create_account("Main Account")
        accounts.create_account("main account")
        assert len(accounts.get_all_accounts()) == 2

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_rejected(self, accounts, name):
        with pytest.raises(ValidationError):
            accounts.create_account(name)

    def test_rename(self, accounts):
        account = accounts.create_account("Old")
        renamed = accounts.update_account(account, " New ")
        assert renamed.name == "New"
        assert renamed.updated_at > account.updated_at

    def test_rename_to_own_name_is_allowed(self, accounts):
        account = accounts.create_account("Same")
        assert accounts.update_account(account, "Same").name == "Same"

    def test_rename_collision(self, accounts):
        accounts.create_account("Cash")
        other = accounts.create_account("Bank")
        with pytest.raises(DuplicateNameError):
            accounts.update_account(other, "Cash ")
        assert accounts.get_account_by_id(other.id).name == "Bank"

    def test_rename_missing(self, accounts):
        account = accounts.create_account("Gone")
        accounts.delete_account(account)
        with pytest.raises(NotFoundError):
            accounts.update_account(account, "Back")

    def test_name_free_again_after_delete(self, accounts):
        account = accounts.create_account("Temp")
        accounts.delete_account(account)
        assert accounts.create_account("Temp").name == "Temp"


class TestDelete:
    def test_cascade_removes_transactions(self, accounts, transactions):
        doomed = accounts.create_account("Doomed")
        kept = accounts.create_account("Kept")
        for amount in (10, 20, 30):
            transactions.add_transaction(doomed.id, "cash_in", amount)
        keeper = transactions.add_transaction(kept.id, "cash_in", 5)

        assert accounts.delete_account(doomed) == 3

        assert accounts.get_account_by_id(doomed.id) is None
        assert transactions.get_account_transactions(doomed.id) == []
        assert [tx.id for tx in transactions.get_all_transactions()] == [keeper.id]

    def test_delete_missing(self, accounts):
        account = accounts.create_account("Once")
        accounts.delete_account(account)
        with pytest.raises(NotFoundError):
            accounts.delete_account(account)

    def test_delete_all(self, accounts, transactions):
        a = accounts.create_account("A")
        transactions.add_transaction(a.id, "cash_in", 1)
        accounts.create_account("B")

        assert accounts.delete_all_accounts() == 2
        assert accounts.get_all_accounts() == []
        assert transactions.get_all_transactions() == []


class TestStats:
    def test_account_with_stats(self, accounts, transactions):
        account = accounts.create_account("Main Account")
        transactions.add_transaction(account.id, "cash_in", 100)
        latest = transactions.add_transaction(account.id, "cash_out", 40)

        stats = accounts.get_account_with_stats(account.id)
        assert stats.account.id == account.id
        assert stats.balance == 60
        assert stats.transaction_count == 2
        assert stats.last_transaction_date == latest.date
        assert accounts.get_account_balance(account.id) == 60

    def test_stats_for_empty_account(self, accounts):
        account = accounts.create_account("Empty")
        stats = accounts.get_account_with_stats(account.id)
        assert stats.balance == 0
        assert stats.transaction_count == 0
        assert stats.last_transaction_date is None

    def test_stats_not_found(self, accounts):
        assert accounts.get_account_with_stats("nope") is None

    def test_all_stats_newest_account_first(self, accounts, transactions):
        first = accounts.create_account("First")
        second = accounts.create_account("Second")
        transactions.add_transaction(first.id, "cash_in", 3)

        all_stats = accounts.get_all_accounts_with_stats()
        assert [s.account.name for s in all_stats] == ["Second", "First"]
        assert [s.balance for s in all_stats] == [0, 3]
        assert [a.id for a in accounts.get_all_accounts()] == [second.id, first.id]


class TestDefaultAccount:
    def test_creates_when_empty(self, accounts):
        account = accounts.get_or_create_default_account("Main Account")
        assert account.name == "Main Account"
        assert accounts.get_or_create_default_account("Main Account").id == account.id

    def test_prefers_oldest_existing(self, accounts):
        oldest = accounts.create_account("Personal")
        accounts.create_account("Business")
        assert accounts.get_or_create_default_account("Main Account").id == oldest.id
        assert len(accounts.get_all_accounts()) == 2
