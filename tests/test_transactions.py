"""
test_transactions.py — Test suite for double-entry transactions

================================================================================
TEST STRUCTURE
================================================================================

1. UNIT TESTS
   Entry validation, balance check and tolerance, commit lifecycle,
   all-or-nothing commit, inspection, serialization, logging.

2. PROPERTY-BASED TESTS (Hypothesis)
   - a balanced transaction moves the same amount on both sides
   - an unbalanced transaction never touches an account

================================================================================
"""

from datetime import date
import logging

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from balancebook import (
    Asset,
    Expense,
    Income,
    Liability,
    Money,
    Side,
    Transaction,
    TransactionState,
)
from balancebook.errors import (
    AlreadyCommittedError,
    AmountOutOfRangeError,
    CurrencyMismatchError,
    EmptyDescriptionError,
    EmptyTransactionError,
    EntryAfterCommitError,
    InvalidAccountError,
    InvalidAmountError,
    InvalidSideError,
    MixedCurrencyCollectionError,
    NegativeAmountError,
    StateError,
    UnbalancedTransactionError,
)


# ==============================================================================
# TEST HELPERS
# ==============================================================================

class RecordingAccount:
    """Duck-typed account that records the order of postings."""

    def __init__(self, name, log):
        self.name = name
        self.log = log

    def debit(self, amount):
        self.log.append((self.name, "debit", amount))

    def credit(self, amount):
        self.log.append((self.name, "credit", amount))

    def get_balance(self):
        return 0


@pytest.fixture
def ledger():
    return {
        "cash": Asset("Cash", 0, "USD", account_id="cash"),
        "sales": Income("Sales", 0, "USD", account_id="sales"),
        "rent": Expense("Rent", 0, "USD", account_id="rent"),
        "loan": Liability("Loan", 0, "USD", account_id="loan"),
    }


# ==============================================================================
# UNIT TESTS: Entries
# ==============================================================================

class TestEntries:

    @pytest.mark.parametrize("description", ["", "   ", None])
    def test_empty_description(self, description):
        with pytest.raises(EmptyDescriptionError):
            Transaction(description)

    def test_add_entry_returns_line(self, ledger):
        tx = Transaction("Sale")
        line = tx.add_entry(ledger["cash"], 100, "debit")
        assert line.side is Side.DEBIT
        assert line.amount == 100
        assert line.account is ledger["cash"]
        assert tx.entry_count() == 1

    def test_shortcuts(self, ledger):
        tx = Transaction("Sale")
        tx.debit(ledger["cash"], 10)
        tx.credit(ledger["sales"], 10)
        assert [line.side for line in tx.get_entries()] == [Side.DEBIT, Side.CREDIT]

    @pytest.mark.parametrize("side", ["DEBIT", "left", "", None, 1])
    def test_invalid_side(self, ledger, side):
        with pytest.raises(InvalidSideError):
            Transaction("Sale").add_entry(ledger["cash"], 10, side)

    @pytest.mark.parametrize("account", [None, object(), "Cash"])
    def test_invalid_account(self, account):
        with pytest.raises(InvalidAccountError):
            Transaction("Sale").add_entry(account, 10, "debit")

    @pytest.mark.parametrize("amount", [-5, -0.01, Money.of(-5, "USD")])
    def test_negative_amount(self, ledger, amount):
        with pytest.raises(NegativeAmountError):
            Transaction("Sale").add_entry(ledger["cash"], amount, "debit")

    def test_invalid_amount(self, ledger):
        with pytest.raises(InvalidAmountError):
            Transaction("Sale").add_entry(ledger["cash"], "lots", "debit")

    def test_entry_after_commit(self, ledger):
        tx = Transaction("Sale")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], 100, "credit")
        tx.commit()
        with pytest.raises(EntryAfterCommitError):
            tx.add_entry(ledger["cash"], 1, "debit")
        assert tx.entry_count() == 2

    def test_duck_typed_account(self):
        log = []
        tx = Transaction("Transfer")
        tx.add_entry(RecordingAccount("a", log), 5, "debit")
        tx.add_entry(RecordingAccount("b", log), 5, "credit")
        tx.commit()
        assert log == [("a", "debit", 5), ("b", "credit", 5)]


# ==============================================================================
# UNIT TESTS: Balance check
# ==============================================================================

class TestBalance:

    def test_totals(self, ledger):
        tx = Transaction("Mixed")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["rent"], Money.of(50, "USD"), "debit")
        tx.add_entry(ledger["sales"], 150, "credit")
        assert tx.debit_total() == 150.0
        assert tx.credit_total() == 150.0
        assert tx.is_balanced()

    def test_float_inputs_balance(self, ledger):
        tx = Transaction("Float")
        tx.add_entry(ledger["cash"], 0.1, "debit")
        tx.add_entry(ledger["cash"], 0.2, "debit")
        tx.add_entry(ledger["sales"], 0.3, "credit")
        assert tx.is_balanced()

    @pytest.mark.parametrize("credit,balanced", [
        (100, True),
        (100.005, True),
        (100.009, True),
        (100.01, False),
        (100.02, False),
    ])
    def test_tolerance(self, ledger, credit, balanced):
        tx = Transaction("Tolerance")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], credit, "credit")
        assert tx.is_balanced() is balanced

    def test_money_lines_compare_at_display_precision(self, ledger):
        tx = Transaction("Precision")
        tx.add_entry(ledger["cash"], Money.of("100.004", "USD"), "debit")
        tx.add_entry(ledger["sales"], Money.of(100, "USD"), "credit")
        assert tx.is_balanced()


# ==============================================================================
# UNIT TESTS: Commit
# ==============================================================================

class TestCommit:

    def test_asset_income_sale(self, ledger):
        tx = Transaction("Invoice #42")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], 100, "credit")
        tx.commit()

        assert ledger["cash"].get_balance() == 100.0
        assert ledger["sales"].get_balance() == 100.0
        assert tx.is_committed()
        assert tx.state is TransactionState.COMMITTED

    def test_expense_liability(self, ledger):
        tx = Transaction("Rent on credit")
        tx.add_entry(ledger["rent"], 1200, "debit")
        tx.add_entry(ledger["loan"], 1200, "credit")
        tx.commit()
        assert ledger["rent"].get_balance() == 1200.0
        assert ledger["loan"].get_balance() == 1200.0

    def test_unbalanced(self, ledger):
        tx = Transaction("Typo")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], 90, "credit")

        with pytest.raises(UnbalancedTransactionError) as exc_info:
            tx.commit()

        assert exc_info.value.debit_total == 100
        assert exc_info.value.credit_total == 90
        assert exc_info.value.code == "UNBALANCED_TRANSACTION"
        assert ledger["cash"].get_balance() == 0.0
        assert ledger["sales"].get_balance() == 0.0
        assert not tx.is_committed()

    def test_unbalanced_can_be_fixed_and_retried(self, ledger):
        tx = Transaction("Typo")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], 90, "credit")
        with pytest.raises(UnbalancedTransactionError):
            tx.commit()

        tx.add_entry(ledger["sales"], 10, "credit")
        tx.commit()
        assert ledger["sales"].get_balance() == 100.0

    def test_already_committed(self, ledger):
        tx = Transaction("Sale")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], 100, "credit")
        tx.commit()

        with pytest.raises(AlreadyCommittedError):
            tx.commit()
        assert ledger["cash"].get_balance() == 100.0

    @pytest.mark.parametrize("sides", [[], ["debit"], ["credit", "credit"]])
    def test_missing_side(self, ledger, sides):
        tx = Transaction("Half")
        for side in sides:
            tx.add_entry(ledger["cash"], 0, side)
        with pytest.raises(EmptyTransactionError) as exc_info:
            tx.commit()
        assert isinstance(exc_info.value, StateError)

    def test_commit_is_all_or_nothing(self):
        sales = Income("Sales", 0, "USD")
        cash = Asset("Cash", 9_000_000_000, "USD")
        tx = Transaction("Overflow on the second line")
        tx.add_entry(sales, 9_000_000_000, "credit")
        tx.add_entry(cash, 9_000_000_000, "debit")

        with pytest.raises(AmountOutOfRangeError):
            tx.commit()
        assert sales.get_balance() == 0.0
        assert cash.get_balance() == 9_000_000_000.0
        assert tx.state is TransactionState.DRAFT

    def test_lines_in_two_currencies_are_rejected(self):
        cash = Asset("Cash", Money.of(0, "USD"))
        sales = Income("Sales", Money.of(0, "EUR"))
        tx = Transaction("USD against EUR")
        tx.add_entry(cash, Money.of(100, "USD"), "debit")
        tx.add_entry(sales, Money.of(100, "EUR"), "credit")

        with pytest.raises(MixedCurrencyCollectionError) as exc_info:
            tx.commit()
        assert exc_info.value.currencies == ["EUR", "USD"]
        assert isinstance(exc_info.value, CurrencyMismatchError)
        assert cash.get_balance() == Money.of(0, "USD")
        assert sales.get_balance() == Money.of(0, "EUR")
        assert not tx.is_committed()

    def test_raw_lines_on_accounts_in_two_currencies_are_rejected(self):
        cash = Asset("Cash", 0, "USD")
        sales = Income("Sales", 0, "EUR")
        tx = Transaction("Raw numbers")
        tx.add_entry(cash, 100, "debit")
        tx.add_entry(sales, 100, "credit")
        assert tx.currencies() == {"USD", "EUR"}

        with pytest.raises(MixedCurrencyCollectionError):
            tx.commit()
        assert cash.get_balance() == 0.0
        assert sales.get_balance() == 0.0

    def test_money_line_against_account_currency(self):
        cash = Asset("Cash", 0, "USD")
        sales = Income("Sales", 0, "USD")
        tx = Transaction("Wrong line currency")
        tx.add_entry(cash, 100, "debit")
        tx.add_entry(sales, Money.of(100, "EUR"), "credit")

        with pytest.raises(CurrencyMismatchError):
            tx.commit()
        assert cash.get_balance() == 0.0
        assert tx.state is TransactionState.DRAFT

    def test_lines_applied_in_order(self):
        log = []
        a, b, c = (RecordingAccount(n, log) for n in "abc")
        tx = Transaction("Order")
        tx.add_entry(c, 3, "credit")
        tx.add_entry(a, 1, "debit")
        tx.add_entry(b, 2, "debit")
        tx.commit()
        assert [entry[0] for entry in log] == ["c", "a", "b"]

    def test_only_referenced_accounts_change(self, ledger):
        tx = Transaction("Sale")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], 100, "credit")
        tx.commit()
        assert ledger["rent"].get_balance() == 0.0
        assert ledger["loan"].get_balance() == 0.0

    def test_same_account_on_several_lines(self, ledger):
        tx = Transaction("Net")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["cash"], 30, "credit")
        tx.add_entry(ledger["sales"], 70, "credit")
        tx.commit()
        assert ledger["cash"].get_balance() == 70.0
        assert ledger["sales"].get_balance() == 70.0

    def test_commit_logs(self, ledger, caplog):
        caplog.set_level(logging.INFO, logger="balancebook")
        tx = Transaction("Logged", transaction_id="tx-1")
        tx.add_entry(ledger["cash"], 1, "debit")
        tx.add_entry(ledger["sales"], 1, "credit")
        tx.commit()

        records = [r for r in caplog.records if r.name == "balancebook.transactions"]
        assert records[-1].getMessage() == "transaction_committed"
        assert records[-1].transaction_id == "tx-1"

    def test_rejection_logs(self, ledger, caplog):
        caplog.set_level(logging.INFO, logger="balancebook")
        tx = Transaction("Rejected")
        tx.add_entry(ledger["cash"], 1, "debit")
        tx.add_entry(ledger["sales"], 2, "credit")
        with pytest.raises(UnbalancedTransactionError):
            tx.commit()

        warning = [r for r in caplog.records if r.levelno == logging.WARNING][-1]
        assert warning.getMessage() == "transaction_rejected"
        assert warning.error == "UNBALANCED_TRANSACTION"


# ==============================================================================
# UNIT TESTS: Inspection and serialization
# ==============================================================================

class TestInspection:

    def test_get_entries_is_a_copy(self, ledger):
        tx = Transaction("Copy")
        tx.add_entry(ledger["cash"], 1, "debit")
        entries = tx.get_entries()
        entries.clear()
        assert tx.entry_count() == 1
        assert len(tx) == 1

    def test_get_details(self, ledger):
        when = date(2026, 1, 15)
        tx = Transaction("Details", when)
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], 100, "credit")
        details = tx.get_details()
        assert details[0] == {
            "account_name": "Cash",
            "amount": 100,
            "side": "debit",
            "date": when,
            "description": "Details",
        }
        assert details[1]["account_name"] == "Sales"

    def test_default_date(self):
        assert Transaction("Now").date is not None

    def test_repr(self):
        assert repr(Transaction("Sale")) == "Transaction(description='Sale', lines=0, state=draft)"


class TestSerialization:

    def test_serialize(self, ledger):
        tx = Transaction("Sale", date(2026, 1, 15), transaction_id="t-1", reference="INV-42")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], Money.of(100, "USD"), "credit")
        assert tx.serialize() == {
            "description": "Sale",
            "date": "2026-01-15",
            "committed": False,
            "transaction_id": "t-1",
            "reference": "INV-42",
            "metadata": {},
            "lines": [
                {"account_id": "cash", "amount": 100, "side": "debit"},
                {
                    "account_id": "sales",
                    "amount": {"amount": "100.000000", "currency": "USD", "scale": 6},
                    "side": "credit",
                },
            ],
        }

    def test_round_trip_draft(self, ledger):
        tx = Transaction("Sale", date(2026, 1, 15))
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], Money.of(100, "USD"), "credit")

        restored = Transaction.from_data(tx.serialize(), ledger)
        assert restored.date == date(2026, 1, 15)
        assert restored.entry_count() == 2
        assert restored.get_entries()[1].amount == Money.of(100, "USD")

        restored.commit()
        assert ledger["cash"].get_balance() == 100.0

    def test_round_trip_committed_does_not_reapply(self, ledger):
        tx = Transaction("Sale")
        tx.add_entry(ledger["cash"], 100, "debit")
        tx.add_entry(ledger["sales"], 100, "credit")
        tx.commit()

        restored = Transaction.from_data(tx.serialize(), ledger)
        assert restored.is_committed()
        assert restored.date == tx.date
        assert ledger["cash"].get_balance() == 100.0

    def test_unknown_account_id(self, ledger):
        data = {
            "description": "Ghost",
            "lines": [{"account_id": "nope", "amount": 1, "side": "debit"}],
        }
        with pytest.raises(InvalidAccountError):
            Transaction.from_data(data, ledger)


# ==============================================================================
# PROPERTY-BASED TESTS (Hypothesis)
# ==============================================================================

class TestCommitProperties:

    @given(cents=st.integers(min_value=0, max_value=10**9))
    @settings(max_examples=200)
    def test_balanced_commit_moves_both_sides(self, cents):
        cash = Asset("Cash", 0, "USD")
        sales = Income("Sales", 0, "USD")
        amount = Money.of_minor(cents, "USD")

        tx = Transaction("Sale")
        tx.add_entry(cash, amount, "debit")
        tx.add_entry(sales, amount, "credit")
        tx.commit()

        assert cash.balance == amount
        assert sales.balance == amount

    @given(
        debit=st.integers(min_value=0, max_value=10**9),
        credit=st.integers(min_value=0, max_value=10**9),
    )
    @settings(max_examples=200)
    def test_unbalanced_commit_touches_nothing(self, debit, credit):
        if debit == credit:
            credit += 1
        cash = Asset("Cash", 0, "USD")
        sales = Income("Sales", 0, "USD")

        tx = Transaction("Sale")
        tx.add_entry(cash, Money.of_minor(debit, "USD"), "debit")
        tx.add_entry(sales, Money.of_minor(credit, "USD"), "credit")
        with pytest.raises(UnbalancedTransactionError):
            tx.commit()

        assert cash.balance.is_zero()
        assert sales.balance.is_zero()


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
