#!/usr/bin/env python3
"""
bookkeeping_demo.py — balancebook walkthrough

================================================================================
THE BUG
================================================================================

    >>> 0.1 + 0.2
    0.30000000000000004

    >>> balance = 0.0
    >>> for _ in range(10): balance += 0.1
    >>> balance == 1.0
    False

A ledger built on float drifts one posting at a time.

================================================================================
THE FIX
================================================================================

Money keeps an integer and a scale. Accounts store Money. Transactions refuse
to touch accounts unless debits equal credits, and touch all of them or none.

================================================================================
"""

import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from balancebook import (
    Asset,
    CurrencyMismatchError,
    Expense,
    Income,
    Liability,
    Money,
    Transaction,
    UnbalancedTransactionError,
    configure_logging,
)
from balancebook import distribution


def demonstrate_money():
    print("=" * 60)
    print("MONEY")
    print("=" * 60)
    print()

    print(">>> 0.1 + 0.2")
    print(0.1 + 0.2)
    total = Money.of(0.1, "USD") + Money.of(0.2, "USD")
    print(">>> Money.of(0.1, 'USD') + Money.of(0.2, 'USD')")
    print(f"{total}  (display number: {total.to_display_number()})")
    print()

    budget = Money.of(100, "USD")
    parts = budget.distribute(3)
    print(f"{budget} in 3 parts: {[str(p) for p in parts]}")
    print(f"Sum of parts equals original: {distribution.total(parts) == budget}")
    print()

    print(">>> Money.of(100, 'USD') + Money.of(100, 'EUR')")
    try:
        Money.of(100, "USD") + Money.of(100, "EUR")
    except CurrencyMismatchError as e:
        print(f"CurrencyMismatchError [{e.code}]: {e}")
    print()


def demonstrate_ledger():
    print("=" * 60)
    print("LEDGER")
    print("=" * 60)
    print()

    cash = Asset("Cash", 1000, "USD")
    rent = Expense("Rent", 0, "USD")
    sales = Income("Sales", 0, "USD")
    loan = Liability("Bank loan", 0, "USD")

    sale = Transaction("Invoice #1")
    sale.add_entry(cash, 250.75, "debit")
    sale.add_entry(sales, 250.75, "credit")
    sale.commit()

    borrow = Transaction("Loan drawdown")
    borrow.add_entry(cash, Money.of(500, "USD"), "debit")
    borrow.add_entry(loan, Money.of(500, "USD"), "credit")
    borrow.commit()

    bad = Transaction("Rent (typo)")
    bad.add_entry(rent, 100, "debit")
    bad.add_entry(cash, 90, "credit")
    try:
        bad.commit()
    except UnbalancedTransactionError as e:
        print(f"Rejected: debits={e.debit_total}, credits={e.credit_total}")
        print()

    for account in (cash, rent, sales, loan):
        print(f"  {account.name:<10} {account.balance.format():>12}")
    print()


def main():
    configure_logging(level=logging.INFO)
    demonstrate_money()
    demonstrate_ledger()


if __name__ == "__main__":
    main()
