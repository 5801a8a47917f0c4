"""
balancebook — Double-entry bookkeeping primitives

Fixed-point Money that never drifts, accounts with debit/credit polarity, and
transactions that only touch accounts when debits equal credits.

================================================================================
QUICK START
================================================================================

Money:

    from balancebook import Money

    total = Money.of(0.1, "USD") + Money.of(0.2, "USD")
    total.to_display_number()            # 0.3, not 0.30000000000000004

    Money.of(100, "USD").distribute(3)   # [33.34, 33.33, 33.33]

Accounts and transactions:

    from balancebook import Asset, Income, Transaction

    cash = Asset("Cash", 0, "USD")
    sales = Income("Sales", 0, "USD")

    tx = Transaction("Invoice #42")
    tx.add_entry(cash, 100, "debit")
    tx.add_entry(sales, 100, "credit")
    tx.commit()

    cash.get_balance()                   # 100.0
    sales.get_balance()                  # 100.0

Errors are typed (balancebook.errors) and carry structured fields:

    try:
        tx.commit()
    except UnbalancedTransactionError as e:
        print(e.debit_total, e.credit_total)

================================================================================
"""

from .accounts import (
    ACCOUNT_CLASSES,
    Account,
    AccountType,
    Asset,
    Equity,
    Expense,
    Income,
    Liability,
    Polarity,
    RepresentationMode,
    Side,
)
from .config import LedgerSettings, configure, get_settings
from .distribution import Allocation
from .errors import (
    AlreadyCommittedError,
    AmountOutOfRangeError,
    CurrencyMismatchError,
    DivisionByZeroError,
    EmptyCollectionError,
    EmptyDescriptionError,
    EmptyNameError,
    EmptyTransactionError,
    EntryAfterCommitError,
    InvalidAccountError,
    InvalidAmountError,
    InvalidSideError,
    LedgerError,
    MixedCurrencyCollectionError,
    NegativeAmountError,
    StateError,
    UnbalancedTransactionError,
    ValidationError,
)
from .logging_config import configure_logging, get_logger
from .money import Currency, Money, RoundingMode, get_currency, register_currency
from .transactions import Transaction, TransactionLine, TransactionState

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Money
    "Money",
    "Currency",
    "RoundingMode",
    "get_currency",
    "register_currency",
    "Allocation",
    # Accounts
    "Account",
    "AccountType",
    "ACCOUNT_CLASSES",
    "Asset",
    "Equity",
    "Expense",
    "Income",
    "Liability",
    "Polarity",
    "RepresentationMode",
    "Side",
    # Transactions
    "Transaction",
    "TransactionLine",
    "TransactionState",
    # Config / logging
    "LedgerSettings",
    "configure",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Errors
    "LedgerError",
    "ValidationError",
    "StateError",
    "AlreadyCommittedError",
    "AmountOutOfRangeError",
    "CurrencyMismatchError",
    "DivisionByZeroError",
    "EmptyCollectionError",
    "EmptyDescriptionError",
    "EmptyNameError",
    "EmptyTransactionError",
    "EntryAfterCommitError",
    "InvalidAccountError",
    "InvalidAmountError",
    "InvalidSideError",
    "MixedCurrencyCollectionError",
    "NegativeAmountError",
    "UnbalancedTransactionError",
]
