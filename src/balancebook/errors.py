"""
errors.py — Typed exceptions for balancebook

================================================================================
HIERARCHY
================================================================================

    LedgerError (base, every class has a `code`)
    |
    +-- ValidationError (also ValueError)
    |   +-- EmptyNameError
    |   +-- EmptyDescriptionError
    |   +-- NegativeAmountError
    |   +-- InvalidAmountError
    |   +-- InvalidSideError
    |   +-- InvalidAccountError
    |   +-- AmountOutOfRangeError
    |   +-- DivisionByZeroError (also ZeroDivisionError)
    |   +-- EmptyCollectionError
    |   +-- CurrencyMismatchError (also TypeError)
    |       +-- MixedCurrencyCollectionError
    |
    +-- StateError
        +-- EntryAfterCommitError
        +-- AlreadyCommittedError
        +-- EmptyTransactionError
        +-- UnbalancedTransactionError

Callers catch by type and read structured attributes, never parse messages:

    try:
        tx.commit()
    except UnbalancedTransactionError as e:
        report(e.code, e.debit_total, e.credit_total)

================================================================================
"""

from __future__ import annotations
from typing import Any, Iterable


class LedgerError(Exception):
    """Base class for every balancebook error."""

    code: str = "LEDGER_ERROR"


# ==============================================================================
# VALIDATION ERRORS
# ==============================================================================

class ValidationError(LedgerError, ValueError):
    """Input rejected before any state was touched."""

    code: str = "VALIDATION_ERROR"


class EmptyNameError(ValidationError):
    code: str = "EMPTY_NAME"

    def __init__(self, field: str = "name"):
        self.field = field
        super().__init__(f"{field} cannot be empty")


class EmptyDescriptionError(ValidationError):
    code: str = "EMPTY_DESCRIPTION"

    def __init__(self, field: str = "description"):
        self.field = field
        super().__init__(f"Transaction {field} cannot be empty")


class NegativeAmountError(ValidationError):
    code: str = "NEGATIVE_AMOUNT"

    def __init__(self, amount: Any, field: str = "amount"):
        self.amount = amount
        self.field = field
        super().__init__(f"{field} must not be negative, got {amount}")


class InvalidAmountError(ValidationError):
    """Value is not a usable numeral (bool, None, NaN, garbage string...)."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, value: Any, reason: str = "not a number"):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid amount {value!r}: {reason}")


class InvalidSideError(ValidationError):
    code: str = "INVALID_SIDE"

    def __init__(self, side: Any):
        self.side = side
        self.expected = ("debit", "credit")
        super().__init__(f"Entry side must be 'debit' or 'credit', got {side!r}")


class InvalidAccountError(ValidationError):
    """Object cannot act as an account (missing capability or unknown id)."""

    code: str = "INVALID_ACCOUNT"

    def __init__(self, account: Any, reason: str):
        self.account = account
        self.reason = reason
        super().__init__(f"Invalid account {account!r}: {reason}")


class AmountOutOfRangeError(ValidationError):
    code: str = "AMOUNT_OUT_OF_RANGE"

    def __init__(self, amount: Any, limit: int, scale: int, currency: str):
        self.amount = amount
        self.limit = limit
        self.scale = scale
        self.currency = currency
        super().__init__(
            f"Amount {amount} exceeds the maximum safe value ({limit:,}) "
            f"for {currency} with {scale} decimal places"
        )


class DivisionByZeroError(ValidationError, ZeroDivisionError):
    code: str = "DIVISION_BY_ZERO"

    def __init__(self, dividend: Any = None):
        self.dividend = dividend
        super().__init__(f"Cannot divide {dividend} by zero")


class EmptyCollectionError(ValidationError):
    code: str = "EMPTY_COLLECTION"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot compute {operation} of an empty collection")


class CurrencyMismatchError(ValidationError, TypeError):
    code: str = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, actual: str, operation: str = "operation"):
        self.expected = expected
        self.actual = actual
        self.operation = operation
        super().__init__(
            f"Currency mismatch in {operation}: expected {expected}, got {actual}"
        )


class MixedCurrencyCollectionError(CurrencyMismatchError):
    code: str = "MIXED_CURRENCY_COLLECTION"

    def __init__(self, currencies: Iterable[str], operation: str = "aggregate"):
        self.currencies = sorted(set(currencies))
        ValidationError.__init__(
            self,
            f"Cannot {operation} a collection with mixed currencies: "
            f"{', '.join(self.currencies)}",
        )
        self.expected = self.currencies[0] if self.currencies else None
        self.actual = self.currencies[1] if len(self.currencies) > 1 else None
        self.operation = operation


# ==============================================================================
# STATE ERRORS
# ==============================================================================

class StateError(LedgerError):
    """Operation not allowed in the current transaction state."""

    code: str = "STATE_ERROR"


class EntryAfterCommitError(StateError):
    code: str = "ENTRY_AFTER_COMMIT"

    def __init__(self, description: str):
        self.description = description
        super().__init__(f"Cannot modify committed transaction '{description}'")


class AlreadyCommittedError(StateError):
    code: str = "ALREADY_COMMITTED"

    def __init__(self, description: str):
        self.description = description
        super().__init__(f"Transaction '{description}' has already been committed")


class EmptyTransactionError(StateError):
    code: str = "EMPTY_TRANSACTION"

    def __init__(self, description: str, has_debit: bool = False, has_credit: bool = False):
        self.description = description
        self.has_debit = has_debit
        self.has_credit = has_credit
        super().__init__(
            f"Transaction '{description}' must have at least one debit and one credit"
        )


class UnbalancedTransactionError(StateError):
    code: str = "UNBALANCED_TRANSACTION"

    def __init__(self, debit_total: float, credit_total: float):
        self.debit_total = debit_total
        self.credit_total = credit_total
        super().__init__(
            f"Transaction must balance (debits must equal credits). "
            f"Debits: {debit_total}, Credits: {credit_total}"
        )
