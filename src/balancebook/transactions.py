"""
transactions.py — Double-entry transactions

================================================================================
LIFECYCLE
================================================================================

    DRAFT ──commit()──▶ COMMITTED
      │                    │
      add_entry()          add_entry()  -> EntryAfterCommitError
                           commit()     -> AlreadyCommittedError

commit() runs in two phases:

1. VALIDATE: at least one debit and one credit, a single currency across
   Money lines and accounts, debits == credits (within
   the balance tolerance), then every line is projected on a snapshot of its
   account balance (currency, sign and range checks).
2. APPLY: only when every projection succeeded, lines are applied in
   insertion order through account.debit() / account.credit().

A failure in phase 1 leaves every account and the DRAFT state untouched, so
the caller can fix the lines and commit again.

================================================================================
TWO KINDS OF EQUALITY
================================================================================

is_balanced() compares display values with a fixed tolerance (0.01 by
default) because lines may be raw numbers. Money.equals() is exact. They
answer different questions and are kept apart on purpose.

================================================================================
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .accounts import Account, Amount, Side
from .config import get_settings
from .errors import (
    AlreadyCommittedError,
    EmptyDescriptionError,
    EmptyTransactionError,
    EntryAfterCommitError,
    InvalidAccountError,
    MixedCurrencyCollectionError,
    NegativeAmountError,
    UnbalancedTransactionError,
)
from .logging_config import get_logger
from .money import Money, to_decimal


logger = get_logger("transactions")

_ACCOUNT_CAPABILITIES = ("debit", "credit", "get_balance")


class TransactionState(Enum):
    DRAFT = "draft"
    COMMITTED = "committed"


@dataclass(frozen=True)
class TransactionLine:
    """One posting: non-owning account reference, amount, side."""
    account: Any
    amount: Amount
    side: Side

    @property
    def display_value(self) -> Decimal:
        """Amount as a decimal at display precision (raw numbers as given)."""
        if isinstance(self.amount, Money):
            return self.amount.display_amount
        return to_decimal(self.amount)

    def to_dict(self) -> dict[str, Any]:
        amount = self.amount.to_dict() if isinstance(self.amount, Money) else self.amount
        return {
            "account_id": getattr(self.account, "account_id", None),
            "amount": amount,
            "side": self.side.value,
        }


class Transaction:
    """
    An ordered set of debit/credit lines applied atomically to accounts.

    INVARIANTS:
    - description is non-empty
    - once COMMITTED, lines are frozen and the state never changes again
    - commit() mutates exactly the referenced accounts, in line order,
      or none of them
    """

    def __init__(
        self,
        description: str,
        date: Optional[Union[datetime, date]] = None,
        *,
        transaction_id: Optional[str] = None,
        reference: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        if not isinstance(description, str) or not description.strip():
            raise EmptyDescriptionError()

        self.description = description
        self.date = date if date is not None else datetime.now(timezone.utc)
        self.transaction_id = transaction_id
        self.reference = reference
        self.metadata: dict[str, Any] = dict(metadata or {})
        self._lines: list[TransactionLine] = []
        self._state = TransactionState.DRAFT

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def add_entry(self, account: Any, amount: Amount, side: Union[Side, str]) -> TransactionLine:
        """
        Append a line.

        Raises:
            EntryAfterCommitError: transaction already committed
            InvalidAccountError: account lacks debit/credit/get_balance
            InvalidAmountError / NegativeAmountError: bad amount
            InvalidSideError: side is not debit/credit
        """
        if self._state is TransactionState.COMMITTED:
            raise EntryAfterCommitError(self.description)

        missing = [
            name for name in _ACCOUNT_CAPABILITIES
            if not callable(getattr(account, name, None))
        ]
        if account is None or missing:
            raise InvalidAccountError(account, f"missing {', '.join(missing) or 'account'}")

        value = amount.amount if isinstance(amount, Money) else to_decimal(amount)
        if value < 0:
            raise NegativeAmountError(amount)

        line = TransactionLine(account=account, amount=amount, side=Side.parse(side))
        self._lines.append(line)
        return line

    def debit(self, account: Any, amount: Amount) -> TransactionLine:
        return self.add_entry(account, amount, Side.DEBIT)

    def credit(self, account: Any, amount: Amount) -> TransactionLine:
        return self.add_entry(account, amount, Side.CREDIT)

    # -------------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------------

    def _total(self, side: Side) -> Decimal:
        return sum(
            (line.display_value for line in self._lines if line.side is side),
            Decimal(0),
        )

    def debit_total(self) -> float:
        return float(self._total(Side.DEBIT))

    def credit_total(self) -> float:
        return float(self._total(Side.CREDIT))

    def currencies(self) -> set[str]:
        """Currencies named by Money lines and by Account-typed line accounts."""
        found = set()
        for line in self._lines:
            if isinstance(line.amount, Money):
                found.add(line.amount.currency)
            if isinstance(line.account, Account):
                found.add(line.account.currency)
        return found

    def is_balanced(self) -> bool:
        """Debits equal credits within the configured balance tolerance."""
        difference = abs(self._total(Side.DEBIT) - self._total(Side.CREDIT))
        return difference < get_settings().balance_tolerance

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    def _validate(self) -> None:
        if self._state is TransactionState.COMMITTED:
            raise AlreadyCommittedError(self.description)

        has_debit = any(line.side is Side.DEBIT for line in self._lines)
        has_credit = any(line.side is Side.CREDIT for line in self._lines)
        if not (has_debit and has_credit):
            raise EmptyTransactionError(self.description, has_debit, has_credit)

        # Totals are compared as plain numbers: one currency per transaction
        currencies = self.currencies()
        if len(currencies) > 1:
            raise MixedCurrencyCollectionError(currencies, "commit")

        if not self.is_balanced():
            raise UnbalancedTransactionError(self.debit_total(), self.credit_total())

    def _project(self) -> None:
        """Dry-run every line against a snapshot of its account balance."""
        projected: dict[int, Money] = {}
        for line in self._lines:
            account = line.account
            if isinstance(account, Account):
                start = projected.get(id(account), account.balance)
                projected[id(account)] = account.project(line.side, line.amount, start)

    def commit(self) -> None:
        """
        Validate, then apply every line in insertion order.

        Raises:
            AlreadyCommittedError, EmptyTransactionError, MixedCurrencyCollectionError,
            UnbalancedTransactionError, and any account error found while
            projecting the lines (CurrencyMismatchError, AmountOutOfRangeError...).
            In every case no account has been touched.
        """
        try:
            self._validate()
            self._project()
        except Exception as exc:
            logger.warning(
                "transaction_rejected",
                extra={
                    "description": self.description,
                    "transaction_id": self.transaction_id,
                    "error": getattr(exc, "code", type(exc).__name__),
                },
            )
            raise

        for line in self._lines:
            if line.side is Side.DEBIT:
                line.account.debit(line.amount)
            else:
                line.account.credit(line.amount)

        self._state = TransactionState.COMMITTED
        logger.info(
            "transaction_committed",
            extra={
                "description": self.description,
                "transaction_id": self.transaction_id,
                "lines": len(self._lines),
                "debit_total": str(self._total(Side.DEBIT)),
            },
        )

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    @property
    def state(self) -> TransactionState:
        return self._state

    def is_committed(self) -> bool:
        return self._state is TransactionState.COMMITTED

    def entry_count(self) -> int:
        return len(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def get_entries(self) -> list[TransactionLine]:
        """Copy of the lines; mutating it does not affect the transaction."""
        return list(self._lines)

    def get_details(self) -> list[dict[str, Any]]:
        return [
            {
                "account_name": getattr(line.account, "name", None),
                "amount": line.amount,
                "side": line.side.value,
                "date": self.date,
                "description": self.description,
            }
            for line in self._lines
        ]

    def __repr__(self) -> str:
        return (
            f"Transaction(description={self.description!r}, "
            f"lines={len(self._lines)}, state={self._state.value})"
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def serialize(self) -> dict[str, Any]:
        """
        Plain dict for persistence. Lines reference accounts by their
        externally assigned account_id.
        """
        return {
            "description": self.description,
            "date": self.date.isoformat(),
            "committed": self.is_committed(),
            "transaction_id": self.transaction_id,
            "reference": self.reference,
            "metadata": dict(self.metadata),
            "lines": [line.to_dict() for line in self._lines],
        }

    @classmethod
    def from_data(cls, data: Mapping[str, Any], accounts: Mapping[str, Any]) -> Transaction:
        """
        Rebuild a transaction from serialize() output.

        `accounts` maps account_id to account objects. A committed
        transaction comes back COMMITTED without re-applying its lines.

        Raises:
            InvalidAccountError: a line references an unknown account_id
        """
        raw_date = data.get("date")
        tx = cls(
            data.get("description"),
            _parse_date(raw_date) if raw_date else None,
            transaction_id=data.get("transaction_id"),
            reference=data.get("reference"),
            metadata=data.get("metadata"),
        )

        for line in data.get("lines", []):
            account_id = line.get("account_id")
            if account_id not in accounts:
                raise InvalidAccountError(account_id, "unknown account_id")
            amount = line["amount"]
            if isinstance(amount, Mapping):
                amount = Money.from_dict(amount)
            tx.add_entry(accounts[account_id], amount, line["side"])

        if data.get("committed"):
            tx._state = TransactionState.COMMITTED
        return tx


def _parse_date(value: Union[str, datetime, date]) -> Union[datetime, date]:
    if isinstance(value, (datetime, date)):
        return value
    if "T" in value or " " in value:
        return datetime.fromisoformat(value)
    return date.fromisoformat(value)
