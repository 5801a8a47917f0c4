"""
accounts.py — Ledger accounts with fixed debit/credit polarity

================================================================================
POLARITY
================================================================================

    | account type | polarity        | debit    | credit   |
    |--------------|-----------------|----------|----------|
    | Asset        | DEBIT_POSITIVE  | increase | decrease |
    | Expense      | DEBIT_POSITIVE  | increase | decrease |
    | Liability    | CREDIT_POSITIVE | decrease | increase |
    | Equity       | CREDIT_POSITIVE | decrease | increase |
    | Income       | CREDIT_POSITIVE | decrease | increase |

Polarity is pinned at construction and never changes.

================================================================================
REPRESENTATION MODE
================================================================================

The balance is always stored as Money. What get_balance() hands back depends
on how the account was built:

    Asset("Cash", 100)                      -> NUMBER mode, get_balance() -> 100.0
    Asset("Cash", Money.of(100, "USD"))     -> MONEY mode,  get_balance() -> Money

Callers that always want Money read the `balance` property instead.

================================================================================
"""

from __future__ import annotations
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Union

from .config import get_settings
from .errors import (
    CurrencyMismatchError,
    EmptyNameError,
    InvalidAmountError,
    InvalidSideError,
    NegativeAmountError,
)
from .logging_config import get_logger
from .money import Money, Numeral


logger = get_logger("accounts")

Amount = Union[Numeral, Money]


# ==============================================================================
# ENUMS
# ==============================================================================

class Polarity(Enum):
    """Whether debits increase or decrease the balance."""
    DEBIT_POSITIVE = "debit_positive"
    CREDIT_POSITIVE = "credit_positive"


class RepresentationMode(Enum):
    """Type family returned by Account.get_balance()."""
    NUMBER = "number"
    MONEY = "money"


class Side(Enum):
    """Debit or credit designation of a posting."""
    DEBIT = "debit"
    CREDIT = "credit"

    @classmethod
    def parse(cls, value: Union[Side, str]) -> Side:
        """Accept Side members or their string values ("debit", "credit")."""
        if isinstance(value, Side):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise InvalidSideError(value)


class AccountType(Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"

    @property
    def polarity(self) -> Polarity:
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return Polarity.DEBIT_POSITIVE
        return Polarity.CREDIT_POSITIVE


# ==============================================================================
# ACCOUNT
# ==============================================================================

class Account:
    """
    A named balance holder.

    INVARIANTS:
    - name is non-empty
    - initial balance is non-negative
    - polarity and representation mode never change after construction
    - the balance is replaced (never mutated) and only by debit()/credit()
    - the balance currency is the account currency, forever

    Extra caller data goes in `metadata`, never in ad hoc attributes.
    """

    account_type: ClassVar[Optional[AccountType]] = None

    def __init__(
        self,
        name: str,
        balance: Amount = 0,
        *,
        polarity: Union[Polarity, str],
        currency: Optional[str] = None,
        account_id: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        if not isinstance(name, str) or not name.strip():
            raise EmptyNameError("Account name")

        self._name = name
        self._polarity = Polarity(polarity)
        self.account_id = account_id
        self.metadata: dict[str, Any] = dict(metadata or {})

        if isinstance(balance, Money):
            if currency is not None and currency.strip().upper() != balance.currency:
                raise CurrencyMismatchError(currency.strip().upper(), balance.currency, "account opening")
            if balance.is_negative():
                raise NegativeAmountError(balance, "initial balance")
            self._mode = RepresentationMode.MONEY
            self._balance = balance
        else:
            opening = Money.of(balance, get_settings().account_currency if currency is None else currency)
            if opening.is_negative():
                raise NegativeAmountError(balance, "initial balance")
            self._mode = RepresentationMode.NUMBER
            self._balance = opening

    # -------------------------------------------------------------------------
    # Postings
    # -------------------------------------------------------------------------

    def to_money(self, amount: Amount) -> Money:
        """
        Normalize a posting amount into this account's currency.

        Numbers are read in the account currency; Money must already be in it.

        Raises:
            CurrencyMismatchError, NegativeAmountError, InvalidAmountError
        """
        if isinstance(amount, Money):
            if amount.currency != self.currency:
                raise CurrencyMismatchError(self.currency, amount.currency, f"posting to '{self._name}'")
            money = amount
        else:
            money = Money.of(amount, self.currency)

        if money.is_negative():
            raise NegativeAmountError(amount)
        return money

    def project(self, side: Union[Side, str], amount: Amount, start: Optional[Money] = None) -> Money:
        """
        Balance that posting `amount` on `side` would produce, without
        touching the account. `start` defaults to the current balance.
        """
        side = Side.parse(side)
        money = self.to_money(amount)
        start = self._balance if start is None else start
        if (side is Side.DEBIT) == self.is_debit_positive:
            return start.add(money)
        return start.subtract(money)

    def debit(self, amount: Amount) -> None:
        self._post(Side.DEBIT, amount)

    def credit(self, amount: Amount) -> None:
        self._post(Side.CREDIT, amount)

    def _post(self, side: Side, amount: Amount) -> None:
        new_balance = self.project(side, amount)
        self._balance = new_balance
        logger.debug(
            "account_%s", side.value,
            extra={
                "account": self._name,
                "account_id": self.account_id,
                "side": side.value,
                "amount": str(amount),
                "balance": str(new_balance),
            },
        )

    # -------------------------------------------------------------------------
    # Balance and properties
    # -------------------------------------------------------------------------

    def get_balance(self) -> Union[float, Money]:
        """Balance in the representation the account was opened with."""
        if self._mode is RepresentationMode.NUMBER:
            return self._balance.to_display_number()
        return self._balance

    @property
    def balance(self) -> Money:
        """Balance as Money, whatever the representation mode."""
        return self._balance

    @property
    def name(self) -> str:
        return self._name

    @property
    def currency(self) -> str:
        return self._balance.currency

    @property
    def polarity(self) -> Polarity:
        return self._polarity

    @property
    def is_debit_positive(self) -> bool:
        return self._polarity is Polarity.DEBIT_POSITIVE

    @property
    def representation_mode(self) -> RepresentationMode:
        return self._mode

    def is_number_mode(self) -> bool:
        return self._mode is RepresentationMode.NUMBER

    def is_money_mode(self) -> bool:
        return self._mode is RepresentationMode.MONEY

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, balance={self._balance})"

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def serialize(self) -> dict[str, Any]:
        """Plain dict for persistence; the inverse of from_data()."""
        return {
            "name": self._name,
            "balance": self._balance.to_dict(),
            "polarity": self._polarity.value,
            "representation_mode": self._mode.value,
            "currency": self.currency,
            "type": self.account_type.value if self.account_type else None,
            "account_id": self.account_id,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> Account:
        """
        Rebuild an account from serialize() output.

        Called on Account, the concrete class comes from data["type"];
        called on a subclass, that subclass is used. The representation
        mode and the exact balance (including a negative one) are restored.
        """
        if not isinstance(data, Mapping):
            raise InvalidAmountError(data, "account data must be a mapping")

        balance_data = data.get("balance") or {}
        currency = data.get("currency") or balance_data.get("currency")
        mode = RepresentationMode(data.get("representation_mode", RepresentationMode.MONEY.value))

        if balance_data:
            balance = Money.from_dict({**balance_data, "currency": balance_data.get("currency") or currency})
        else:
            balance = Money.zero(currency or get_settings().account_currency)
        opening: Amount = Money.zero(balance.currency) if mode is RepresentationMode.MONEY else 0

        target = cls
        if cls is Account and data.get("type"):
            target = ACCOUNT_CLASSES[AccountType(data["type"])]

        common = {
            "currency": balance.currency,
            "account_id": data.get("account_id"),
            "metadata": data.get("metadata"),
        }
        if target is Account:
            account = Account(data.get("name"), opening, polarity=data.get("polarity"), **common)
        else:
            account = target(data.get("name"), opening, **common)

        account._balance = balance
        return account


# ==============================================================================
# TYPED ACCOUNTS
# ==============================================================================

class _TypedAccount(Account):
    """Account whose polarity comes from its AccountType."""

    def __init__(
        self,
        name: str,
        balance: Amount = 0,
        currency: Optional[str] = None,
        *,
        account_id: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(
            name,
            balance,
            polarity=self.account_type.polarity,
            currency=currency,
            account_id=account_id,
            metadata=metadata,
        )


class Asset(_TypedAccount):
    """Increases on debit, decreases on credit."""
    account_type = AccountType.ASSET


class Expense(_TypedAccount):
    """Increases on debit, decreases on credit."""
    account_type = AccountType.EXPENSE


class Liability(_TypedAccount):
    """Increases on credit, decreases on debit."""
    account_type = AccountType.LIABILITY


class Equity(_TypedAccount):
    """Increases on credit, decreases on debit."""
    account_type = AccountType.EQUITY


class Income(_TypedAccount):
    """Increases on credit, decreases on debit."""
    account_type = AccountType.INCOME


ACCOUNT_CLASSES: dict[AccountType, type[Account]] = {
    cls.account_type: cls for cls in (Asset, Expense, Liability, Equity, Income)
}
