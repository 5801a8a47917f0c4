"""
distribution.py — Aggregates and allocation over Money collections

Pure functions; nothing here mutates its arguments. Every function that
combines several Money values requires them to share one currency and fails
with MixedCurrencyCollectionError otherwise (checked before any arithmetic).

INVARIANTS:
- distribute(m, n): exactly n shares, sum == m (when m has no sub-display
  digits), largest and smallest share differ by at most one display unit
- distribute_weighted(m, w): sum == m
- add_tax / extract_tax: net + tax == gross
- apply_discount: discount + final == original
- Allocation.finalize(): sum == total
"""

from __future__ import annotations
from decimal import Decimal, localcontext
from functools import reduce
import re
from typing import Iterable, Optional, Sequence, Union

from .config import get_settings
from .errors import (
    CurrencyMismatchError,
    EmptyCollectionError,
    InvalidAmountError,
    MixedCurrencyCollectionError,
)
from .money import Money, Numeral, RoundingMode, to_decimal


Number = Union[int, float, Decimal]


# ==============================================================================
# HELPERS
# ==============================================================================

def _as_money_list(values: Iterable[Money], operation: str) -> list[Money]:
    items = list(values)
    for item in items:
        if not isinstance(item, Money):
            raise TypeError(
                f"Cannot {operation} {type(item).__name__}: expected Money"
            )
    return items


def _require_same_currency(
    items: Sequence[Money],
    operation: str,
    currency: Optional[str] = None,
) -> None:
    currencies = {m.currency for m in items}
    if currency is not None:
        currencies.add(currency.strip().upper())
    if len(currencies) > 1:
        raise MixedCurrencyCollectionError(currencies, operation)


def _share(template: Money, display_units: int) -> Money:
    """Money of `display_units` minor units, at the template's internal scale."""
    scale = max(template.scale, template.display_scale)
    return Money.from_raw(
        display_units * 10 ** (scale - template.display_scale),
        template.currency,
        scale,
    )


def have_same_currency(values: Iterable[Money]) -> bool:
    items = list(values)
    return len({m.currency for m in items}) <= 1


# ==============================================================================
# AGGREGATES
# ==============================================================================

def total(values: Iterable[Money], currency: Optional[str] = None) -> Money:
    """
    Sum of Money values.

    An empty collection returns Money.zero(currency), with the configured
    default currency when none is given.
    """
    items = _as_money_list(values, "sum")
    if not items:
        return Money.zero(currency)
    _require_same_currency(items, "sum", currency)
    return reduce(lambda acc, m: acc.add(m), items)


def average(values: Iterable[Money]) -> Money:
    """Arithmetic mean, at the internal scale of the sum."""
    items = _as_money_list(values, "average")
    if not items:
        raise EmptyCollectionError("average")
    _require_same_currency(items, "average")
    return total(items).divide(len(items))


def minimum(values: Iterable[Money]) -> Money:
    items = _as_money_list(values, "compare")
    if not items:
        raise EmptyCollectionError("minimum")
    _require_same_currency(items, "compare")
    return reduce(lambda low, m: m if m.is_less_than(low) else low, items)


def maximum(values: Iterable[Money]) -> Money:
    items = _as_money_list(values, "compare")
    if not items:
        raise EmptyCollectionError("maximum")
    _require_same_currency(items, "compare")
    return reduce(lambda high, m: m if m.is_greater_than(high) else high, items)


def sum_numbers(numbers: Iterable[Numeral], currency: Optional[str] = None) -> Money:
    """Sum raw numbers through Money, so 0.1 + 0.2 is exactly 0.3."""
    return total(to_money_list(numbers, currency), currency)


def to_money_list(numbers: Iterable[Numeral], currency: Optional[str] = None) -> list[Money]:
    return [Money.of(n, currency) for n in numbers]


def to_number_list(values: Iterable[Money]) -> list[float]:
    return [m.to_display_number() for m in _as_money_list(values, "convert")]


# ==============================================================================
# DISTRIBUTION
# ==============================================================================

def _check_parts(n: int) -> None:
    limit = get_settings().max_distribution_parts
    if n < 1:
        raise ValueError(f"Cannot distribute to less than 1 part, got: {n}")
    if n > limit:
        raise ValueError(f"n exceeds the limit of {limit} parts")


def distribute(amount: Money, n: int) -> list[Money]:
    """
    Split `amount` into n shares whose sum is EXACTLY `amount`.

    Algorithm (largest remainder on display units):
        units     = amount in display units (cents for USD), ties toward +inf
        base      = floor(units / n)
        remainder = units - base * n
        the first `remainder` shares get base + 1, the others base

    distribute(Money.of(100, "USD"), 3) -> [33.34, 33.33, 33.33]

    Shares keep the internal scale of `amount`. A sub-display residue
    (e.g. 10.005 USD) is rounded away before splitting.

    Raises:
        ValueError: n < 1 or n > max_distribution_parts
    """
    _check_parts(n)
    if n == 1:
        return [amount]

    units = amount.display_units()
    base, remainder = divmod(units, n)
    return [_share(amount, base + (1 if i < remainder else 0)) for i in range(n)]


def distribute_weighted(
    amount: Money,
    weights: Sequence[Number],
    rounding: RoundingMode = RoundingMode.HALF_EVEN,
) -> list[Money]:
    """
    Split `amount` proportionally to `weights`.

    Each share is rounded to whole display units; the rounding residue goes
    to the share with the largest weight so the sum stays exact.

    Raises:
        ValueError: empty, negative or all-zero weights
    """
    if not weights:
        raise ValueError("weights cannot be empty")
    _check_parts(len(weights))
    dec_weights = [to_decimal(w) for w in weights]
    if any(w < 0 for w in dec_weights):
        raise ValueError("weights cannot contain negative values")
    total_weight = sum(dec_weights)
    if total_weight == 0:
        raise ValueError("weights cannot sum to 0")

    units = amount.display_units()
    with localcontext() as ctx:
        ctx.prec = 60
        rounded = [
            int((units * w / total_weight).to_integral_value(rounding=rounding.value))
            for w in dec_weights
        ]

    diff = units - sum(rounded)
    if diff:
        rounded[dec_weights.index(max(dec_weights))] += diff

    return [_share(amount, r) for r in rounded]


# ==============================================================================
# PERCENTAGES, TAX, DISCOUNT
# ==============================================================================

def percentage(amount: Money, percent: Number) -> Money:
    """`percent`% of amount (10 -> 10%), at the amount's internal scale."""
    return amount.multiply(to_decimal(percent) / 100)


def tax(amount: Money, rate: Number) -> Money:
    """Tax due on a net amount at `rate` percent."""
    return percentage(amount, rate)


def add_tax(amount: Money, rate: Number) -> tuple[Money, Money, Money]:
    """
    Net amount -> (net, tax, gross).

    INVARIANT: net + tax == gross
    """
    tax_due = tax(amount, rate)
    return (amount, tax_due, amount.add(tax_due))


def extract_tax(gross: Money, rate: Number) -> tuple[Money, Money, Money]:
    """
    Gross amount -> (net, tax, gross), net = gross / (1 + rate).

    INVARIANT: net + tax == gross (tax is computed as the difference)
    """
    net = gross.divide(1 + to_decimal(rate) / 100)
    return (net, gross.subtract(net), gross)


def discount(amount: Money, percent: Number) -> Money:
    return percentage(amount, percent)


def apply_discount(amount: Money, percent: Number) -> tuple[Money, Money]:
    """
    Returns (discount, final).

    INVARIANT: discount + final == amount
    """
    off = discount(amount, percent)
    return (off, amount.subtract(off))


# ==============================================================================
# PARSING
# ==============================================================================

_CURRENCY_TOKEN = re.compile(r"(?<![A-Za-z])([A-Z]{3})(?![A-Za-z])")
_STRIP = re.compile(r"[$€£¥,\s]")
_NUMERAL = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)")


def parse(text: str, default_currency: Optional[str] = None) -> Money:
    """
    Parse free text such as "$100.50", "EUR 1,234.56" or "99.99 GBP".

    A three-letter upper-case token is the currency, otherwise
    `default_currency` (then the configured default). Symbols, thousands
    separators and whitespace are ignored; the first numeral is the amount.

    Raises:
        InvalidAmountError: no numeral found
    """
    if not isinstance(text, str):
        raise InvalidAmountError(text, "expected a string")

    currency_match = _CURRENCY_TOKEN.search(text)
    currency = currency_match.group(1) if currency_match else default_currency

    cleaned = _STRIP.sub("", text)
    if currency_match:
        cleaned = cleaned.replace(currency_match.group(1), "", 1)
    numeral = _NUMERAL.search(cleaned)
    if numeral is None:
        raise InvalidAmountError(text, "no numeric value found")

    return Money.of(numeral.group(0), currency)


# ==============================================================================
# ALLOCATION
# ==============================================================================

class Allocation:
    """
    Helper for fixed-part allocations of a total.

        parts = (
            Allocation(Money.of(1000, "EUR"))
            .fixed(Money.of(300, "EUR"))
            .fixed(Money.of(200, "EUR"))
            .finalize()
        )
        # [300, 700]: the residue goes to the last part

    INVARIANT: sum(finalize()) == total (always)
    """

    def __init__(self, total_amount: Money):
        if not isinstance(total_amount, Money):
            raise TypeError(f"Allocation needs a Money total, got {type(total_amount).__name__}")
        self._total = total_amount
        self._allocated = Money.from_raw(0, total_amount.currency, total_amount.scale)
        self._parts: list[Money] = []

    def fixed(self, amount: Money) -> Allocation:
        """Allocate a fixed part."""
        if amount.currency != self._total.currency:
            raise CurrencyMismatchError(self._total.currency, amount.currency, "allocation")
        self._parts.append(amount)
        self._allocated = self._allocated.add(amount)
        return self

    def percent(self, pct: Number) -> Allocation:
        """Allocate `pct`% of the total as a fixed part."""
        return self.fixed(percentage(self._total, pct))

    def remainder(self) -> Money:
        """What is still unallocated."""
        return self._total.subtract(self._allocated)

    def finalize(self) -> list[Money]:
        """
        Close the allocation; a non-zero residue is added to the last part
        (or becomes the only part).
        """
        rest = self.remainder()
        if not rest.is_zero():
            if self._parts:
                self._parts[-1] = self._parts[-1].add(rest)
            else:
                self._parts.append(rest)
        return self._parts.copy()
