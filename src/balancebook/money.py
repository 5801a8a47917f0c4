"""
money.py — Domain Primitive per importi monetari a virgola fissa

================================================================================
DESIGN PRINCIPLES
================================================================================

1. RAPPRESENTAZIONE INTERNA
   Un intero (minor_units) e una scala: importo = minor_units / 10^scale.
   Mai floating point internamente.

2. DUE PRECISIONI
   - display scale: decimali convenzionali della valuta (USD=2, JPY=0, BTC=8)
   - internal scale: almeno 6 decimali, per non perdere precisione
     sotto il centesimo nei calcoli intermedi (moltiplicazioni, divisioni)

3. TYPE SAFETY
   Operazioni tra valute diverse sollevano CurrencyMismatchError (TypeError).
   Nessuna conversione implicita tra valute, mai.

4. IMMUTABILITA
   Frozen dataclass. Ogni operazione restituisce una nuova istanza.

5. LIMITI ESPLICITI
   Ogni istanza rispetta un limite di magnitudine per scala, così che
   importo * 10^scale resti nel range di interi esatti di un float (2^53 - 1).
   Sforare solleva AmountOutOfRangeError, mai troncamento silenzioso.

6. UGUAGLIANZA ESATTA
   Money.equals() confronta minor_units E scale. Nessuna tolleranza.

================================================================================
ESEMPIO
================================================================================

    >>> a = Money.of(0.1, "USD")
    >>> b = Money.of(0.2, "USD")
    >>> (a + b).to_display_number()
    0.3

    >>> Money.of(100, "USD").divide(3)
    Money('33.333333', 'USD')

================================================================================
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import (
    Decimal,
    InvalidOperation,
    localcontext,
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_UP,
)
from enum import Enum
from typing import Optional, Union

from .config import MAX_SAFE_INTEGER, get_settings
from .errors import (
    AmountOutOfRangeError,
    CurrencyMismatchError,
    DivisionByZeroError,
    InvalidAmountError,
)


Numeral = Union[int, float, Decimal, str]

# Precisione del contesto Decimal per i calcoli intermedi.
# Ampiamente sopra le cifre di un qualsiasi importo valido.
_DECIMAL_PRECISION = 60


# ==============================================================================
# CURRENCY DEFINITIONS (ISO 4217)
# ==============================================================================

@dataclass(frozen=True)
class Currency:
    """
    Valuta con relativa display precision (decimali della minor unit).

    ISO 4217 definisce codice alfabetico, codice numerico e minor unit.
    Qui usiamo codice, minor unit, simbolo e nome per il display.
    """
    code: str
    decimals: int
    symbol: str
    name: str

    @property
    def multiplier(self) -> int:
        """Fattore di conversione major -> minor unit."""
        return 10 ** self.decimals


_CURRENCIES: dict[str, Currency] = {
    c.code: c for c in (
        Currency("CURR", 2, "¤", "Generic Currency"),
        Currency("USD", 2, "$", "US Dollar"),
        Currency("EUR", 2, "€", "Euro"),
        Currency("GBP", 2, "£", "British Pound"),
        Currency("JPY", 0, "¥", "Japanese Yen"),
        Currency("CAD", 2, "C$", "Canadian Dollar"),
        Currency("AUD", 2, "A$", "Australian Dollar"),
        Currency("CHF", 2, "CHF", "Swiss Franc"),
        Currency("CNY", 2, "¥", "Chinese Yuan"),
        Currency("MXN", 2, "$", "Mexican Peso"),
        Currency("KWD", 3, "KD", "Kuwaiti Dinar"),
        Currency("BTC", 8, "₿", "Bitcoin"),
    )
}

# Valute non registrate: 2 decimali, il codice come simbolo
_DEFAULT_DECIMALS = 2


def _normalize_code(code: str) -> str:
    if not isinstance(code, str) or not code.strip():
        raise InvalidAmountError(code, "currency code must be a non-empty string")
    return code.strip().upper()


def get_currency(code: str) -> Currency:
    """Restituisce la valuta registrata, o una generica a 2 decimali."""
    code = _normalize_code(code)
    currency = _CURRENCIES.get(code)
    if currency is None:
        return Currency(code, _DEFAULT_DECIMALS, code, code)
    return currency


def register_currency(
    code: str,
    decimals: int,
    symbol: Optional[str] = None,
    name: Optional[str] = None,
) -> Currency:
    """Registra (o sovrascrive) una valuta. Vale per le istanze create dopo."""
    code = _normalize_code(code)
    if decimals < 0:
        raise ValueError(f"decimals deve essere >= 0, ricevuto: {decimals}")
    currency = Currency(code, decimals, symbol or code, name or code)
    _CURRENCIES[code] = currency
    return currency


# ==============================================================================
# SAFE VALUE LIMITS
# ==============================================================================

# |importo| <= limite  =>  |importo * 10^scale| <= 2^53 - 1
SAFE_VALUE_LIMITS: dict[int, int] = {
    scale: MAX_SAFE_INTEGER // 10 ** scale for scale in range(13)
}


def safe_value_limit(scale: int) -> int:
    """Limite di magnitudine (in major units) per una data scala."""
    max_safe = get_settings().max_safe_integer
    if max_safe == MAX_SAFE_INTEGER and scale in SAFE_VALUE_LIMITS:
        return SAFE_VALUE_LIMITS[scale]
    # Oltre 15 decimali il limite resta fermo
    return max_safe // 10 ** min(scale, 15)


# ==============================================================================
# ROUNDING STRATEGIES
# ==============================================================================

class RoundingMode(Enum):
    """
    Strategie di arrotondamento (valori = costanti del modulo decimal).

    - HALF_UP: arrotondamento commerciale (0.5 -> 1), default per il display
    - HALF_EVEN: banker's rounding, minimizza bias statistico
    - HALF_DOWN: 0.5 -> 0
    - DOWN: sempre verso zero (truncation)
    - UP: sempre via da zero
    - FLOOR / CEILING: verso -inf / +inf
    """
    HALF_UP = ROUND_HALF_UP
    HALF_EVEN = ROUND_HALF_EVEN
    HALF_DOWN = ROUND_HALF_DOWN
    DOWN = ROUND_DOWN
    UP = ROUND_UP
    FLOOR = ROUND_FLOOR
    CEILING = ROUND_CEILING


# ==============================================================================
# CONVERSIONI
# ==============================================================================

def to_decimal(value: Numeral) -> Decimal:
    """
    Converte un numerale (int, float, Decimal, stringa) in Decimal.

    I float passano dalla loro rappresentazione più corta (repr), così
    0.1 diventa Decimal("0.1") e non 0.1000000000000000055511151231257827.

    Raises:
        InvalidAmountError: bool, None, NaN, infinito, stringa non numerica
    """
    if isinstance(value, bool):
        raise InvalidAmountError(value, "booleans are not amounts")
    if isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, Decimal):
        result = value
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidAmountError(value) from None
    else:
        raise InvalidAmountError(value, f"unsupported type {type(value).__name__}")

    if not result.is_finite():
        raise InvalidAmountError(value, "amount must be finite")
    return result


def decimal_places(value: Decimal) -> int:
    """Numero di decimali presenti nel numerale (1.50 -> 2, 1e-7 -> 7, 1e3 -> 0)."""
    exponent = value.as_tuple().exponent
    return max(0, -exponent)


def _raw_to_decimal(minor_units: int, scale: int) -> Decimal:
    """minor_units / 10^scale, esatto (nessun arrotondamento di contesto)."""
    sign = 1 if minor_units < 0 else 0
    digits = tuple(int(d) for d in str(abs(minor_units)))
    return Decimal((sign, digits, -scale))


def _scaled_integer(value: Decimal, scale: int, rounding: str = ROUND_HALF_UP) -> int:
    """round(value * 10^scale) come intero."""
    with localcontext() as ctx:
        ctx.prec = _DECIMAL_PRECISION
        return int(value.scaleb(scale).to_integral_value(rounding=rounding))


def _display_rounding(value: Decimal, rounding: Optional[RoundingMode]) -> str:
    """
    Costante decimal per arrotondare alla display scale.

    Senza rounding esplicito la metà va verso +inf: 0.005 -> 0.01,
    -0.005 -> 0.00, -2.675 -> -2.67 (come il Math.round dei client JS).
    """
    if rounding is not None:
        return rounding.value
    return ROUND_HALF_DOWN if value < 0 else ROUND_HALF_UP


def _coerce_factor(value: object, operation: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise TypeError(
            f"Money può essere {operation} solo per un numero, "
            f"non {type(value).__name__}"
        )
    return to_decimal(value)


# ==============================================================================
# MONEY CLASS
# ==============================================================================

@dataclass(frozen=True, slots=True)
class Money:
    """
    Importo a virgola fissa con valuta.

    INVARIANTI:
    1. _minor_units è sempre int: importo = _minor_units / 10^_scale
    2. _scale >= display scale della valuta (salvo override esplicito)
    3. |importo| <= safe_value_limit(_scale)
    4. Operazioni tra valute diverse sollevano CurrencyMismatchError
    5. equals() è esatto: stessi minor_units, stessa scale, stessa valuta

    USAGE:
        price = Money.of("19.99", "EUR")
        total = price * 3                    # 59.97 EUR
        parts = total.distribute(2)          # [29.99, 29.98] (somma esatta)

    SERIALIZATION:
        to_dict() -> {"amount": "59.970000", "currency": "EUR", "scale": 6}
        L'importo viaggia come stringa decimale, MAI come float.
    """
    _minor_units: int
    _scale: int
    _currency: str
    _display_scale: int

    def __post_init__(self) -> None:
        if isinstance(self._minor_units, bool) or not isinstance(self._minor_units, int):
            raise InvalidAmountError(self._minor_units, "minor units must be an int")
        if self._scale < 0:
            raise ValueError(f"scale deve essere >= 0, ricevuto: {self._scale}")

        limit = safe_value_limit(self._scale)
        if abs(self._minor_units) > limit * 10 ** self._scale:
            raise AmountOutOfRangeError(
                _raw_to_decimal(self._minor_units, self._scale),
                limit,
                self._scale,
                self._currency,
            )

    # -------------------------------------------------------------------------
    # Costruttori
    # -------------------------------------------------------------------------

    @classmethod
    def of(
        cls,
        amount: Numeral,
        currency: Optional[str] = None,
        *,
        min_internal_scale: Optional[int] = None,
        scale: Optional[int] = None,
    ) -> Money:
        """
        Costruttore generico da major units (euro, dollari, ecc.).

        La scala interna è il massimo tra:
        - i decimali presenti nell'input ("10.125" -> 3)
        - la display scale della valuta (USD -> 2, JPY -> 0)
        - la scala interna minima (default 6, vedi LedgerSettings)

        Con scale=... la scala è imposta e l'input viene arrotondato HALF_UP.

        Raises:
            InvalidAmountError: input non numerico
            AmountOutOfRangeError: importo oltre il limite per la scala
        """
        settings = get_settings()
        info = get_currency(settings.default_currency if currency is None else currency)
        value = to_decimal(amount)

        if scale is None:
            floor = (
                settings.min_internal_scale
                if min_internal_scale is None
                else min_internal_scale
            )
            scale = max(decimal_places(value), info.decimals, floor)
        elif scale < 0:
            raise ValueError(f"scale deve essere >= 0, ricevuto: {scale}")

        # Controllo preliminare: evita di costruire interi enormi per niente
        limit = safe_value_limit(scale)
        if abs(value) > limit:
            raise AmountOutOfRangeError(value, limit, scale, info.code)

        return cls(_scaled_integer(value, scale), scale, info.code, info.decimals)

    @classmethod
    def from_raw(cls, minor_units: int, currency: str, scale: int) -> Money:
        """
        Costruttore dalla rappresentazione interna (intero + scala).
        Nessuna conversione, massima precisione.
        """
        info = get_currency(currency)
        return cls(minor_units, scale, info.code, info.decimals)

    @classmethod
    def of_minor(cls, units: int, currency: Optional[str] = None) -> Money:
        """
        Costruttore da display units intere (centesimi, cents, yen, satoshi).

        Money.of_minor(3334, "USD") == Money.of("33.34", "USD")
        """
        if isinstance(units, bool) or not isinstance(units, int):
            raise InvalidAmountError(units, "display units must be an int")
        info = get_currency(get_settings().default_currency if currency is None else currency)
        scale = max(info.decimals, get_settings().min_internal_scale)
        return cls(units * 10 ** (scale - info.decimals), scale, info.code, info.decimals)

    @classmethod
    def zero(cls, currency: Optional[str] = None) -> Money:
        """Zero per una data valuta. Utile come valore iniziale per total()."""
        return cls.of(0, currency)

    # -------------------------------------------------------------------------
    # Helpers di scala e valuta
    # -------------------------------------------------------------------------

    def _check_same_currency(self, other: object, operation: str) -> None:
        if not isinstance(other, Money):
            raise TypeError(
                f"Operazione non permessa: Money {operation} {type(other).__name__}. "
                f"Usa Money.of() per convertire."
            )
        if self._currency != other._currency:
            raise CurrencyMismatchError(self._currency, other._currency, operation)

    def _rescaled(self, scale: int) -> int:
        """minor_units portati a una scala >= quella corrente (esatto)."""
        if scale == self._scale:
            return self._minor_units
        return self._minor_units * 10 ** (scale - self._scale)

    def _aligned(self, other: Money) -> tuple[int, int, int]:
        scale = max(self._scale, other._scale)
        return self._rescaled(scale), other._rescaled(scale), scale

    def _with_minor(self, minor_units: int, scale: Optional[int] = None) -> Money:
        return Money(
            minor_units,
            self._scale if scale is None else scale,
            self._currency,
            self._display_scale,
        )

    # -------------------------------------------------------------------------
    # Operazioni aritmetiche
    # -------------------------------------------------------------------------

    def add(self, other: Money) -> Money:
        """Somma esatta alla scala maggiore dei due operandi."""
        self._check_same_currency(other, "+")
        a, b, scale = self._aligned(other)
        return self._with_minor(a + b, scale)

    def subtract(self, other: Money) -> Money:
        """Differenza esatta alla scala maggiore dei due operandi."""
        self._check_same_currency(other, "-")
        a, b, scale = self._aligned(other)
        return self._with_minor(a - b, scale)

    def multiply(self, factor: Union[int, float, Decimal]) -> Money:
        """
        Moltiplica per un numero.

        Il risultato resta alla STESSA scala dell'operando (arrotondamento
        HALF_UP all'ultima cifra interna): moltiplicazioni ripetute non
        gonfiano la scala.
        """
        f = _coerce_factor(factor, "moltiplicato")
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PRECISION
            product = Decimal(self._minor_units) * f
            return self._with_minor(int(product.to_integral_value(rounding=ROUND_HALF_UP)))

    def divide(self, divisor: Union[int, float, Decimal]) -> Money:
        """
        Divide per un numero, alla stessa scala dell'operando.

        Raises:
            DivisionByZeroError: divisor == 0
        """
        d = _coerce_factor(divisor, "diviso")
        if d == 0:
            raise DivisionByZeroError(self)
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PRECISION
            quotient = Decimal(self._minor_units) / d
            return self._with_minor(int(quotient.to_integral_value(rounding=ROUND_HALF_UP)))

    def negate(self) -> Money:
        return self._with_minor(-self._minor_units)

    def __add__(self, other: Money) -> Money:
        return self.add(other)

    def __sub__(self, other: Money) -> Money:
        return self.subtract(other)

    def __mul__(self, factor: Union[int, float, Decimal]) -> Money:
        return self.multiply(factor)

    def __rmul__(self, factor: Union[int, float, Decimal]) -> Money:
        return self.multiply(factor)

    def __truediv__(self, divisor: Union[int, float, Decimal]) -> Money:
        return self.divide(divisor)

    def __neg__(self) -> Money:
        return self.negate()

    def __abs__(self) -> Money:
        return self._with_minor(abs(self._minor_units))

    def round_to(
        self,
        decimals: int,
        rounding: RoundingMode = RoundingMode.HALF_UP,
    ) -> Money:
        """
        Arrotonda il valore a `decimals` cifre, mantenendo la scala interna.

        Money.of("10.456", "USD").round_to(2) -> 10.460000 USD
        """
        if decimals < 0:
            raise ValueError(f"decimals deve essere >= 0, ricevuto: {decimals}")
        quantum = Decimal(1).scaleb(-decimals)
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PRECISION
            rounded = self.amount.quantize(quantum, rounding=rounding.value)
        return self._with_minor(_scaled_integer(rounded, self._scale))

    def distribute(self, n: int) -> list[Money]:
        """Scorciatoia per distribution.distribute(self, n)."""
        from .distribution import distribute
        return distribute(self, n)

    # -------------------------------------------------------------------------
    # Comparazione
    # -------------------------------------------------------------------------

    def equals(self, other: object) -> bool:
        """Uguaglianza ESATTA: stessi minor_units, stessa scala, stessa valuta."""
        if not isinstance(other, Money):
            return False
        return (
            self._currency == other._currency
            and self._minor_units == other._minor_units
            and self._scale == other._scale
        )

    def compare_to(self, other: Money) -> int:
        """-1, 0, 1 dopo aver portato entrambi alla scala comune."""
        self._check_same_currency(other, "compare")
        a, b, _ = self._aligned(other)
        return (a > b) - (a < b)

    def is_greater_than(self, other: Money) -> bool:
        return self.compare_to(other) > 0

    def is_greater_than_or_equal(self, other: Money) -> bool:
        return self.compare_to(other) >= 0

    def is_less_than(self, other: Money) -> bool:
        return self.compare_to(other) < 0

    def is_less_than_or_equal(self, other: Money) -> bool:
        return self.compare_to(other) <= 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Money):
            return self.equals(other)
        return NotImplemented

    def __lt__(self, other: Money) -> bool:
        return self.is_less_than(other)

    def __le__(self, other: Money) -> bool:
        return self.is_less_than_or_equal(other)

    def __gt__(self, other: Money) -> bool:
        return self.is_greater_than(other)

    def __ge__(self, other: Money) -> bool:
        return self.is_greater_than_or_equal(other)

    def __hash__(self) -> int:
        return hash((self._minor_units, self._scale, self._currency))

    def is_zero(self) -> bool:
        return self._minor_units == 0

    def is_positive(self) -> bool:
        return self._minor_units > 0

    def is_negative(self) -> bool:
        return self._minor_units < 0

    # -------------------------------------------------------------------------
    # Proprietà e output
    # -------------------------------------------------------------------------

    @property
    def minor_units(self) -> int:
        """Intero interno (importo * 10^scale). Per persistenza/calcoli."""
        return self._minor_units

    @property
    def scale(self) -> int:
        return self._scale

    @property
    def display_scale(self) -> int:
        return self._display_scale

    @property
    def currency(self) -> str:
        """Codice valuta."""
        return self._currency

    @property
    def currency_info(self) -> Currency:
        return get_currency(self._currency)

    @property
    def amount(self) -> Decimal:
        """Valore a piena precisione interna, come Decimal."""
        return _raw_to_decimal(self._minor_units, self._scale)

    def to_display_decimal(self, rounding: Optional[RoundingMode] = None) -> Decimal:
        """
        Valore arrotondato alla display scale della valuta, come Decimal.

        Default: metà verso +inf (vedi _display_rounding). Con un
        RoundingMode esplicito vale la semantica del modulo decimal
        (HALF_UP arrotonda la metà via da zero).
        """
        amount = self.amount
        quantum = Decimal(1).scaleb(-self._display_scale)
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PRECISION
            value = amount.quantize(quantum, rounding=_display_rounding(amount, rounding))
        # niente "-0.00"
        return value if value != 0 else abs(value)

    @property
    def display_amount(self) -> Decimal:
        return self.to_display_decimal()

    def to_display_number(self, rounding: Optional[RoundingMode] = None) -> float:
        """
        Valore alla display scale, come float.

        ATTENZIONE: float, usare SOLO per display o per API legacy numeriche.
        """
        return float(self.to_display_decimal(rounding))

    def display_units(self, rounding: Optional[RoundingMode] = None) -> int:
        """Importo in display units intere (centesimi per USD): 33.335 -> 3334."""
        amount = self.amount
        return _scaled_integer(amount, self._display_scale, _display_rounding(amount, rounding))

    def to_internal_number(self) -> float:
        """Valore a piena precisione interna, come float (non arrotondato)."""
        return float(self.amount)

    def format(self) -> str:
        """Simbolo + importo con separatore delle migliaia: "$1,234.50"."""
        value = self.display_amount
        sign = "-" if value < 0 else ""
        return f"{sign}{self.currency_info.symbol}{abs(value):,.{self._display_scale}f}"

    def __str__(self) -> str:
        return f"{self._currency} {self.display_amount:.{self._display_scale}f}"

    def __repr__(self) -> str:
        return f"Money('{self.amount:f}', '{self._currency}')"

    # -------------------------------------------------------------------------
    # Serializzazione
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """
        Serializza per persistenza/API.

        Formato: {"amount": str, "currency": str, "scale": int}

        NOTA: l'importo è una stringa decimale a piena precisione, mai float.
        """
        return {
            "amount": format(self.amount, "f"),
            "currency": self._currency,
            "scale": self._scale,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Money:
        """
        Deserializza da dict.

        Accetta {"amount": str | number, "currency": str, "scale": int (opzionale)}.
        """
        try:
            amount = data["amount"]
            currency = data["currency"]
        except (KeyError, TypeError):
            raise InvalidAmountError(data, "expected a mapping with 'amount' and 'currency'") from None
        return cls.of(amount, currency, scale=data.get("scale"))
