"""
config.py — Library-wide defaults

Every tunable number used by Money, distribution and Transaction lives here,
in a single frozen settings model. The process-wide instance is read through
get_settings(); tests and hosts swap it with configure().

Environment overrides (all optional, read when LedgerSettings is built):

    BALANCEBOOK_DEFAULT_CURRENCY        currency for Money.of() without code
    BALANCEBOOK_ACCOUNT_CURRENCY        currency for accounts built from numbers
    BALANCEBOOK_MIN_INTERNAL_SCALE      minimum internal decimals (int)
    BALANCEBOOK_BALANCE_TOLERANCE       is_balanced() tolerance (decimal string)
    BALANCEBOOK_MAX_DISTRIBUTION_PARTS  upper bound for distribute(n)

Explicit keyword arguments win over the environment.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_PREFIX = "BALANCEBOOK_"

# 2^53 - 1: largest integer a float represents exactly
MAX_SAFE_INTEGER = 9_007_199_254_740_991


class LedgerSettings(BaseSettings):
    """Defaults for the whole library. Invalid values raise pydantic.ValidationError."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, frozen=True)

    default_currency: str = Field(default="USD", min_length=1)
    account_currency: str = Field(default="CURR", min_length=1)
    min_internal_scale: int = Field(default=6, ge=0)
    balance_tolerance: Decimal = Field(default=Decimal("0.01"), gt=0)
    max_distribution_parts: int = Field(default=10_000, ge=1)
    max_safe_integer: int = Field(default=MAX_SAFE_INTEGER, ge=1)

    @field_validator("default_currency", "account_currency")
    @classmethod
    def _uppercase_currency(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("currency code cannot be blank")
        return value

    def with_overrides(self, **changes) -> LedgerSettings:
        """Validated copy with `changes` applied."""
        return type(self)(**{**self.model_dump(), **changes})


_settings: LedgerSettings = LedgerSettings()


def get_settings() -> LedgerSettings:
    return _settings


def configure(settings: Optional[LedgerSettings] = None, **changes) -> LedgerSettings:
    """
    Replace the process-wide settings.

    configure(LedgerSettings(...)) installs an instance;
    configure(balance_tolerance=Decimal("0.001")) patches the current one;
    configure() with no arguments restores the defaults (environment included).
    Returns the previous settings so callers can restore them.
    """
    global _settings
    previous = _settings
    if settings is None:
        settings = _settings.with_overrides(**changes) if changes else LedgerSettings()
    elif changes:
        settings = settings.with_overrides(**changes)
    _settings = settings
    return previous
