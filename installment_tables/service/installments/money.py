"""
Money Codec for the installment table engine.

Converts between locale-formatted currency text ("R$ 1.234,56",
"$ 1,234.56") and the canonical decimal string used for arithmetic and on
the wire ("1234.56": dot separator, exactly two decimals).

Every function here is total: bad input yields an empty string (or None
for the Decimal helpers), never an exception. Amounts with more than
MAX_INTEGER_DIGITS integer digits count as unreadable. A "-" before the
first digit ("-1.200,00", "R$ -1.200,00", "-R$ 1.200,00") makes the
amount negative.

Rounding policy:
    All quantization to cents uses ROUND_HALF_UP, both for derived
    installment values and for display formatting.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from .settings import EngineSettings, engine_settings

CENT = Decimal("0.01")
ROUNDING = ROUND_HALF_UP

# Keeps every cent-quantized amount inside the default 28-digit context.
MAX_INTEGER_DIGITS = 15

# locale -> (thousands separator, decimal separator)
LOCALE_SEPARATORS = {
    "pt-BR": (".", ","),
    "en-US": (",", "."),
}

CURRENCY_SYMBOLS = {
    "BRL": "R$",
    "USD": "$",
    "EUR": "€",
}

_NOT_AMOUNT_CHARS = re.compile(r"[^\d,.]")
_NOT_DIGITS = re.compile(r"\D")


def quantize_cents(amount: Decimal) -> Decimal:
    """Round an amount to cents using the engine's rounding policy."""
    return amount.quantize(CENT, rounding=ROUNDING)


def is_representable(amount: Decimal) -> bool:
    """True when the amount is finite and has at most MAX_INTEGER_DIGITS integer digits."""
    if not amount.is_finite():
        return False
    return amount.is_zero() or amount.adjusted() < MAX_INTEGER_DIGITS


def _checked(amount: Decimal) -> Optional[Decimal]:
    return amount if is_representable(amount) else None


def to_decimal(value) -> Optional[Decimal]:
    """
    Parse a display or canonical money string into a Decimal.

    The last "," or "." is read as the decimal separator when one or two
    digits follow it; otherwise every separator is a thousands separator.
    Symbols and spaces are ignored; a "-" ahead of the first digit negates.

    Examples:
        "R$ 1.234,56"  -> 1234.56
        "$ 1,234.56"   -> 1234.56
        "R$ -1.200,00" -> -1200.00
        "600.00"       -> 600.00
        "1.234"        -> 1234
        ""             -> None
        "9" * 30       -> None (too many digits)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return _checked(value)
    if isinstance(value, int):
        return _checked(Decimal(value))
    if isinstance(value, float):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return None
        return _checked(parsed)

    text = str(value)
    first_digit = next((i for i, ch in enumerate(text) if ch.isdigit()), None)
    if first_digit is None:
        return None
    negative = "-" in text[:first_digit]

    cleaned = _NOT_AMOUNT_CHARS.sub("", text)

    last_sep = max(cleaned.rfind(","), cleaned.rfind("."))
    integer_part, fraction = cleaned, ""
    if last_sep != -1:
        tail = cleaned[last_sep + 1:]
        if 1 <= len(tail) <= 2 and tail.isdigit():
            integer_part, fraction = cleaned[:last_sep], tail

    integer_digits = _NOT_DIGITS.sub("", integer_part).lstrip("0") or "0"
    if len(integer_digits) > MAX_INTEGER_DIGITS:
        return None
    amount = Decimal(f"{integer_digits}.{fraction or '0'}")
    if negative and not amount.is_zero():
        return -amount
    return amount


def to_canonical(amount: Decimal) -> str:
    """Render a Decimal as a canonical money string ("1234.50")."""
    return format(quantize_cents(amount), "f")


def remove_mask(display) -> str:
    """
    Strip currency symbol and separators from a display string.

    Returns the canonical decimal string, or "" when no amount can be read.
    """
    amount = to_decimal(display)
    if amount is None:
        return ""
    return to_canonical(amount)


def format_amount(
    amount: Decimal,
    locale: str | None = None,
    currency: str | None = None,
    with_symbol: bool = True,
    settings: EngineSettings = engine_settings,
) -> str:
    """
    Format a Decimal for display in the given locale.

    Args:
        amount: Amount to format (rounded to cents)
        locale: "pt-BR" or "en-US" (defaults to settings.locale)
        currency: ISO code selecting the symbol (defaults to settings.currency)
        with_symbol: Prefix the currency symbol followed by a space

    Returns:
        e.g. "R$ 1.234,56", "$ 1,234.56" or "1.234,56" without symbol;
        "" when the amount is not representable
    """
    if not is_representable(amount):
        return ""
    locale = locale or settings.locale
    currency = (currency or settings.currency).upper()
    thousands, decimal_sep = LOCALE_SEPARATORS.get(locale, LOCALE_SEPARATORS["pt-BR"])

    total_cents = int(quantize_cents(amount) * 100)
    sign = "-" if total_cents < 0 else ""
    units, cents = divmod(abs(total_cents), 100)
    grouped = f"{units:,}".replace(",", thousands)
    number = f"{sign}{grouped}{decimal_sep}{cents:02d}"

    if not with_symbol:
        return number
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    return f"{symbol} {number}"


def format_money(
    value,
    locale: str | None = None,
    currency: str | None = None,
    with_symbol: bool = True,
    settings: EngineSettings = engine_settings,
) -> str:
    """Format any readable money value for display; "" when unreadable."""
    amount = to_decimal(value)
    if amount is None:
        return ""
    return format_amount(amount, locale, currency, with_symbol, settings)


def apply_mask(
    raw,
    locale: str | None = None,
    currency: str | None = None,
    settings: EngineSettings = engine_settings,
) -> str:
    """
    Mask text as the operator types it.

    Non-digits are dropped and the digits are read as cents, so typing
    "1", "12", "123" shows "R$ 0,01", "R$ 0,12", "R$ 1,23". A canonical
    string such as "600.00" masks to "R$ 600,00". Returns "" while no digit
    has been typed, or once more digits are typed than an amount can hold.
    """
    digits = _NOT_DIGITS.sub("", str(raw or ""))
    if not digits:
        return ""
    if len(digits.lstrip("0")) > MAX_INTEGER_DIGITS + 2:
        return ""
    amount = Decimal(int(digits)) / 100
    return format_amount(amount, locale, currency, True, settings)
