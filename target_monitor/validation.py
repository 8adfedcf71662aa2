"""Stock-code validation for quote requests and recognised text"""

import re
import unicodedata
from collections.abc import Iterable

SYMBOL_PATTERN = re.compile(r"^[0-9A-Z]{4,6}$")


def is_valid_symbol(symbol: str) -> bool:
    """
    Check an exchange stock code as given (no normalisation)

    Rules:
    - 4-6 characters
    - Digits and uppercase letters only (ETFs and warrants carry letters)

    Examples:
        2330 -> True
        00878 -> True
        006208 -> True
        2330A -> True
        23 -> False (too short)
        2330.TW -> False (venue suffix)
    """
    if not symbol or not isinstance(symbol, str):
        return False
    return bool(SYMBOL_PATTERN.match(symbol.strip()))


def sanitize_symbol(symbol: str) -> str:
    """
    Normalise a stock code: NFKC (full-width digits from OCR become ASCII),
    whitespace stripped, upper-cased.

    Raises:
        ValueError: if the result is not a valid code
    """
    if not symbol or not isinstance(symbol, str):
        raise ValueError(f"Invalid symbol: {symbol!r}")

    cleaned = unicodedata.normalize("NFKC", symbol).strip().upper()
    if not is_valid_symbol(cleaned):
        raise ValueError(f"Invalid stock code format: {symbol!r}")
    return cleaned


def sanitize_symbols(symbols: Iterable[str]) -> tuple[list[str], list[str]]:
    """
    Split symbols into (valid, invalid), first-seen order, duplicates dropped
    """
    valid: list[str] = []
    invalid: list[str] = []
    seen: set[str] = set()

    for s in symbols:
        try:
            cleaned = sanitize_symbol(s)
        except ValueError:
            invalid.append(s)
            continue
        if cleaned not in seen:
            seen.add(cleaned)
            valid.append(cleaned)

    return valid, invalid
