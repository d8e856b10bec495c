"""Similarity primitives for receipt/charge matching.

Merchant names on card statements are truncated, upper-cased and padded with
processor prefixes and reference numbers ("AMZN MKTP US*1234567890",
"TST* BLUE BOTTLE #12").  Everything here is a pure function of its inputs;
the alias table lives on an explicit ``MerchantNormalizer`` instance.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Optional

from rapidfuzz import fuzz

from app.exceptions import ValidationError

_PROCESSOR_PREFIXES = ("TST*", "SQ *", "SQU*", "PAYPAL *", "PP*", "SP ")
_CORPORATE_SUFFIXES = (" INC", " LLC", " CORP", " CO", " LTD", " COMPANY")
_NOISE_TOKENS = frozenset({"com", "www", "inc", "llc", "corp", "co", "ltd", "company", "the"})


@dataclass(frozen=True)
class MerchantAlias:
    pattern: str
    normalized: str
    is_regex: bool = False


DEFAULT_ALIASES: tuple[MerchantAlias, ...] = (
    MerchantAlias("AMZN", "AMAZON"),
    MerchantAlias("AMAZN", "AMAZON"),
    MerchantAlias("SBX", "STARBUCKS"),
    MerchantAlias("SBUX", "STARBUCKS"),
    MerchantAlias("UBER *EATS", "UBER EATS"),
    MerchantAlias("UBER*EATS", "UBER EATS"),
    MerchantAlias("UBEREATS", "UBER EATS"),
    MerchantAlias("MCD", "MCDONALDS"),
    MerchantAlias("MC DONALDS", "MCDONALDS"),
    MerchantAlias("WMT", "WALMART"),
    MerchantAlias("WAL-MART", "WALMART"),
    MerchantAlias("WAL MART", "WALMART"),
    MerchantAlias("TGT", "TARGET"),
    MerchantAlias("EXXON MOBIL", "EXXONMOBIL"),
    MerchantAlias("AMERICAN AIR", "AMERICAN AIRLINES"),
    MerchantAlias("UNITED AIR", "UNITED AIRLINES"),
    MerchantAlias("SOUTHWEST AIR", "SOUTHWEST AIRLINES"),
    MerchantAlias("DELTA AIR", "DELTA AIRLINES"),
    MerchantAlias("IHG", "INTERCONTINENTAL HOTELS"),
    MerchantAlias("DISNEY+", "DISNEY PLUS"),
    MerchantAlias("HBOMAX", "HBO MAX"),
    MerchantAlias(r"\s+#\d+$", "", is_regex=True),
    MerchantAlias(r"\s+\d{4,}$", "", is_regex=True),
)


class MerchantNormalizer:
    """Canonicalises merchant names through an ordered alias table.

    Plain aliases only replace whole words, so ``"TGT"`` rewrites
    ``"TGT 00012"`` but leaves ``"TGTX"`` alone.  Results are cached per
    instance; adding an alias clears the cache.
    """

    def __init__(self, aliases=None, cache_size: int = 4096):
        self._aliases: list[MerchantAlias] = list(DEFAULT_ALIASES if aliases is None else aliases)
        self._compiled: list[tuple[re.Pattern, str]] = [self._compile(a) for a in self._aliases]
        self._normalize_cached = lru_cache(maxsize=cache_size)(self._normalize)

    @staticmethod
    def _compile(alias: MerchantAlias) -> tuple[re.Pattern, str]:
        if alias.is_regex:
            return re.compile(alias.pattern, re.IGNORECASE), alias.normalized.upper()
        pattern = r"(?<![A-Z0-9])" + re.escape(alias.pattern.upper()) + r"(?![A-Z0-9])"
        return re.compile(pattern), alias.normalized.upper()

    @property
    def aliases(self) -> list[MerchantAlias]:
        return list(self._aliases)

    def add_alias(self, pattern: str, normalized: str, is_regex: bool = False) -> None:
        alias = MerchantAlias(pattern, normalized, is_regex)
        self._aliases.append(alias)
        self._compiled.append(self._compile(alias))
        self._normalize_cached.cache_clear()

    def cache_info(self):
        return self._normalize_cached.cache_info()

    def normalize(self, name: Optional[str]) -> str:
        """Return a lower-case, alias-resolved, whitespace-collapsed name."""
        if not name:
            return ""
        return self._normalize_cached(name)

    def _normalize(self, name: str) -> str:
        text = _strip_affixes(name.upper().strip())
        for regex, replacement in self._compiled:
            text = regex.sub(replacement, text)
        text = re.sub(r"[^A-Z0-9 ]", " ", text)
        return re.sub(r"\s+", " ", text).strip().lower()


_default_normalizer = MerchantNormalizer()


def get_default_normalizer() -> MerchantNormalizer:
    return _default_normalizer


def _strip_affixes(name: str) -> str:
    for prefix in _PROCESSOR_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):].lstrip()
    name = re.sub(r"\s+(STORE|LOCATION|BRANCH)\s*#?\d+", "", name)
    name = re.sub(r"\s+\d{6,}$", "", name)
    for suffix in _CORPORATE_SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
    return name


def clean_tokens(name: Optional[str], normalizer: Optional[MerchantNormalizer] = None) -> list[str]:
    """Split a merchant name into comparable tokens.

    Digit-only tokens (store numbers, reference codes) and corporate/web
    noise words are dropped.
    """
    normalizer = normalizer or _default_normalizer
    return [
        tok
        for tok in normalizer.normalize(name).split()
        if not tok.isdigit() and tok not in _NOISE_TOKENS
    ]


def is_abbreviation(short: str, long: str) -> bool:
    """True when *short* abbreviates *long*: same first letter, letters in order."""
    if short == long:
        return True
    if len(short) < 2 or len(short) > len(long) or short[0] != long[0]:
        return False
    remaining = iter(long)
    return all(ch in remaining for ch in short)


def merchant_abbreviation_match(
    merchant: Optional[str],
    description: Optional[str],
    normalizer: Optional[MerchantNormalizer] = None,
) -> bool:
    """Detect truncated or abbreviated merchant names.

    The shorter token list has to line up with the start of the longer one,
    each aligned pair being equal or an abbreviation in either direction.
    A compact-prefix check covers names split differently ("WALMART" vs
    "WAL MART SUPERCENTER").
    """
    a = clean_tokens(merchant, normalizer)
    b = clean_tokens(description, normalizer)
    if not a or not b:
        return False
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    aligned = list(zip(shorter, longer))
    if any(len(s) >= 3 or len(l) >= 3 for s, l in aligned) and all(
        is_abbreviation(s, l) or is_abbreviation(l, s) for s, l in aligned
    ):
        return True
    compact_a, compact_b = "".join(a), "".join(b)
    short_c, long_c = sorted((compact_a, compact_b), key=len)
    return len(short_c) >= 3 and long_c.startswith(short_c)


def _keyword_boost(name1: str, name2: str) -> float:
    keywords1 = {w for w in name1.split() if len(w) > 2}
    keywords2 = {w for w in name2.split() if len(w) > 2}
    if not keywords1 or not keywords2:
        return 0.0
    shared = len(keywords1 & keywords2)
    return shared / max(len(keywords1), len(keywords2)) * 0.2


def merchant_similarity(
    merchant: Optional[str],
    description: Optional[str],
    normalizer: Optional[MerchantNormalizer] = None,
) -> float:
    """Return a fuzzy similarity in [0, 1] between two merchant names."""
    normalizer = normalizer or _default_normalizer
    n1 = " ".join(clean_tokens(merchant, normalizer))
    n2 = " ".join(clean_tokens(description, normalizer))
    if not n1 or not n2:
        return 0.0
    if n1 == n2:
        return 1.0
    ratio = fuzz.token_sort_ratio(n1, n2) / 100.0
    return min(1.0, ratio + _keyword_boost(n1, n2))


def parse_amount(value) -> Optional[Decimal]:
    """Parse a stored amount ("-25.99", "$1,204.10", Decimal, float) into a Decimal.

    Returns None for empty values and raises ``ValidationError`` for anything
    that is not a number.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    text = str(value).strip().replace("$", "").replace(",", "")
    if not text:
        return None
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise ValidationError(f"Malformed amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValidationError(f"Malformed amount: {value!r}")
    return -amount if negative else amount


def amount_difference(receipt_amount, charge_amount) -> Optional[Decimal]:
    """Absolute dollar difference, comparing the charge by absolute value."""
    r = parse_amount(receipt_amount)
    c = parse_amount(charge_amount)
    if r is None or c is None:
        return None
    return abs(abs(r) - abs(c))


def _as_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError as exc:
        raise ValidationError(f"Malformed date: {value!r}") from exc


def day_difference(receipt_date, charge_date) -> Optional[int]:
    """Absolute difference in calendar days, or None when either side is missing."""
    a = _as_date(receipt_date)
    b = _as_date(charge_date)
    if a is None or b is None:
        return None
    return abs((a - b).days)
