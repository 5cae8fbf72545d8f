"""Locale-fixed display formatting (Swedish grouping, months and weekdays)."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from .config import LocaleConfig
from .pricing import ZERO, round_display, to_decimal

DEFAULT_LOCALE = LocaleConfig()


def _group(digits: str, separator: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return separator.join(groups)


def format_number(value: object, locale: LocaleConfig = DEFAULT_LOCALE, places: int = 0) -> str:
    number = to_decimal(value)
    if number is None:
        return locale.placeholder
    rounded = round_display(number, places)
    sign = "-" if rounded < ZERO else ""
    text = f"{abs(rounded):f}"
    whole, _, fraction = text.partition(".")
    grouped = _group(whole, locale.thousands_separator)
    if fraction:
        return f"{sign}{grouped}{locale.decimal_separator}{fraction}"
    return f"{sign}{grouped}"


def format_money(value: object, locale: LocaleConfig = DEFAULT_LOCALE) -> str:
    """Whole currency units with grouping and suffix, e.g. ``12 938 kr``."""

    text = format_number(value, locale)
    if text == locale.placeholder:
        return text
    return f"{text} {locale.currency_suffix}"


def format_quantity(value: object, locale: LocaleConfig = DEFAULT_LOCALE) -> str:
    number = to_decimal(value)
    if number is None:
        return locale.placeholder
    if number == number.to_integral_value():
        sign = "-" if number < ZERO else ""
        return sign + _group(f"{abs(number.to_integral_value()):f}", locale.thousands_separator)
    text = f"{number.normalize():f}"
    return text.replace(".", locale.decimal_separator)


def format_hours(value: object, locale: LocaleConfig = DEFAULT_LOCALE) -> str:
    text = format_quantity(value, locale)
    if text == locale.placeholder:
        return text
    return f"{text}h"


def format_percent(value: object) -> str:
    number = to_decimal(value, ZERO)
    if number == number.to_integral_value():
        return str(int(number))
    return f"{number.normalize():f}".replace(".", ",")


def format_date(value: Optional[date], locale: LocaleConfig = DEFAULT_LOCALE) -> str:
    """``5 mars 2025``"""

    if value is None:
        return locale.placeholder
    return f"{value.day} {locale.month_names[value.month - 1]} {value.year}"


def format_long_date(value: Optional[date], locale: LocaleConfig = DEFAULT_LOCALE) -> str:
    """``onsdag 5 mars 2025``"""

    if value is None:
        return locale.placeholder
    return f"{locale.weekday_names[value.weekday()]} {format_date(value, locale)}"


def format_iso_date(value: Optional[date], locale: LocaleConfig = DEFAULT_LOCALE) -> str:
    if value is None:
        return locale.placeholder
    return value.strftime(locale.iso_date_format)


def format_timestamp(value: datetime, locale: LocaleConfig = DEFAULT_LOCALE) -> str:
    return value.strftime(locale.timestamp_format)


def text_or_placeholder(value: Optional[str], locale: LocaleConfig = DEFAULT_LOCALE) -> str:
    if value is None:
        return locale.placeholder
    text = str(value).strip()
    return text or locale.placeholder


def money_or_placeholder(value: Optional[Decimal], present: bool, locale: LocaleConfig = DEFAULT_LOCALE) -> str:
    if not present or value is None:
        return locale.placeholder
    return format_money(value, locale)


__all__ = [
    "DEFAULT_LOCALE",
    "format_date",
    "format_hours",
    "format_iso_date",
    "format_long_date",
    "format_money",
    "format_number",
    "format_percent",
    "format_quantity",
    "format_timestamp",
    "money_or_placeholder",
    "text_or_placeholder",
]
