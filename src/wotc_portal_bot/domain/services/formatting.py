"""Value normalization shared by the jurisdiction encoders."""

import re
from datetime import date
from typing import Iterable, Optional

STATE_NAME_TO_ABBR = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR",
    "California": "CA", "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE",
    "Florida": "FL", "Georgia": "GA", "Hawaii": "HI", "Idaho": "ID",
    "Illinois": "IL", "Indiana": "IN", "Iowa": "IA", "Kansas": "KS",
    "Kentucky": "KY", "Louisiana": "LA", "Maine": "ME", "Maryland": "MD",
    "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN", "Mississippi": "MS",
    "Missouri": "MO", "Montana": "MT", "Nebraska": "NE", "Nevada": "NV",
    "New Hampshire": "NH", "New Jersey": "NJ", "New Mexico": "NM", "New York": "NY",
    "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH", "Oklahoma": "OK",
    "Oregon": "OR", "Pennsylvania": "PA", "Rhode Island": "RI", "South Carolina": "SC",
    "South Dakota": "SD", "Tennessee": "TN", "Texas": "TX", "Utah": "UT",
    "Vermont": "VT", "Virginia": "VA", "Washington": "WA", "West Virginia": "WV",
    "Wisconsin": "WI", "Wyoming": "WY",
}

_NON_DIGITS = re.compile(r"[^0-9]")


def digits_only(value: Optional[str]) -> str:
    return _NON_DIGITS.sub("", value or "")


def state_abbr(value: Optional[str]) -> str:
    """Two-letter code for a state name or code; unknown names pass through upper-cased."""
    if not value:
        return ""
    trimmed = value.strip()
    if len(trimmed) == 2:
        return trimmed.upper()
    return STATE_NAME_TO_ABBR.get(trimmed, trimmed.upper())


def format_date(value: Optional[date], pattern: str) -> str:
    """strftime that maps a missing date to an empty field."""
    return value.strftime(pattern) if value else ""


def strip_delimiters(value: Optional[str]) -> str:
    """Make free text safe for unquoted comma-delimited output."""
    if not value:
        return ""
    return value.replace(",", " ").replace('"', "").replace("'", "").replace("\n", " ").replace("\r", " ").strip()


def yes_no(flag: bool) -> str:
    return "Y" if flag else "N"


def true_false(flag: bool) -> str:
    return "TRUE" if flag else "FALSE"


def format_wage(wage: Optional[float], default: str = "0.00") -> str:
    if not wage or wage <= 0:
        return default
    return f"{wage:.2f}"


def has_group(groups: Iterable[str], *patterns: str) -> bool:
    """
    Keyword match over screening categories.

    Matching is a case-insensitive regex search, so ``TANF`` also matches
    ``LTANF`` and ``VETERAN`` matches ``VETERAN_DISABLED``.
    """
    labels = [str(g) for g in groups]
    for pattern in patterns:
        regex = re.compile(pattern, re.IGNORECASE)
        if any(regex.search(label) for label in labels):
            return True
    return False
