"""Card data validation, masking and account matching."""

import calendar
import re
from datetime import date
from typing import Any, Dict, List, Optional, Tuple


CARD_NUMBER_PATTERN = re.compile(r"[0-9]{13,19}")
EXPIRATION_PATTERN = re.compile(r"([0-9]{2})/?([0-9]{2})")


def luhn_valid(card_number: str) -> bool:
    """Luhn checksum for 13-19 digit card numbers."""
    if not card_number or not CARD_NUMBER_PATTERN.fullmatch(card_number):
        return False

    total = 0
    for index, char in enumerate(reversed(card_number)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit

    return total % 10 == 0


def parse_expiration(value: str) -> Optional[Tuple[int, int]]:
    """Parse MM/YY or MMYY into (month, four-digit year)."""
    if not value:
        return None
    match = EXPIRATION_PATTERN.fullmatch(value.strip())
    if not match:
        return None
    month, year = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return month, 2000 + year


def expiration_valid(value: str, today: Optional[date] = None) -> bool:
    """True when the expiration parses and the card is usable today.

    A card is valid through the last day of its expiry month, so a card
    expiring this month is still accepted. Comparing against the first of
    the month instead would reject it.
    """
    parsed = parse_expiration(value)
    if not parsed:
        return False
    month, year = parsed
    today = today or date.today()
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, last_day) >= today


def mask_card_number(card_number: Optional[str]) -> str:
    """Hide everything except the last 4 characters."""
    if not card_number:
        return ""
    if len(card_number) <= 4:
        return "*" * len(card_number)
    return "*" * (len(card_number) - 4) + card_number[-4:]


def validate_card_row(row: Dict[str, str], today: Optional[date] = None) -> List[str]:
    """Validate one normalized card row; returns every problem found."""
    errors = []

    card = row.get("card", "")
    if not card:
        errors.append("Card number is required")
    elif not luhn_valid(card):
        errors.append("Invalid card number format or Luhn check failed")

    exp = row.get("exp", "")
    if not exp:
        errors.append("Expiration date is required")
    elif not expiration_valid(exp, today):
        errors.append("Invalid expiration date format or date is in the past")

    if len(row.get("first", "")) > 50:
        errors.append("First name must be 1-50 characters")
    if len(row.get("last", "")) > 50:
        errors.append("Last name must be 1-50 characters")

    zip_code = row.get("zip", "")
    if zip_code and not 3 <= len(zip_code) <= 10:
        errors.append("ZIP code must be 3-10 characters")

    if len(row.get("token", "")) > 100:
        errors.append("Token must be 1-100 characters")

    return errors


def _nested(data: Dict[str, Any], *path: str) -> Optional[Any]:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def account_search_fields(account: Dict[str, Any]) -> List[str]:
    """Lowercased fields an account search looks at."""
    fields = [
        account.get("id"),
        account.get("email"),
        _nested(account, "business_profile", "name"),
        _nested(account, "business_profile", "dba"),
        _nested(account, "settings", "dashboard", "display_name"),
        _nested(account, "metadata", "name"),
        _nested(account, "metadata", "dba"),
        _nested(account, "metadata", "descriptor"),
    ]
    return [str(field).lower() for field in fields if field]


def account_matches(account: Dict[str, Any], search_term: str) -> bool:
    """Substring match, or full match when the term contains * wildcards."""
    term = search_term.lower()
    fields = account_search_fields(account)

    if "*" in term:
        pattern = re.compile("^" + re.escape(term).replace(r"\*", ".*") + "$", re.IGNORECASE)
        return any(pattern.match(field) for field in fields)
    return any(term in field for field in fields)
