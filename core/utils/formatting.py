"""Formatting and template rendering utilities."""

from decimal import Decimal
from typing import Any, Mapping, Optional
import re


# {{ name }} placeholders; names are word characters only
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render_template(template_text: str, variables: Mapping[str, Any]) -> str:
    """
    Substitute ``{{name}}`` placeholders in a stored template.

    Placeholders without a matching variable, or whose value is None,
    resolve to an empty string rather than being left verbatim.

    Args:
        template_text: Template body
        variables: Placeholder values keyed by name

    Returns:
        Rendered text
    """
    def _replace(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template_text or "")


def format_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    """
    Format full name from first and last names.

    Args:
        first_name: First name
        last_name: Last name

    Returns:
        Formatted full name
    """
    parts = []
    if first_name:
        parts.append(first_name.strip())
    if last_name:
        parts.append(last_name.strip())
    return ' '.join(parts)


def format_currency(amount: float | Decimal, currency: str = "KES") -> str:
    """
    Format currency amount for display.

    Args:
        amount: Amount to format
        currency: Currency code (default: KES)

    Returns:
        Formatted currency string
    """
    symbols = {
        "USD": "$",
        "EUR": "€",
        "GBP": "£",
        "KES": "KES ",
        "UGX": "UGX ",
        "TZS": "TZS ",
    }

    symbol = symbols.get(currency, currency + " ")

    # Shilling amounts are quoted without cents
    if currency in ("UGX", "TZS"):
        return f"{symbol}{int(amount):,}"
    return f"{symbol}{float(amount):,.2f}"


def mask_email(email: str) -> str:
    """
    Mask email address for privacy.

    Args:
        email: Email address to mask

    Returns:
        Masked email (e.g., "j***@example.com")
    """
    if '@' not in email:
        return email

    local, domain = email.split('@', 1)

    if len(local) <= 2:
        masked_local = local[0] + '*'
    else:
        masked_local = local[0] + '*' * (len(local) - 2) + local[-1]

    return f"{masked_local}@{domain}"
