import re

from src.shared.constants import CURRENCY


def safe_filename(value: str) -> str:
    """
    Reduces an identifier (slug, order id) to a filesystem-safe token.
    Anything outside [A-Za-z0-9_-] becomes "_", so ids can never escape the work dir.
    """
    cleaned = re.sub(r"[^a-zA-Z0-9_-]", "_", str(value))
    return cleaned or "_"


def format_amount(minor_units: int, currency: str = CURRENCY) -> str:
    """
    Formats an amount stored in minor units (centavos).
    1234567 -> "$12,345.67 MXN"
    """
    sign = "-" if minor_units < 0 else ""
    major, minor = divmod(abs(int(minor_units)), 100)
    return f"{sign}${major:,}.{minor:02d} {currency}"
