"""Stock code validation utilities."""
import re

# Taiwan listed/OTC codes: 4-6 digits (e.g. 2330, 00878, 006208)
STOCK_CODE_PATTERN = re.compile(r"[0-9]{4,6}")


def is_valid_symbol(symbol: str) -> bool:
    """
    Validate Taiwan stock code format.

    Args:
        symbol: The code to validate (should already be stripped)

    Returns:
        True if the code is 4 to 6 ASCII digits, False otherwise
    """
    return bool(STOCK_CODE_PATTERN.fullmatch(symbol))


def normalize_symbol(symbol: str) -> str:
    """
    Normalize a stock code by stripping surrounding whitespace.

    Args:
        symbol: The code to normalize

    Returns:
        Stripped code
    """
    return symbol.strip()
