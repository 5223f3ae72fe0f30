"""
Formatting utilities.
"""


def format_currency(amount: int, currency: str = "ZAR") -> str:
    """
    Format an integer amount as currency.

    Args:
        amount: The amount in whole units (e.g., rand, not cents).
        currency: Currency code (default ZAR).

    Returns:
        Formatted currency string.
    """
    symbols = {
        "ZAR": "R ",
        "USD": "$",
        "EUR": "€",
        "GBP": "£",
    }
    symbol = symbols.get(currency, currency + " ")
    formatted = f"{amount:,}"
    if currency == "ZAR":
        # Rand amounts group thousands with spaces
        formatted = formatted.replace(",", " ")
    return f"{symbol}{formatted}"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"
