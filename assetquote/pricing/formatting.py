"""
Human-readable price formatting.
"""

from ..data.models import AssetClass, Quote

MARKET_SUFFIX = ".IS"


def format_price(value: float) -> str:
    """
    Format a price with precision scaled to its magnitude.

    Examples:
        >>> format_price(43250.5)
        '43,250.50'
        >>> format_price(0.000123)
        '0.000123'
    """
    if value == 0:
        return "0.00"

    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    if magnitude >= 1000:
        text = f"{magnitude:,.2f}"
    elif magnitude >= 1:
        text = f"{magnitude:.2f}"
    elif magnitude >= 0.01:
        text = f"{magnitude:.4f}"
    elif magnitude >= 0.0001:
        text = f"{magnitude:.6f}"
    elif magnitude >= 1e-8:
        text = f"{magnitude:.8f}"
    else:
        text = f"{magnitude:.6e}"
    return f"{sign}{text}"


def format_change(percent: float) -> str:
    prefix = "+" if percent >= 0 else ""
    return f"{prefix}{percent:.2f}%"


def format_quote(quote: Quote, html: bool = False) -> str:
    """
    One-line quote summary, e.g. ``BTC (Bitcoin): $43,250.50  (+2.31%)``.

    Borsa Istanbul symbols drop their market suffix and are priced in lira.
    Names are only shown for crypto.
    """
    symbol = quote.symbol
    currency = "$"
    if symbol.upper().endswith(MARKET_SUFFIX):
        symbol = symbol[: -len(MARKET_SUFFIX)]
        currency = "₺"

    label = symbol
    if quote.asset_class == AssetClass.CRYPTO and quote.name:
        label = f"{symbol} ({quote.name})"

    price = f"{currency}{format_price(quote.price)}"
    if html:
        price = f"<b>{price}</b>"

    return f"{label}: {price}  ({format_change(quote.percent_change)})"
