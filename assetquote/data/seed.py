"""
Seed symbols written to an empty catalog on first start.
"""

from typing import List

from .models import AssetClass, SymbolEntry

CRYPTO = AssetClass.CRYPTO
EQUITY = AssetClass.EQUITY

_SEED_ROWS = [
    # Crypto
    ("BTC", CRYPTO, "Bitcoin", ["Bitcoin", "BTC"], 100),
    ("ETH", CRYPTO, "Ethereum", ["Ethereum", "Ether"], 95),
    ("USDT", CRYPTO, "Tether", ["Tether", "USDT", "Stablecoin"], 92),
    ("BNB", CRYPTO, "Binance Coin", ["Binance", "BNB"], 88),
    ("SOL", CRYPTO, "Solana", ["Solana"], 87),
    ("XRP", CRYPTO, "XRP", ["Ripple"], 85),
    ("ADA", CRYPTO, "Cardano", ["Cardano"], 80),
    ("DOGE", CRYPTO, "Dogecoin", ["Dogecoin", "Doge"], 75),
    # US equities
    ("AAPL", EQUITY, "Apple Inc.", ["Apple", "iPhone maker"], 100),
    ("MSFT", EQUITY, "Microsoft Corporation", ["Microsoft", "MS"], 98),
    ("GOOGL", EQUITY, "Alphabet Inc. (Google)", ["Google", "Alphabet", "GOOG"], 97),
    ("AMZN", EQUITY, "Amazon.com Inc.", ["Amazon"], 96),
    ("META", EQUITY, "Meta Platforms Inc.", ["Meta", "Facebook", "FB"], 94),
    ("TSLA", EQUITY, "Tesla Inc.", ["Tesla"], 93),
    ("NVDA", EQUITY, "NVIDIA Corporation", ["NVIDIA"], 93),
    ("NFLX", EQUITY, "Netflix Inc.", ["Netflix"], 88),
    ("INTC", EQUITY, "Intel Corporation", ["Intel"], 80),
    ("AMD", EQUITY, "Advanced Micro Devices Inc.", ["AMD"], 82),
    ("PYPL", EQUITY, "PayPal Holdings Inc.", ["PayPal"], 75),
    ("V", EQUITY, "Visa Inc.", ["Visa"], 80),
    ("MA", EQUITY, "Mastercard Inc.", ["Mastercard"], 78),
    ("JPM", EQUITY, "JPMorgan Chase & Co.", ["JPMorgan"], 80),
    ("BAC", EQUITY, "Bank of America Corp.", ["Bank of America"], 76),
    ("KO", EQUITY, "The Coca-Cola Company", ["Coca Cola", "Coca-Cola"], 78),
    ("WMT", EQUITY, "Walmart Inc.", ["Walmart"], 78),
    ("DIS", EQUITY, "The Walt Disney Company", ["Disney"], 78),
    ("NKE", EQUITY, "Nike Inc.", ["Nike"], 74),
    ("PFE", EQUITY, "Pfizer Inc.", ["Pfizer"], 74),
    ("MRNA", EQUITY, "Moderna Inc.", ["Moderna"], 70),
    ("BABA", EQUITY, "Alibaba Group Holding Ltd.", ["Alibaba"], 72),
    ("SBUX", EQUITY, "Starbucks Corporation", ["Starbucks"], 70),
    # Borsa Istanbul
    ("THYAO.IS", EQUITY, "TURK HAVA YOLLARI", ["Turkish Airlines", "Türk Hava Yolları", "THY"], 85),
    ("ASELS.IS", EQUITY, "ASELSAN", ["Aselsan"], 80),
    ("GARAN.IS", EQUITY, "GARANTI BANKASI", ["Garanti", "Garanti Bankası"], 80),
    ("PETKM.IS", EQUITY, "PETKIM PETROKIMYA HOLDING", ["Petkim", "Petrokimya"], 74),
    ("ALFAS.IS", EQUITY, "ALFA SOLAR ENERJI", ["Alfa Solar", "Alfa"], 70),
    ("SISE.IS", EQUITY, "TURKIYE SISE VE CAM FABRIKALARI", ["Sisecam", "Şişecam", "Sise"], 70),
]


def default_seed() -> List[SymbolEntry]:
    """Build fresh seed entries."""
    return [
        SymbolEntry(
            symbol=symbol,
            asset_class=asset_class,
            display_name=name,
            aliases=list(aliases),
            popularity=popularity,
        )
        for symbol, asset_class, name, aliases, popularity in _SEED_ROWS
    ]
