"""
Synthetic Market Data

Last-resort data used when every provider tier fails or is throttled.

Records are built from a baseline table and perturbed by bounded noise so
they look plausible on every call. Generation never raises.
"""
import random
from datetime import date
from typing import Optional

from marketdata.data_providers.adapters.base import (
    NormalizedQuote,
    NormalizedFund,
    SOURCE_SYNTHETIC,
)
from marketdata.data_providers.baselines import (
    QuoteBaseline,
    FundBaseline,
    NSE_BASELINES,
    FUND_BASELINES,
    UNKNOWN_QUOTE_PRICE,
    UNKNOWN_SECTOR,
)


class SyntheticQuoteGenerator:
    """
    Builds NormalizedQuote records around a baseline table.

    price = baseline * (1 + u), with u uniform in [-volatility, +volatility].
    High/low bracket the price by 2%, previous close is the baseline.
    """

    def __init__(
        self,
        baselines: Optional[dict[str, QuoteBaseline]] = None,
        volatility: float = 0.02,
        rng: Optional[random.Random] = None,
    ):
        self.baselines = NSE_BASELINES if baselines is None else baselines
        self.volatility = volatility
        self._rng = rng or random.Random()

    def baseline(self, symbol: str) -> QuoteBaseline:
        return self.baselines.get(
            symbol,
            QuoteBaseline(name=symbol, price=UNKNOWN_QUOTE_PRICE, sector=UNKNOWN_SECTOR),
        )

    def quote(self, symbol: str) -> NormalizedQuote:
        base = self.baseline(symbol)
        random_change = self._rng.uniform(-self.volatility, self.volatility)
        current_price = base.price * (1 + random_change)
        change = current_price - base.price

        return NormalizedQuote(
            symbol=symbol,
            name=base.name,
            price=round(current_price, 2),
            change=round(change, 2),
            change_percent=round(change / base.price * 100, 2),
            volume=self._rng.randrange(1_000_000, 11_000_000),
            market_cap=float(self._rng.randrange(100_000_000_000, 1_100_000_000_000)),
            high=round(current_price * 1.02, 2),
            low=round(current_price * 0.98, 2),
            previous_close=base.price,
            sector=base.sector,
            source=SOURCE_SYNTHETIC,
        )

    def quotes(self, symbols: list[str]) -> list[NormalizedQuote]:
        return [self.quote(symbol) for symbol in symbols]


class SyntheticFundGenerator:
    """Builds NormalizedFund records around a baseline scheme list."""

    def __init__(
        self,
        baselines: Optional[list[FundBaseline]] = None,
        volatility: float = 0.02,
        rng: Optional[random.Random] = None,
    ):
        self.baselines = FUND_BASELINES if baselines is None else baselines
        self.volatility = volatility
        self._rng = rng or random.Random()

    def _from_baseline(self, base: FundBaseline) -> NormalizedFund:
        nav = base.nav * (1 + self._rng.uniform(-self.volatility, self.volatility))
        return NormalizedFund(
            scheme_code=base.scheme_code,
            scheme_name=base.scheme_name,
            nav=round(nav, 2),
            nav_date=date.today().isoformat(),
            fund_house=base.fund_house,
            category=base.category,
            source=SOURCE_SYNTHETIC,
        )

    def search(self, query: str) -> list[NormalizedFund]:
        """Baselines matching the query by name or fund house, or all of them."""
        needle = query.strip().lower()
        matches = [
            base for base in self.baselines
            if needle in base.scheme_name.lower() or needle in base.fund_house.lower()
        ]
        return [self._from_baseline(base) for base in (matches or self.baselines)]

    def scheme(self, scheme_code: str) -> NormalizedFund:
        for base in self.baselines:
            if base.scheme_code == scheme_code:
                return self._from_baseline(base)

        return NormalizedFund(
            scheme_code=scheme_code,
            scheme_name=f"Synthetic Fund {scheme_code} - Direct Plan - Growth",
            nav=round(self._rng.uniform(50, 550), 2),
            nav_date=date.today().isoformat(),
            fund_house="Others",
            category="Others",
            source=SOURCE_SYNTHETIC,
        )
