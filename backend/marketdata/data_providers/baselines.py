"""
Baseline Reference Data

Known NSE symbols and mutual fund schemes with reference prices. Used to
tag quotes with a sector and to seed synthetic data.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class QuoteBaseline:
    """Reference values for one stock symbol."""
    name: str
    price: float
    sector: str


@dataclass(frozen=True)
class FundBaseline:
    """Reference values for one mutual fund scheme."""
    scheme_code: str
    scheme_name: str
    nav: float
    fund_house: str
    category: str


# NSE large caps, prices in INR
NSE_BASELINES: dict[str, QuoteBaseline] = {
    "RELIANCE.NS": QuoteBaseline("Reliance Industries Ltd", 2850.0, "Energy"),
    "TCS.NS": QuoteBaseline("Tata Consultancy Services", 3920.0, "IT"),
    "INFY.NS": QuoteBaseline("Infosys Limited", 1750.0, "IT"),
    "HDFCBANK.NS": QuoteBaseline("HDFC Bank Limited", 1680.0, "Banking"),
    "ICICIBANK.NS": QuoteBaseline("ICICI Bank Limited", 1250.0, "Banking"),
    "HINDUNILVR.NS": QuoteBaseline("Hindustan Unilever Ltd", 2650.0, "FMCG"),
    "ITC.NS": QuoteBaseline("ITC Limited", 485.0, "FMCG"),
    "SBIN.NS": QuoteBaseline("State Bank of India", 820.0, "Banking"),
    "BHARTIARTL.NS": QuoteBaseline("Bharti Airtel Limited", 1580.0, "Telecom"),
    "KOTAKBANK.NS": QuoteBaseline("Kotak Mahindra Bank", 1890.0, "Banking"),
}

UNKNOWN_QUOTE_PRICE = 1000.0
UNKNOWN_SECTOR = "Others"

FUND_BASELINES: list[FundBaseline] = [
    FundBaseline("120503", "SBI Large Cap Fund - Direct Plan - Growth", 85.45, "SBI", "Large Cap"),
    FundBaseline("120504", "HDFC Top 100 Fund - Direct Plan - Growth", 920.30, "HDFC", "Large Cap"),
    FundBaseline("120505", "ICICI Prudential Bluechip Fund - Direct Plan - Growth", 78.25, "ICICI", "Large Cap"),
    FundBaseline("120506", "Axis Mid Cap Fund - Direct Plan - Growth", 65.80, "Axis", "Mid Cap"),
    FundBaseline("120507", "Kotak Small Cap Fund - Direct Plan - Growth", 185.90, "Kotak", "Small Cap"),
]


def sector_for(symbol: str, baselines: dict[str, QuoteBaseline] = NSE_BASELINES) -> str:
    """Sector tag for a symbol, "Others" when unknown."""
    baseline = baselines.get(symbol.upper())
    return baseline.sector if baseline else UNKNOWN_SECTOR
