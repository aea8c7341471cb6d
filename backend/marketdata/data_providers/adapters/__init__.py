"""
Data Provider Adapters
"""
from marketdata.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    ProviderStatus,
    NormalizedQuote,
    NormalizedFund,
    ProviderError,
    RateLimitError,
    DataNotAvailableError,
    ParseError,
    SOURCE_YAHOO_FINANCE,
    SOURCE_ALPHA_VANTAGE,
    SOURCE_MUTUAL_FUND_API,
    SOURCE_SYNTHETIC,
)
from marketdata.data_providers.adapters.yahoo_finance import (
    YahooFinanceAdapter,
    create_yahoo_finance_config,
)
from marketdata.data_providers.adapters.alpha_vantage import (
    AlphaVantageAdapter,
    create_alpha_vantage_config,
)
from marketdata.data_providers.adapters.mutual_fund_api import (
    MutualFundAdapter,
    create_mutual_fund_config,
    extract_fund_house,
    categorize_scheme,
)

__all__ = [
    "BaseAdapter",
    "ProviderConfig",
    "ProviderStatus",
    "NormalizedQuote",
    "NormalizedFund",
    "ProviderError",
    "RateLimitError",
    "DataNotAvailableError",
    "ParseError",
    "SOURCE_YAHOO_FINANCE",
    "SOURCE_ALPHA_VANTAGE",
    "SOURCE_MUTUAL_FUND_API",
    "SOURCE_SYNTHETIC",
    "YahooFinanceAdapter",
    "create_yahoo_finance_config",
    "AlphaVantageAdapter",
    "create_alpha_vantage_config",
    "MutualFundAdapter",
    "create_mutual_fund_config",
    "extract_fund_house",
    "categorize_scheme",
]
