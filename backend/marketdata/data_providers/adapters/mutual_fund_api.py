"""
Mutual Fund API Adapter

Indian mutual fund schemes and NAVs from the public mfapi.in service.
No API key required.
"""
from typing import Any, Optional
from loguru import logger

from marketdata.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    NormalizedFund,
    ProviderError,
    ParseError,
    MALFORMED_RESPONSE_ERRORS,
    DataNotAvailableError,
    SOURCE_MUTUAL_FUND_API,
)


MAX_SEARCH_RESULTS = 20
HEALTH_CHECK_SCHEME = "120503"

# Checked in order; the first name found in the scheme name wins
FUND_HOUSES = [
    "SBI", "HDFC", "ICICI", "Axis", "Kotak", "Nippon", "Franklin",
    "Aditya Birla", "UTI", "DSP", "Tata", "Mirae", "Invesco",
]

# (category, keywords), first match wins
CATEGORY_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("Large Cap", ("large cap", "bluechip")),
    ("Mid Cap", ("mid cap",)),
    ("Small Cap", ("small cap",)),
    ("ELSS", ("elss", "tax")),
    ("Debt", ("debt", "bond")),
    ("Hybrid", ("hybrid", "balanced")),
    ("Index", ("index", "nifty", "sensex")),
    ("International", ("international", "global")),
]


def extract_fund_house(scheme_name: str) -> str:
    """Fund house named in a scheme name, "Others" when none is recognised."""
    lowered = scheme_name.lower()
    for house in FUND_HOUSES:
        if house.lower() in lowered:
            return house
    return "Others"


def categorize_scheme(scheme_name: str) -> str:
    """Classify a scheme by keywords in its name."""
    lowered = scheme_name.lower()
    for category, keywords in CATEGORY_RULES:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "Others"


def create_mutual_fund_config(settings) -> ProviderConfig:
    """Create configuration for the mutual fund adapter."""
    return ProviderConfig(
        name=SOURCE_MUTUAL_FUND_API,
        base_url=settings.MUTUAL_FUND_API_BASE_URL,
        timeout_seconds=settings.MUTUAL_FUND_API_TIMEOUT,
        priority=1,
    )


class MutualFundAdapter(BaseAdapter):
    """
    mfapi.in adapter.

    ``/mf`` lists every scheme (code and name only); ``/mf/{code}`` returns
    scheme metadata and the NAV history, newest first.

    Usage:
        adapter = MutualFundAdapter(create_mutual_fund_config(settings))
        schemes = await adapter.get_all_schemes()
        matches = adapter.search_schemes("axis", schemes)
        fund = await adapter.get_scheme_details("120503")
    """

    async def health_check(self) -> bool:
        try:
            await self.get_scheme_details(HEALTH_CHECK_SCHEME)
            return True
        except ProviderError as e:
            logger.warning(f"Mutual fund API health check failed: {e}")
            return False

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    # ==================== Scheme List ====================

    async def get_all_schemes(self) -> list[NormalizedFund]:
        """Every listed scheme. NAV fields are empty; fetch details for those."""
        data = await self._get_json(self._url("/mf"))
        if not isinstance(data, list):
            raise ParseError(self.name, "scheme list is not an array")

        try:
            return [self._parse_listing(item) for item in data if isinstance(item, dict)]
        except MALFORMED_RESPONSE_ERRORS as e:
            raise ParseError(self.name, f"unexpected scheme list entry: {e}") from e

    def _parse_listing(self, item: dict[str, Any]) -> NormalizedFund:
        name = str(item.get("schemeName", ""))
        return NormalizedFund(
            scheme_code=str(item.get("schemeCode", "")),
            scheme_name=name,
            nav=0.0,
            nav_date="",
            fund_house=extract_fund_house(name),
            category=categorize_scheme(name),
            source=SOURCE_MUTUAL_FUND_API,
        )

    async def search_schemes(
        self,
        query: str,
        schemes: Optional[list[NormalizedFund]] = None,
    ) -> list[NormalizedFund]:
        """
        Case-insensitive search on scheme name or fund house.

        Args:
            query: Search text
            schemes: Scheme list to filter; fetched from the API when None

        Returns:
            At most MAX_SEARCH_RESULTS schemes
        """
        if schemes is None:
            schemes = await self.get_all_schemes()

        needle = query.strip().lower()
        matches = [
            scheme for scheme in schemes
            if needle in scheme.scheme_name.lower() or needle in scheme.fund_house.lower()
        ]
        return matches[:MAX_SEARCH_RESULTS]

    # ==================== Scheme Details ====================

    async def get_scheme_details(self, scheme_code: str) -> NormalizedFund:
        """Scheme metadata with its latest NAV."""
        data = await self._get_json(self._url(f"/mf/{scheme_code}"))
        if not isinstance(data, dict):
            raise ParseError(self.name, f"scheme {scheme_code} is not an object")

        try:
            return self._parse_details(scheme_code, data)
        except MALFORMED_RESPONSE_ERRORS as e:
            raise ParseError(self.name, f"unexpected details for scheme {scheme_code}: {e}") from e

    def _parse_details(self, scheme_code: str, data: dict[str, Any]) -> NormalizedFund:
        meta = data.get("meta") or {}
        if not meta:
            raise DataNotAvailableError(self.name, scheme_code, "scheme")

        history = data.get("data") or []
        if not history:
            raise ParseError(self.name, f"no NAV history for scheme {scheme_code}")

        latest = history[0]
        try:
            nav = float(latest["nav"])
        except (KeyError, TypeError, ValueError):
            raise ParseError(self.name, f"bad NAV for scheme {scheme_code}")

        name = str(meta.get("scheme_name", ""))
        return NormalizedFund(
            scheme_code=str(meta.get("scheme_code", scheme_code)),
            scheme_name=name,
            nav=nav,
            nav_date=str(latest.get("date", "")),
            fund_house=meta.get("fund_house") or extract_fund_house(name),
            category=categorize_scheme(name),
            source=SOURCE_MUTUAL_FUND_API,
        )
