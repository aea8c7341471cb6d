"""
Market Data Hub

Stock and mutual fund market data aggregated from several upstream
providers, with caching, rate limiting and synthetic fallbacks.
"""
__version__ = "1.0.0"
