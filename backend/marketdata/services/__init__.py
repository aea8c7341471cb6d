"""
Background services
"""
from marketdata.services.quote_poller import QuotePoller

__all__ = ["QuotePoller"]
