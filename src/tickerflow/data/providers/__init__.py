"""Data provider implementations."""

from .alpha_vantage import AlphaVantageProvider
from .finnhub import FinnhubProvider
from .polygon import PolygonProvider
from .rapidapi import RapidApiNewsProvider
from .rest import RestProvider
from .serpapi import SerpApiNewsProvider
from .yahoo_finance import YahooFinanceProvider

__all__ = [
    "AlphaVantageProvider",
    "FinnhubProvider",
    "PolygonProvider",
    "RapidApiNewsProvider",
    "RestProvider",
    "SerpApiNewsProvider",
    "YahooFinanceProvider",
]
