"""Venue client layer -- public perpetual futures market data via ccxt."""

from trader.exchange.ccxt_client import CcxtVenueClient
from trader.exchange.client import VenueClient

__all__ = ["CcxtVenueClient", "VenueClient"]
