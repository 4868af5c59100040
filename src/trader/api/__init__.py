"""Admin JSON API."""

from trader.api.app import create_api_app

__all__ = ["create_api_app"]
