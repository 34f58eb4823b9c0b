"""Select the provider named by ``COURTFINDER_PROVIDER``."""

from __future__ import annotations

from typing import Optional

import httpx

from .browser_provider import TaipeiBrowserProvider
from .config import Settings
from .mock_provider import MockProvider
from .opendata import TaipeiOpenDataProvider
from .provider import CourtProvider
from .web_provider import TaipeiWebProvider

PROVIDER_NAMES = ("mock", "taipei-open", "taipei-web", "taipei-browser")


def create_provider(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> CourtProvider:
    """Unknown names fall back to the open-data provider."""
    name = settings.provider
    if name == "mock":
        return MockProvider(settings)
    if name == "taipei-web":
        return TaipeiWebProvider(settings, client=client)
    if name == "taipei-browser":
        return TaipeiBrowserProvider(settings)
    return TaipeiOpenDataProvider(settings, client=client)
