"""Environmental data providers, one per domain."""

from .base import ProviderClient
from .air_quality import AirQualityProvider
from .crime import CrimeProvider
from .factory import PROVIDER_CLASSES, build_providers
from .health import HealthProvider
from .market import MarketProvider
from .traffic import TrafficProvider
from .weather import WeatherProvider

__all__ = [
    "ProviderClient",
    "AirQualityProvider",
    "CrimeProvider",
    "HealthProvider",
    "MarketProvider",
    "TrafficProvider",
    "WeatherProvider",
    "PROVIDER_CLASSES",
    "build_providers",
]
