from .base import WeatherAdapterError, WeatherProvider, WeatherProviderUnavailable
from .open_meteo import OpenMeteoWeatherAdapter
from .openweathermap import OpenWeatherMapWeatherAdapter
from .rate_limit import SlidingWindowRateLimiter

__all__ = [
    "OpenMeteoWeatherAdapter",
    "OpenWeatherMapWeatherAdapter",
    "SlidingWindowRateLimiter",
    "WeatherAdapterError",
    "WeatherProvider",
    "WeatherProviderUnavailable",
]
