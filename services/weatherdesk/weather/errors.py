"""
Weather lookup error taxonomy.

All WeatherError subclasses surface to API callers as a single "bad request"
class (HTTP 400). The subclasses exist for logging and the error code only.
"""


class WeatherError(Exception):
    """Base class for lookup failures the caller can act on."""

    code = "WEATHER_ERROR"
    message = "Failed to fetch weather data"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidQuery(WeatherError):
    code = "INVALID_QUERY"
    message = "Either city name or coordinates (lat, lon) must be provided"


class CityNotFound(WeatherError):
    code = "CITY_NOT_FOUND"
    message = "City not found"


class InvalidApiKey(WeatherError):
    code = "INVALID_API_KEY"
    message = "Invalid API key"


class ProviderUnavailable(WeatherError):
    code = "PROVIDER_UNAVAILABLE"
    message = "Failed to fetch weather data"


class WeatherConfigError(RuntimeError):
    """Raised at startup when the provider cannot be configured."""
