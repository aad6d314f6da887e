"""Feed provider abstraction - lets the pipelines swap data sources."""
from abc import ABC, abstractmethod
from typing import Any, Optional


class FeedProviderBase(ABC):
    """Abstract base class for the raw data feeds behind each pipeline."""

    @abstractmethod
    def fetch(self) -> Optional[Any]:
        """
        Fetch the latest raw payload from the remote source.

        The payload must be JSON-serializable since it is cached as-is.

        Returns:
            Raw payload, or None when the source has no data available

        Raises:
            FeedProviderError: If the provider fails to fetch data
        """
        pass


class FeedProviderError(Exception):
    """Exception raised when a feed provider fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """Client errors (4xx) will not go away by asking again."""
        return self.status_code is None or not 400 <= self.status_code < 500


class CredentialNotActiveError(FeedProviderError):
    """The API rejected the key; new OpenWeatherMap keys activate asynchronously."""

    def __init__(self, message: str = (
        "API key not yet activated. OpenWeatherMap keys can take up to 2 hours "
        "to activate. Please wait and refresh."
    )):
        super().__init__(message, status_code=401)


class ConfigurationError(Exception):
    """Raised when required configuration (e.g. an API key) is missing."""
    pass
