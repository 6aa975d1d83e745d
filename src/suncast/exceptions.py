"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration or scoring rules are invalid or incomplete."""


class WeatherProviderError(Exception):
    """Raised when weather provider requests or normalization fail."""


class JournalError(Exception):
    """Raised when writing to journal files fails."""


class CacheError(Exception):
    """Raised when the result cache is unavailable or cannot be administered."""
