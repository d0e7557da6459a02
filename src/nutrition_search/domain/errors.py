"""Error types raised across the search pipeline."""


class SearchInputError(ValueError):
    """Raised when a caller passes an unusable query or paging option."""


class ProviderError(Exception):
    """Base class for failures of a single provider call."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class ProviderConfigurationError(ProviderError):
    """Provider is enabled but its credentials are missing."""


class ProviderNetworkError(ProviderError):
    """Timeout, connection failure or non-2xx response from a provider."""

    def __init__(
        self, provider: str, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(provider, message)
        self.status_code = status_code


class ProviderDataError(ProviderError):
    """Provider answered with a payload we cannot interpret."""


class CacheUnavailableError(Exception):
    """The food cache store could not be read or written."""


class UsageRecordingError(Exception):
    """A usage record could not be persisted or read."""


class ConfigurationStoreError(Exception):
    """Admin-managed provider configuration could not be loaded."""
