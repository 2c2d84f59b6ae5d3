from __future__ import annotations


class ProviderError(Exception):
    """A Discord API call behind the provider boundary failed."""


class ProviderPermissionDenied(ProviderError):
    pass


class ProviderTimeout(ProviderError):
    pass
