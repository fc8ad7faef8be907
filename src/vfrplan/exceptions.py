"""
Exceptions for vfrplan operations.
"""


class VFRPlanError(Exception):
    """Base exception for vfrplan errors."""

    pass


class RouteError(VFRPlanError):
    """Raised for structurally invalid route operations."""

    pass


class ProviderError(VFRPlanError):
    """Base exception for forecast and elevation provider errors."""

    pass


class ProviderConnectionError(ProviderError):
    """Error connecting to a remote provider."""

    pass


class ProviderQueryError(ProviderError):
    """Error in a provider request or response parsing."""

    pass
