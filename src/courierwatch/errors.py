"""Error taxonomy shared by the tracking services."""

from __future__ import annotations


class CourierWatchError(Exception):
    """Base class for errors raised by this package."""


class PermissionDenied(CourierWatchError):
    """The user refused the device location permission."""


class DeviceUnavailable(CourierWatchError):
    """No platform location API is available."""


class LocationTimeout(CourierWatchError):
    """A one-shot device location call exceeded its ceiling."""


class ProviderUnavailable(CourierWatchError):
    """An external map provider answered with a non-OK status or could not be reached."""

    def __init__(self, provider: str, status: str | None = None, message: str | None = None) -> None:
        self.provider = provider
        self.status = status
        detail = message or status or "unreachable"
        super().__init__(f"{provider} unavailable: {detail}")


class MalformedInput(CourierWatchError, ValueError):
    """Input that cannot be processed, such as an order with no items."""


class UnknownEntity(CourierWatchError, LookupError):
    """A selection referred to a driver or order that is not in the live collections."""
