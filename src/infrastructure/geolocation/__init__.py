from .client import (
    GeolocationClient,
    IpApiClient,
    MockGeolocationClient,
    TimezoneResult,
    client_ip_from_headers,
    create_geolocation_client,
)

__all__ = [
    "GeolocationClient",
    "IpApiClient",
    "MockGeolocationClient",
    "TimezoneResult",
    "client_ip_from_headers",
    "create_geolocation_client",
]
