"""Exceptions raised inside the carrier integration."""
from typing import Dict, List, Optional


class GatewayError(Exception):
    """Base class for shipment gateway errors."""


class ShipmentValidationError(GatewayError):
    """Request is malformed; never retried and never sent to fallback."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid shipment request")


class CarrierError(GatewayError):
    """Carrier-side failure. Retryable unless stated otherwise."""
    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AllEndpointsFailedError(CarrierError):
    """Every configured endpoint failed to produce a response."""

    def __init__(self, failures: List[Dict[str, str]]):
        self.failures = list(failures)
        if self.failures:
            details = "; ".join(
                f"{f['endpoint']}: [{f['reason']}] {f['error']}" for f in self.failures
            )
            message = f"All carrier endpoints unreachable. Errors: {details}"
        else:
            message = "No carrier endpoints configured"
        super().__init__(message)


class CarrierAuthError(CarrierError):
    """401/403 from the carrier. Retrying cannot help."""
    retryable = False


class CarrierBusinessError(CarrierError):
    """Carrier answered but refused the request (4xx/5xx or success=false)."""


class CarrierResponseError(CarrierError):
    """Carrier answered with something we cannot read."""


class FallbackGenerationError(GatewayError):
    """The local fallback generator itself failed."""
