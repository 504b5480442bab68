"""Carrier account resolution.

The profile is read from the Flask config (or the process environment) the
first time it is asked for and reused afterwards.
"""
import logging
import os
import threading
from typing import Any, Mapping, Optional

from shipgate.integrations.types import CarrierAccountProfile

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS = (
    "https://dtdcapi.shipsy.io/api/customer/integration",
    "https://api.dtdc.com/api/customer/integration",
    "https://dtdcapi.shipsy.io/api/v1/customer/integration",
    "https://app.shipsy.in/api/customer/integration",
)

# Current name first, legacy spelling second
_ALIASES = {
    "CARRIER_CUSTOMER_CODE": ("CARRIER_CUSTOMER_CODE", "CARRIER_CUSTOMER_ID"),
    "CARRIER_API_KEY": ("CARRIER_API_KEY", "CARRIER_API_KEY_NEW"),
}


def _split_csv(value) -> tuple:
    if not value:
        return ()
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value).split(",")
    return tuple(item.strip() for item in items if item and item.strip())


class ConfigurationResolver:
    """Builds a CarrierAccountProfile exactly once."""

    def __init__(self, settings: Optional[Mapping[str, Any]] = None):
        self._settings = settings if settings is not None else os.environ
        self._profile = None
        self._lock = threading.Lock()

    def _get(self, key, default=None):
        for name in _ALIASES.get(key, (key,)):
            value = self._settings.get(name)
            if value not in (None, ""):
                return value
        return default

    def resolve(self) -> CarrierAccountProfile:
        if self._profile is not None:
            return self._profile
        with self._lock:
            if self._profile is None:
                self._profile = self._build()
                self._log_profile(self._profile)
        return self._profile

    def _build(self) -> CarrierAccountProfile:
        customer_code = self._get("CARRIER_CUSTOMER_CODE")
        account_type = str(self._get("CARRIER_ACCOUNT_TYPE", "STANDARD")).upper()
        reverse_codes = _split_csv(self._get("CARRIER_REVERSE_ONLY_CUSTOMER_CODES", "GL10074"))
        is_reverse_only = account_type == "REVERSE" or (
            customer_code is not None and customer_code in reverse_codes
        )
        endpoints = _split_csv(self._get("CARRIER_ENDPOINTS")) or DEFAULT_ENDPOINTS

        return CarrierAccountProfile(
            customer_code=customer_code,
            api_key=self._get("CARRIER_API_KEY"),
            service_type=self._get("CARRIER_SERVICE_TYPE", "GROUND EXPRESS"),
            commodity_id=self._get("CARRIER_COMMODITY_ID", "Electric items"),
            is_reverse_only_account=is_reverse_only,
            endpoints=endpoints,
            tracking_access_token=self._get("CARRIER_TRACKING_ACCESS_TOKEN"),
            tracking_username=self._get("CARRIER_TRACKING_USERNAME"),
            tracking_password=self._get("CARRIER_TRACKING_PASSWORD"),
        )

    @staticmethod
    def _log_profile(profile: CarrierAccountProfile):
        details = profile.describe()
        logger.info(
            "Carrier account resolved: customer=%s api_key=%s reverse_only=%s endpoints=%d tracking=%s",
            details["customer_code"], details["api_key"], details["is_reverse_only_account"],
            len(details["endpoints"]), details["has_tracking_credentials"],
        )
        if profile.fallback_mode:
            logger.warning("Carrier credentials not configured - all shipments will use fallback AWBs")
