"""AWB orchestration.

This is the only place that decides between the real carrier and the
fallback generator:

1. invalid requests are rejected before any network call;
2. without credentials the fallback is used straight away;
3. otherwise the carrier is tried up to ``max_retries`` times with a fixed
   delay, except that an auth rejection falls back immediately;
4. when every attempt fails the fallback is used.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from shipgate.integrations.audit import AuditLogger
from shipgate.integrations.carrier_api import CarrierApiClient
from shipgate.integrations.consignment import ConsignmentBuilder, validate_shipment_request
from shipgate.integrations.errors import (
    CarrierAuthError, CarrierError, FallbackGenerationError, ShipmentValidationError
)
from shipgate.integrations.fallback import FallbackAWBGenerator
from shipgate.integrations.types import (
    AWBResult, AttemptLogEntry, CarrierAccountProfile, ShipmentRequest
)

logger = logging.getLogger(__name__)


class AWBOrchestrator:

    def __init__(self, profile: CarrierAccountProfile, carrier: CarrierApiClient,
                 fallback: FallbackAWBGenerator, audit: AuditLogger,
                 builder: Optional[ConsignmentBuilder] = None,
                 max_retries: int = 3, retry_delay: float = 2.0,
                 tracking_url_template: str = '{awb}',
                 sleep: Callable[[float], None] = time.sleep,
                 monotonic: Callable[[], float] = time.monotonic):
        self.profile = profile
        self.carrier = carrier
        self.fallback = fallback
        self.audit = audit
        self.builder = builder or ConsignmentBuilder()
        self.max_retries = max(1, int(max_retries))
        self.retry_delay = retry_delay
        self.tracking_url_template = tracking_url_template
        self.sleep = sleep
        self.monotonic = monotonic

    def create_awb(self, request: ShipmentRequest) -> AWBResult:
        started = self.monotonic()

        try:
            validate_shipment_request(request)
        except ShipmentValidationError as e:
            logger.info(f"Rejected shipment {request.reference}: {e}")
            return self._finish(AWBResult(
                success=False, error=str(e), direction=request.direction
            ), started)

        if not self.profile.has_valid_credentials:
            result = self._fallback(request, 'Missing carrier credentials', attempts=0)
            return self._terminal(request, result, started)

        last_error = None
        attempts = 0
        for attempt in range(1, self.max_retries + 1):
            attempts = attempt
            try:
                payload = self.builder.build(request, self.profile)
                awb, _ = self.carrier.create_consignment(payload)
            except CarrierAuthError as e:
                last_error = str(e)
                logger.error(f"Carrier auth failed for shipment {request.reference}, using fallback: {e}")
                self._record_attempt(request, attempt, error=last_error)
                break
            except CarrierError as e:
                last_error = str(e)
                logger.warning(
                    f"Carrier attempt {attempt}/{self.max_retries} failed for shipment {request.reference}: {e}"
                )
                self._record_attempt(request, attempt, error=last_error)
                if attempt < self.max_retries:
                    self.sleep(self.retry_delay)
                continue

            logger.info(f"Carrier AWB {awb} created for shipment {request.reference} on attempt {attempt}")
            result = AWBResult(
                success=True,
                awb_number=awb,
                tracking_url=self.tracking_url_template.format(awb=awb),
                reference_number=payload.customer_reference_number,
                attempts=attempt,
                direction=request.direction,
            )
            return self._terminal(request, result, started)

        result = self._fallback(request, last_error, attempts=attempts)
        return self._terminal(request, result, started)

    def _fallback(self, request: ShipmentRequest, reason: Optional[str], attempts: int) -> AWBResult:
        try:
            result = self.fallback.create(request, reason)
        except FallbackGenerationError as e:
            logger.error(f"Fallback AWB generation failed for shipment {request.reference}: {e}")
            return AWBResult(
                success=False,
                attempts=attempts,
                error=f"{e} (carrier error: {reason})" if reason else str(e),
                direction=request.direction,
            )
        result.attempts = attempts
        result.reference_number = self.builder.reference_for(request)
        return result

    def _record_attempt(self, request: ShipmentRequest, attempt: int, error: str):
        self.audit.record(AttemptLogEntry(
            shipment_ref=request.reference,
            success=False,
            awb_number=None,
            is_fallback=False,
            error=error,
            timestamp_utc=datetime.now(timezone.utc),
            attempt=attempt,
            direction=request.direction.value,
        ))

    def _terminal(self, request: ShipmentRequest, result: AWBResult, started: float) -> AWBResult:
        self.audit.record(AttemptLogEntry(
            shipment_ref=request.reference,
            success=result.success,
            awb_number=result.awb_number,
            is_fallback=result.fallback_used,
            error=result.error or result.fallback_reason,
            timestamp_utc=datetime.now(timezone.utc),
            attempt=0,
            direction=request.direction.value,
        ))
        return self._finish(result, started)

    def _finish(self, result: AWBResult, started: float) -> AWBResult:
        result.elapsed_ms = int((self.monotonic() - started) * 1000)
        return result
