"""
Ordered endpoint failover over a shared requests session.
"""
import logging
import socket
from typing import Any, Dict, Optional, Sequence

import requests

from shipgate.integrations.errors import AllEndpointsFailedError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = 'ShipGate/1.0 (carrier-gateway)'


def classify_failure(exc: Exception) -> str:
    """Short reason for a connection-level failure."""
    if isinstance(exc, requests.exceptions.Timeout):
        return 'timeout'
    if isinstance(exc, requests.exceptions.ConnectionError):
        cause = exc
        while cause is not None:
            if isinstance(cause, socket.gaierror):
                return 'dns'
            cause = cause.__cause__ or cause.__context__
        text = str(exc)
        if 'Name or service not known' in text or 'getaddrinfo' in text or 'NameResolutionError' in text:
            return 'dns'
        return 'connection'
    return 'request'


class EndpointFailoverTransport:
    """Sends a request to each endpoint in turn until one answers.

    Any HTTP response counts as an answer and is returned untouched; only
    connection-level failures move on to the next endpoint.
    """

    def __init__(self, session: Optional[requests.Session] = None, user_agent: str = DEFAULT_USER_AGENT):
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': user_agent,
            'Accept': 'application/json',
        })

    def send(
        self,
        method: str,
        path: str,
        endpoints: Sequence[str],
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30,
    ) -> requests.Response:
        failures = []
        for base_url in endpoints:
            url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
            try:
                response = self.session.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=headers,
                    timeout=timeout,
                )
            except requests.RequestException as e:
                reason = classify_failure(e)
                logger.warning(f"Carrier endpoint {base_url} failed ({reason}): {e}")
                failures.append({'endpoint': base_url, 'reason': reason, 'error': str(e)})
                continue
            if failures:
                logger.info(f"Carrier endpoint {base_url} answered after {len(failures)} failed endpoint(s)")
            return response

        error = AllEndpointsFailedError(failures)
        logger.error(str(error))
        raise error
