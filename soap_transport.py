# soap_transport.py
import logging
from typing import Optional

import httpx

from errors import TransportFailure
from soap_envelope import redact_envelope, soap_action

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0
_LOG_BODY_CHARS = 500


class SoapTransport:
    """POSTs SOAP envelopes to the Vmachine endpoint.

    ``http_transport`` is handed to ``httpx.AsyncClient`` as-is, which lets
    tests plug in an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = DEFAULT_TIMEOUT_S,
        verify: bool = False,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self.verify = verify
        self._http_transport = http_transport
        if not verify:
            logger.warning(f"TLS certificate verification is DISABLED for {endpoint}")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            verify=self.verify,
            transport=self._http_transport,
        )

    async def post(self, operation: str, envelope: bytes) -> bytes:
        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": soap_action(operation),
        }
        logger.debug(f"{operation} request:\n{redact_envelope(envelope)}")

        try:
            async with self._client() as client:
                r = await client.post(self.endpoint, content=envelope, headers=headers)
        except httpx.TimeoutException as e:
            raise TransportFailure(f"{operation} timed out after {self.timeout:g}s", cause=e) from e
        except httpx.RequestError as e:
            logger.warning(f"{operation} could not connect to {self.endpoint}: {e}")
            raise TransportFailure(f"{operation} could not connect", cause=e) from e

        logger.debug(f"{operation} response HTTP {r.status_code}: {r.text[:_LOG_BODY_CHARS]}")
        if r.is_success:
            return r.content

        logger.warning(f"{operation} failed with HTTP {r.status_code}")
        raise TransportFailure(
            f"HTTP {r.status_code} {r.reason_phrase}".rstrip(),
            status_code=r.status_code,
            reason=r.reason_phrase,
            body=r.content or None,
        )
