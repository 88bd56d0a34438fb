"""
HTTP client for the policy decision service.

One pooled httpx.Client is shared by every validation running in the
process; httpx clients are safe for concurrent use across threads.
There are no retries and no timeout override: a slow service blocks the
save until the transport's default timeout fires.
"""

import logging
from typing import Optional

import httpx

from pipegate.core.exceptions import DecisionTransportError
from pipegate.core.models import RawDecisionResponse

logger = logging.getLogger(__name__)

# OPA speaks JSON
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


def join_url(base_url: str, path: str) -> str:
    """Join with exactly one slash, whatever the configured values end/start with."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class DecisionClient:
    """
    Sends decision requests to OPA or the OPA proxy.

    Args:
        base_url: OPA or OPA-proxy base url
        client:   pre-built httpx.Client (tests pass one with a MockTransport)
    """

    def __init__(self, base_url: str, client: Optional[httpx.Client] = None):
        self.base_url = base_url
        self._client = client or httpx.Client()
        self._owns_client = client is None

    def send(self, path: str, body: bytes) -> RawDecisionResponse:
        """
        POST `body` to base_url/path.

        A non-2xx status with a body is a normal result. Only IO failures
        and an empty body are errors.

        Raises:
            DecisionTransportError
        """
        url = join_url(self.base_url, path)
        logger.debug("Sending decision request to %s", url)

        try:
            response = self._client.post(
                url,
                content=body,
                headers={"Content-Type": JSON_CONTENT_TYPE},
            )
            text = response.text
        except httpx.HTTPError as exc:
            logger.error("Communication exception for OPA at %s: %s", self.base_url, exc)
            raise DecisionTransportError(
                f"{type(exc).__name__}: {exc}",
                details={"url": url},
            ) from exc

        if not text:
            logger.error("OPA call to %s yielded an empty response", url)
            raise DecisionTransportError(
                "OPA call yielded an empty response",
                details={"url": url, "status": response.status_code},
            )

        logger.debug("OPA response (%s): %s", response.status_code, text)
        return RawDecisionResponse(status_code=response.status_code, body=text)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "DecisionClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
