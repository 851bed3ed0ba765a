"""
Webhook Dispatcher

Serializes an event once, signs those exact bytes and POSTs them to every
registered destination concurrently. Each destination is isolated: a
timeout, transport error or non-2xx status becomes a failed DeliveryResult
and never affects the others. There is no retry.
"""

import asyncio
import time
from typing import Callable

import httpx

from core.errors import NoDestinationsConfigured
from core.logger import get_logger
from webhooks.models import DeliveryResult, WebhookEvent
from webhooks.signer import SIGNATURE_HEADER, WebhookSigner

logger = get_logger(__name__)


class WebhookDispatcher:
    """Delivers signed events to the destinations returned by ``url_provider``."""

    def __init__(
        self,
        signer: WebhookSigner,
        client: httpx.AsyncClient,
        url_provider: Callable[[], list[str]],
        timeout: float = 10.0,
        user_agent: str = "WhatsApp-API-Webhook/1.0",
    ):
        """
        Initialize the dispatcher.

        Args:
            signer: Signer for the outbound signature header
            client: Shared HTTP client (owned by the caller)
            url_provider: Returns the current destination URLs
            timeout: Per-destination timeout in seconds
            user_agent: User-Agent header sent with each delivery
        """
        self.signer = signer
        self.client = client
        self.url_provider = url_provider
        self.timeout = timeout
        self.user_agent = user_agent

    async def dispatch(self, event: WebhookEvent) -> list[DeliveryResult]:
        """
        Deliver ``event`` to every configured destination.

        Returns:
            One DeliveryResult per destination, in destination order

        Raises:
            NoDestinationsConfigured: if there are no destinations
        """
        urls = self.url_provider()
        if not urls:
            raise NoDestinationsConfigured()

        payload = event.to_bytes()
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
            SIGNATURE_HEADER: self.signer.header(payload),
        }

        results = await asyncio.gather(*(self._deliver(url, payload, headers) for url in urls))

        failed = sum(1 for result in results if not result.success)
        logger.info(f"Dispatched {event.type} to {len(results)} destination(s), {failed} failed")
        return list(results)

    async def _deliver(self, url: str, payload: bytes, headers: dict[str, str]) -> DeliveryResult:
        start = time.perf_counter()
        try:
            response = await self.client.post(url, content=payload, headers=headers, timeout=self.timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            latency = time.perf_counter() - start
            logger.warning(f"Webhook delivery to {url} failed: {e!r}")
            return DeliveryResult(url=url, success=False, latency=latency, error=f"Request failed: {e!r}")

        latency = time.perf_counter() - start
        success = 200 <= response.status_code < 300
        if not success:
            logger.warning(f"Webhook delivery to {url} returned HTTP {response.status_code}")

        return DeliveryResult(
            url=url,
            success=success,
            status_code=response.status_code,
            latency=latency,
            error=None if success else f"HTTP {response.status_code}",
        )
