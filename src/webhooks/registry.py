"""
Webhook destination registry, seeded from the ``WEBHOOK_URLS`` setting.
"""

import threading
from typing import Iterable
from urllib.parse import urlparse

from core.logger import get_logger

logger = get_logger(__name__)


class WebhookRegistry:
    """Current list of subscriber URLs, read at every dispatch."""

    def __init__(self, urls: Iterable[str] = ()):
        self._urls: list[str] = []
        self._lock = threading.Lock()
        for url in urls:
            try:
                self.add(url)
            except ValueError as e:
                logger.warning(f"Skipping configured webhook: {e}")

    @staticmethod
    def is_valid_url(url: str) -> bool:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    def add(self, url: str) -> bool:
        """
        Register ``url``.

        Returns:
            True if added, False if it was already registered

        Raises:
            ValueError: if ``url`` is not an absolute http(s) URL
        """
        url = url.strip()
        if not self.is_valid_url(url):
            raise ValueError(f"Invalid webhook URL: {url!r}")
        with self._lock:
            if url in self._urls:
                return False
            self._urls.append(url)
            return True

    def urls(self) -> list[str]:
        with self._lock:
            return list(self._urls)

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)
