"""
Message Store

Persistence collaborator for the gateway. Handlers only need two
operations, storing a message record and fetching records, so the
backend is swappable:
- InMemoryMessageStore: process-local list (default, tests)
- SupabaseMessageStore: Supabase PostgREST table over httpx
"""

import asyncio
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from core.config import Settings
from core.errors import UpstreamUnavailable
from core.logger import get_logger

logger = get_logger(__name__)


def generate_message_id() -> str:
    """Time-ordered id such as ``msg_20250915143012123_9f1c``."""
    now = datetime.now(timezone.utc)
    return f"msg_{now:%Y%m%d%H%M%S}{now.microsecond // 1000:03d}_{secrets.token_hex(2)}"


def build_record(jid: str, message_id: str, message_data: dict[str, Any]) -> dict[str, Any]:
    """Shape a stored message row."""
    return {
        "jid": jid,
        "message_id": message_id,
        "message_data": message_data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class MessageStore(ABC):
    """Abstract persistence collaborator."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend is configured and reachable."""
        pass

    @abstractmethod
    async def store_message(self, record: dict[str, Any]) -> None:
        """
        Persist a message record.

        Raises:
            UpstreamUnavailable: if the backend fails
        """
        pass

    @abstractmethod
    async def fetch_records(self, jid: Optional[str] = None, limit: int = 50) -> list[dict[str, Any]]:
        """
        Fetch the newest records, optionally for one chat.

        Raises:
            UpstreamUnavailable: if the backend fails
        """
        pass


class InMemoryMessageStore(MessageStore):
    def __init__(self):
        self._records: list[dict[str, Any]] = []
        self._lock = asyncio.Lock()

    @property
    def is_available(self) -> bool:
        return True

    async def store_message(self, record: dict[str, Any]) -> None:
        async with self._lock:
            self._records.append(dict(record))

    async def fetch_records(self, jid: Optional[str] = None, limit: int = 50) -> list[dict[str, Any]]:
        async with self._lock:
            records = [r for r in self._records if jid is None or r.get("jid") == jid]
        records.sort(key=lambda r: r.get("timestamp", ""), reverse=True)
        return records[:limit]


class SupabaseMessageStore(MessageStore):
    """Stores records in a Supabase table through its PostgREST endpoint."""

    def __init__(self, client: httpx.AsyncClient, url: str, api_key: str, table: str = "chat_storage"):
        """
        Initialize the store.

        Args:
            client: Shared HTTP client (owned by the caller)
            url: Supabase project URL
            api_key: Supabase anon or service key
            table: Table holding message rows
        """
        self.client = client
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @property
    def is_available(self) -> bool:
        return bool(self.endpoint and self._headers["apikey"])

    async def store_message(self, record: dict[str, Any]) -> None:
        try:
            response = await self.client.post(
                self.endpoint,
                json=record,
                headers={**self._headers, "Prefer": "return=minimal"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to store message {record.get('message_id')}: {e!r}")
            raise UpstreamUnavailable() from e

    async def fetch_records(self, jid: Optional[str] = None, limit: int = 50) -> list[dict[str, Any]]:
        params = {"select": "*", "order": "timestamp.desc", "limit": str(limit)}
        if jid:
            params["jid"] = f"eq.{jid}"

        try:
            response = await self.client.get(self.endpoint, params=params, headers=self._headers)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch records: {e!r}")
            raise UpstreamUnavailable() from e


def create_message_store(settings: Settings, client: httpx.AsyncClient) -> MessageStore:
    """
    Create the message store selected by configuration.

    Uses Supabase when both SUPABASE_URL and SUPABASE_ANON_KEY are set,
    otherwise an in-memory store.
    """
    if settings.supabase_url and settings.supabase_anon_key:
        logger.info(f"Message store: Supabase table {settings.supabase_table}")
        return SupabaseMessageStore(
            client,
            url=settings.supabase_url,
            api_key=settings.supabase_anon_key,
            table=settings.supabase_table,
        )

    logger.info("Message store: in-memory (SUPABASE_URL not configured)")
    return InMemoryMessageStore()
