"""
Webhook data types.
"""

import time
from dataclasses import asdict, dataclass
from typing import Any, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field


class WebhookEvent(BaseModel):
    """Event delivered to subscriber URLs. ``from`` is a reserved word, hence ``from_``."""

    model_config = ConfigDict(populate_by_name=True)

    type: str
    timestamp: int = Field(default_factory=lambda: int(time.time()))
    from_: str = Field(default="", alias="from")
    to: Optional[str] = None
    message_id: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
    user: Optional[str] = None  # Authenticated actor that triggered the event

    def to_bytes(self) -> bytes:
        """Serialize exactly as transmitted; the signature is computed over these bytes."""
        return orjson.dumps(self.model_dump(by_alias=True, exclude_none=True))


class IncomingMessage(BaseModel):
    """Inbound webhook payload from the messaging provider."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    message_id: str
    message_type: str
    content: Optional[str] = None
    caption: Optional[str] = None
    media_url: Optional[str] = None
    timestamp: int = 0
    is_group: bool = False
    group_name: Optional[str] = None
    sender_name: Optional[str] = None
    data: Optional[dict[str, Any]] = None


@dataclass
class DeliveryResult:
    """Outcome of one delivery attempt to one destination."""

    url: str
    success: bool
    status_code: Optional[int] = None
    latency: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
