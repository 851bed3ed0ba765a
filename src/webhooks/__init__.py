"""
Webhooks Package

Inbound verification and outbound delivery of signed webhook events:
- WebhookSigner: HMAC-SHA256 signatures over raw bytes
- WebhookDispatcher: concurrent, isolated delivery to all destinations
- BackgroundDispatcher: tracked fire-and-forget fan-out
- WebhookRegistry: current destination URLs
"""

from .background import BackgroundDispatcher
from .dispatcher import WebhookDispatcher
from .models import DeliveryResult, IncomingMessage, WebhookEvent
from .registry import WebhookRegistry
from .signer import SIGNATURE_HEADER, WebhookSigner

__all__ = [
    "BackgroundDispatcher",
    "DeliveryResult",
    "IncomingMessage",
    "SIGNATURE_HEADER",
    "WebhookDispatcher",
    "WebhookEvent",
    "WebhookRegistry",
    "WebhookSigner",
]
