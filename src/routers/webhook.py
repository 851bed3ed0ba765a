"""
Webhook Router

- POST /api/webhook/receive: signed inbound deliveries from the provider
- POST /api/webhook/send: authenticated users emit an event to subscribers
- GET/POST /api/webhook/manage: inspect and extend the destination list
"""

import time

import orjson
import pydantic
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from auth import Role, User, current_user, pipeline_guards, require_role
from core.config import Settings
from core.errors import SignatureMismatch, ValidationError
from core.logger import get_logger
from routers.dependencies import (
    get_app_settings,
    get_background,
    get_dispatcher,
    get_message_store,
    get_registry,
    get_signer,
)
from services import MessageStore, build_record, generate_message_id
from webhooks import (
    SIGNATURE_HEADER,
    BackgroundDispatcher,
    IncomingMessage,
    WebhookDispatcher,
    WebhookEvent,
    WebhookRegistry,
    WebhookSigner,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/webhook", tags=["webhook"])


class AddWebhookRequest(BaseModel):
    url: str = ""


@router.post("/receive", dependencies=pipeline_guards("global", authenticated=False))
async def receive_webhook(
    request: Request,
    signer: WebhookSigner = Depends(get_signer),
    store: MessageStore = Depends(get_message_store),
    background: BackgroundDispatcher = Depends(get_background),
):
    """
    Accept a signed delivery from the messaging provider.

    The signature is checked over the raw body before anything is parsed.
    A normalized ``message_received`` event is then fanned out to all
    subscribers in the background; its outcome is not reported here.
    """
    body = await request.body()

    if not signer.verify(request.headers.get(SIGNATURE_HEADER), body):
        logger.warning("Rejected inbound webhook with invalid signature")
        raise SignatureMismatch()

    try:
        message = IncomingMessage.model_validate(orjson.loads(body))
    except (orjson.JSONDecodeError, pydantic.ValidationError) as e:
        logger.warning(f"Invalid inbound webhook payload: {e}")
        raise ValidationError("Invalid JSON payload") from e

    event_id = generate_message_id()
    await store.store_message(
        build_record(
            message.from_,
            message.message_id,
            {
                "type": message.message_type,
                "content": message.content,
                "caption": message.caption,
                "media_url": message.media_url,
                "is_group": message.is_group,
                "group_name": message.group_name,
                "sender_name": message.sender_name,
                "received": True,
                "event_id": event_id,
            },
        )
    )

    background.submit(
        WebhookEvent(
            type="message_received",
            from_=message.from_,
            message_id=message.message_id,
            data={
                "message_type": message.message_type,
                "content": message.content,
                "is_group": message.is_group,
                "event_id": event_id,
            },
        )
    )

    return {
        "success": True,
        "message": "Message processed successfully",
        "event_id": event_id,
        "processed_at": int(time.time()),
    }


@router.post("/send", dependencies=pipeline_guards("global"))
async def send_webhook(
    event: WebhookEvent,
    user: User = Depends(current_user),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
):
    """Deliver an event to every subscriber and report each outcome."""
    event = event.model_copy(update={"user": user.username, "timestamp": int(time.time())})
    results = await dispatcher.dispatch(event)

    return {
        "success": True,
        "event_id": generate_message_id(),
        "webhook_urls": len(results),
        "sent_at": int(time.time()),
        "results": [result.to_dict() for result in results],
    }


@router.get("/manage", dependencies=pipeline_guards("global"))
async def list_webhooks(
    registry: WebhookRegistry = Depends(get_registry),
    settings: Settings = Depends(get_app_settings),
):
    """Current destination URLs."""
    urls = registry.urls()
    return {
        "webhooks": urls,
        "count": len(urls),
        "secret_configured": bool(settings.webhook_secret),
    }


@router.post("/manage", dependencies=pipeline_guards("global", role=Role.ADMIN))
async def add_webhook(
    body: AddWebhookRequest,
    user: User = Depends(current_user),
    registry: WebhookRegistry = Depends(get_registry),
):
    """Register an additional destination URL (admin only)."""
    if not body.url:
        raise ValidationError("URL is required")

    try:
        added = registry.add(body.url)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    if added:
        logger.info(f"{user.username} added webhook destination {body.url}")

    return {
        "success": True,
        "message": "Webhook URL added successfully" if added else "Webhook URL already registered",
        "url": body.url.strip(),
    }
