"""
Protected Router

Endpoints that require a verified identity. The dashboard additionally
requires the admin role.
"""

import time

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from auth import Claims, Role, User, current_claims, current_user, pipeline_guards, require_role
from auth.pipeline import SecurityPipeline
from core.errors import ValidationError
from routers.dependencies import get_message_store, get_security
from services import MessageStore, build_record, generate_message_id

router = APIRouter(prefix="/api/protected", tags=["protected"], dependencies=pipeline_guards("global"))


class SendMessageRequest(BaseModel):
    phone: str = ""
    message: str = ""
    duration: int = 0  # Disappearing messages, seconds


@router.get("/profile")
async def profile(
    user: User = Depends(current_user),
    claims: Claims = Depends(current_claims),
    store: MessageStore = Depends(get_message_store),
):
    """Identity, token details and permissions of the caller."""
    return {
        "user": user.to_dict(),
        "token_info": {
            "issued_at": claims.issued_at,
            "expires": claims.expires_at,
            "issuer": claims.issuer,
        },
        "store": {"status": "available" if store.is_available else "unavailable"},
        "permissions": user.permissions,
        "timestamp": int(time.time()),
    }


@router.get("/dashboard", dependencies=[Depends(require_role(Role.ADMIN))])
async def dashboard(
    user: User = Depends(current_user),
    store: MessageStore = Depends(get_message_store),
    security: SecurityPipeline = Depends(get_security),
):
    """Admin overview: stored message count and rate limit configuration."""
    records = await store.fetch_records(limit=1000)

    return {
        "admin": user.username,
        "statistics": {
            "total_messages": len(records),
            "last_activity": int(time.time()),
        },
        "rate_limits": {
            tier: {"limit": limiter.limit, "window_seconds": limiter.window, "tracked_clients": limiter.tracked}
            for tier, limiter in security.limiters.items()
        },
        "timestamp": int(time.time()),
    }


@router.post("/send")
async def send_message(
    body: SendMessageRequest,
    user: User = Depends(current_user),
    store: MessageStore = Depends(get_message_store),
):
    """Store an outgoing text message attributed to the caller."""
    if not body.phone or not body.message:
        raise ValidationError("Phone and message are required")

    message_id = generate_message_id()
    message_data = {
        "type": "text",
        "content": body.message,
        "sent": True,
        "sent_by": user.username,
        "user_id": user.id,
    }
    if body.duration:
        message_data["duration"] = body.duration

    await store.store_message(build_record(body.phone, message_id, message_data))

    return {
        "success": True,
        "message_id": message_id,
        "message": f"Text message sent successfully by {user.username}",
        "timestamp": int(time.time()),
    }


@router.get("/history")
async def message_history(
    phone: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    user: User = Depends(current_user),
    store: MessageStore = Depends(get_message_store),
):
    """Newest stored messages, optionally for one phone number."""
    messages = await store.fetch_records(jid=phone or None, limit=limit)

    return {
        "success": True,
        "messages": messages,
        "count": len(messages),
        "requested_by": user.username,
        "timestamp": int(time.time()),
    }
