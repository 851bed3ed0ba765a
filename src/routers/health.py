"""
Health Router

Unauthenticated liveness endpoints for container orchestration.
"""

import time

from fastapi import APIRouter, Depends

from routers.dependencies import get_background, get_message_store, get_registry
from services import MessageStore
from webhooks import BackgroundDispatcher, WebhookRegistry

router = APIRouter(tags=["health"])

_started_at = time.time()


@router.get("/")
async def root():
    """Root endpoint with server information."""
    return {
        "name": "WhatsApp API Gateway",
        "version": "1.0.0",
        "status": "running",
    }


@router.get("/health")
async def health_check(
    store: MessageStore = Depends(get_message_store),
    registry: WebhookRegistry = Depends(get_registry),
    background: BackgroundDispatcher = Depends(get_background),
):
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "uptime_seconds": int(time.time() - _started_at),
        "services": {
            "message_store": "available" if store.is_available else "unavailable",
            "webhooks": {"destinations": len(registry), "pending_dispatches": background.pending},
        },
    }
