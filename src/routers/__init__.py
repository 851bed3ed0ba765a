"""
Routers Package

Contains FastAPI router modules for:
- Token issuance and validation
- Protected messaging endpoints
- Webhook receipt, delivery and management
- Health checks
"""

from routers.auth import router as auth_router
from routers.health import router as health_router
from routers.protected import router as protected_router
from routers.webhook import router as webhook_router

__all__ = ["auth_router", "health_router", "protected_router", "webhook_router"]
