"""
Accessors for the components create_app() places on ``app.state``.
"""

from fastapi import Request

from auth import CredentialStore, TokenManager
from auth.pipeline import SecurityPipeline, get_pipeline
from core.config import Settings
from services import MessageStore
from webhooks import BackgroundDispatcher, WebhookDispatcher, WebhookRegistry, WebhookSigner


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_security(request: Request) -> SecurityPipeline:
    return get_pipeline(request)


def get_token_manager(request: Request) -> TokenManager:
    return get_pipeline(request).token_manager


def get_credentials(request: Request) -> CredentialStore:
    return request.app.state.credentials


def get_message_store(request: Request) -> MessageStore:
    return request.app.state.message_store


def get_signer(request: Request) -> WebhookSigner:
    return request.app.state.signer


def get_registry(request: Request) -> WebhookRegistry:
    return request.app.state.registry


def get_dispatcher(request: Request) -> WebhookDispatcher:
    return request.app.state.dispatcher


def get_background(request: Request) -> BackgroundDispatcher:
    return request.app.state.background
