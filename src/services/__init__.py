"""
Services Package

Contains collaborator services used by the route handlers:
- Message persistence (in-memory or Supabase)
"""

from services.message_store import (
    InMemoryMessageStore,
    MessageStore,
    SupabaseMessageStore,
    build_record,
    create_message_store,
    generate_message_id,
)

__all__ = [
    "InMemoryMessageStore",
    "MessageStore",
    "SupabaseMessageStore",
    "build_record",
    "create_message_store",
    "generate_message_id",
]
